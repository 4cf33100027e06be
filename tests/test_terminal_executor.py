"""Tests for TerminalExecutor command validation and limits."""

import sys
from unittest.mock import MagicMock

import pytest

from tdd_assist.terminal_executor import (
    LAUNCH_FAILURE_CODE,
    TerminalExecutor,
    is_code_safe_for_auto_execution,
)


@pytest.fixture
def executor(tmp_path):
    return TerminalExecutor(cwd=str(tmp_path))


def test_runs_command_in_workspace(executor):
    code, output = executor.run_command("echo hello")

    assert code == 0
    assert output.strip() == "hello"


@pytest.mark.parametrize("command", ["rm -rf build", "ls && whoami", "cat a | grep b", "sudo ls"])
def test_denylisted_tokens_are_rejected(executor, command):
    code, output = executor.run_command(command)

    assert code == LAUNCH_FAILURE_CODE
    assert "forbidden token" in output


def test_paths_outside_workspace_are_rejected(executor):
    code, output = executor.run_command("cat /etc/passwd")

    assert code == LAUNCH_FAILURE_CODE
    assert "restricted path" in output


def test_missing_program(executor):
    code, output = executor.run_command("definitely-not-a-real-program-xyz")

    assert code == LAUNCH_FAILURE_CODE
    assert output.startswith("Error executing command")


@pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX sleep")
def test_timeout_kills_process(executor):
    code, _ = executor.run_command("sleep 5", timeout=0.2)

    assert code < 0


def test_output_is_capped(tmp_path):
    config = MagicMock()
    config.config = {"max_output_size": 10, "workspace_path": str(tmp_path)}
    executor = TerminalExecutor(config)

    code, output = executor.run_command("echo " + "x" * 100)

    assert code == 0
    assert "Output truncated" in output
    assert len(output) < 100


def test_settings_come_from_config(tmp_path):
    config = MagicMock()
    config.config = {"denylist": ["echo"], "command_timeout": 3, "workspace_path": str(tmp_path)}

    executor = TerminalExecutor(config)

    assert executor.timeout == 3
    assert executor.run_command("echo hi")[0] == LAUNCH_FAILURE_CODE


@pytest.mark.parametrize("code,safe", [
    ("print('hello')", True),
    ("console.log(1 + 2)", True),
    ("import os\nos.remove('x')", False),
    ("import subprocess", False),
    ("require('child_process').exec('ls')", False),
    ("open('out.txt', 'w').write('x')", False),
    ("eval(input())", False),
])
def test_is_code_safe_for_auto_execution(code, safe):
    assert is_code_safe_for_auto_execution(code) is safe


@pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX printenv")
def test_extra_environment_is_passed(executor):
    code, output = executor.run_command("printenv TDD_ASSIST_EXTRA_VAR", env={"TDD_ASSIST_EXTRA_VAR": "src"})

    assert code == 0
    assert output.strip() == "src"
