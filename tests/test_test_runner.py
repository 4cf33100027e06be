"""Tests for test command selection and output parsing."""

import asyncio
import os
import pytest
from unittest.mock import MagicMock

from tdd_assist.collaborators import RunOutcome
from tdd_assist.test_runner import CommandTestRunner, parse_test_output


@pytest.mark.parametrize("code,output,framework,expected", [
    (0, "===== 3 passed in 0.12s =====", "pytest", RunOutcome.PASSING),
    (1, "===== 1 failed, 2 passed in 0.20s =====", "pytest", RunOutcome.FAILING),
    (5, "===== no tests ran in 0.01s =====", "pytest", RunOutcome.ERROR),
    (4, "ERROR: file or directory not found: tests", "pytest", RunOutcome.ERROR),
    (1, "Tests:       2 failed, 1 passed, 3 total", "Jest", RunOutcome.FAILING),
    (0, "Tests:       3 passed, 3 total", "Jest", RunOutcome.PASSING),
    (1, "No tests found, exiting with code 1", "Jest", RunOutcome.ERROR),
    (1, "  2 passing (10ms)\n  1 failing", "Mocha", RunOutcome.FAILING),
    (1, "FAILED (failures=2)", "unittest", RunOutcome.FAILING),
    (0, "Ran 0 tests in 0.000s\n\nOK", "unittest", RunOutcome.ERROR),
    (127, "Error executing command: [Errno 2] No such file or directory: 'npx'", "Vitest", RunOutcome.ERROR),
    (-9, "", "Jest", RunOutcome.ERROR),
    (2, "something went wrong", "Mocha", RunOutcome.FAILING),
])
def test_parse_test_output(code, output, framework, expected):
    assert parse_test_output(code, output, framework) is expected


class TestCommandTestRunner:
    """Tests for the CommandTestRunner class."""

    @pytest.fixture
    def terminal(self):
        terminal = MagicMock()
        terminal.run_command = MagicMock(return_value=(1, "1 failed, 1 passed"))
        return terminal

    def test_framework_commands(self, terminal):
        runner = CommandTestRunner(terminal)
        assert runner.get_test_command("Jest") == "npm test"
        assert runner.get_test_command("Vitest") == "npx vitest run"
        assert runner.get_test_command("pytest") == "python -m pytest -q"
        assert runner.get_test_command(" Playwright ") == "npx playwright test"
        assert runner.get_test_command("Unknown") == "npm test"

    def test_command_overrides(self, terminal):
        runner = CommandTestRunner(terminal, commands={"Jest": "yarn jest --ci"})
        assert runner.get_test_command("jest") == "yarn jest --ci"

    def test_run_uses_terminal_and_parses_result(self, terminal):
        runner = CommandTestRunner(terminal, timeout=42)

        outcome = asyncio.run(runner.run("pytest"))

        assert outcome is RunOutcome.FAILING
        terminal.run_command.assert_called_once_with("python -m pytest -q", timeout=42)
        assert runner.last_command == "python -m pytest -q"
        assert runner.last_output == "1 failed, 1 passed"

    def test_run_without_framework_is_error(self, terminal):
        runner = CommandTestRunner(terminal)

        assert asyncio.run(runner.run(None)) is RunOutcome.ERROR
        terminal.run_command.assert_not_called()

    def test_targeted_commands(self, terminal):
        runner = CommandTestRunner(terminal)

        assert runner.get_test_command("pytest", ["/w/.tdd_assist/tests/test_add_1.py"]) == \
            "python -m pytest -q /w/.tdd_assist/tests/test_add_1.py"
        assert runner.get_test_command("Jest", ["/w/t/add.test.ts", "/w/t/add.ui.test.ts"]) == \
            "npx jest /w/t/add.test.ts /w/t/add.ui.test.ts"
        assert runner.get_test_command("Cypress", ["/w/t/a.cy.js", "/w/t/b.cy.js"]) == \
            "npx cypress run --spec /w/t/a.cy.js,/w/t/b.cy.js"
        assert runner.get_test_command("unittest", ["/w/t/test_add_1.py", "/w/t/test_add_1_ui.py"]) == \
            "python -m unittest discover -s /w/t -p 'test_add_1*.py'"
        assert runner.get_test_command("Unknown", ["/w/my tests/a.test.js"]) == \
            "npm test -- '/w/my tests/a.test.js'"

    def test_override_gets_paths_appended(self, terminal):
        runner = CommandTestRunner(terminal, commands={"pytest": "python3 -m pytest -x"})
        assert runner.get_test_command("pytest", ["/w/t/test_a.py"]) == "python3 -m pytest -x /w/t/test_a.py"

    def test_run_targets_paths_with_source_dirs_importable(self, terminal, monkeypatch):
        monkeypatch.delenv("PYTHONPATH", raising=False)
        runner = CommandTestRunner(terminal, timeout=5)

        asyncio.run(runner.run("pytest", ["/w/t/test_a.py"], ["/w/src"]))

        terminal.run_command.assert_called_once_with(
            "python -m pytest -q /w/t/test_a.py", timeout=5, env={"PYTHONPATH": "/w/src"}
        )

    def test_node_frameworks_use_node_path(self, terminal, monkeypatch):
        monkeypatch.setenv("NODE_PATH", "/existing")
        runner = CommandTestRunner(terminal)

        assert runner.get_test_env("Jest", ["/w/src"]) == {"NODE_PATH": os.pathsep.join(["/w/src", "/existing"])}
        assert runner.get_test_env("Jest", None) is None
