"""Tests for the command-line interface."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

from tdd_assist import cli
from tdd_assist.cli import ConsolePrompter, build_collaborators, main
from tdd_assist.config import Config
from tdd_assist.session_context import SessionContext


def prompter_with(answer):
    outputs = []
    prompter = ConsolePrompter(input_func=lambda prompt: answer, output_func=outputs.append)
    return prompter, outputs


def test_prompter_accepts_number():
    prompter, outputs = prompter_with("2")

    assert asyncio.run(prompter.choose(["React", "Vue"], "Pick a stack")) == "Vue"
    assert outputs[0] == "Pick a stack"
    assert "  1. React" in outputs


def test_prompter_accepts_name_case_insensitively():
    prompter, _ = prompter_with("vue")
    assert asyncio.run(prompter.choose(["React", "Vue"], "Pick")) == "Vue"


def test_prompter_blank_declines():
    prompter, _ = prompter_with("   ")
    assert asyncio.run(prompter.choose(["React"], "Pick")) is None


def test_prompter_unknown_choice_declines():
    prompter, outputs = prompter_with("9")
    assert asyncio.run(prompter.choose(["React"], "Pick")) is None
    assert outputs[-1] == "Unknown choice: 9"


def test_build_collaborators(tmp_path):
    config = Config(str(tmp_path))
    context = SessionContext(workspace_path=str(tmp_path))

    collaborators = build_collaborators(config, context)

    assert collaborators.test_runner.terminal is collaborators.terminal
    assert collaborators.file_writer.allowed_dirs == [str(tmp_path.resolve())]
    assert isinstance(collaborators.prompter, ConsolePrompter)


def test_main_one_shot_message(tmp_path, capsys):
    with patch.object(cli, "CommandDispatcher") as dispatcher_cls:
        dispatcher_cls.return_value.dispatch = AsyncMock(return_value="handled")

        exit_code = main(["--workspace", str(tmp_path), "--agent-mode", "--tdd", "hello", "there"])

    assert exit_code == 0
    assert "handled" in capsys.readouterr().out
    message, context, _ = dispatcher_cls.return_value.dispatch.await_args.args
    assert message == "hello there"
    assert context.is_agent_mode is True
    assert context.is_tdd_mode is True
    assert context.is_auto_mode is False


def test_main_indexes_workspace(tmp_path):
    (tmp_path / "package.json").write_text(json.dumps({"dependencies": {"react": "18"}}))

    with patch.object(cli, "CommandDispatcher") as dispatcher_cls:
        dispatcher_cls.return_value.dispatch = AsyncMock(return_value="ok")
        main(["--workspace", str(tmp_path), "--index", "hi"])

    context = dispatcher_cls.return_value.dispatch.await_args.args[1]
    assert context.is_codebase_indexed
    assert "package.json" in context.codebase_index


def test_main_reports_configuration_errors(tmp_path, capsys):
    (tmp_path / "tdd_assist.json").write_text("{oops")

    assert main(["--workspace", str(tmp_path), "hi"]) == 1
    assert "Configuration error" in capsys.readouterr().err


def test_repl_stops_on_exit(tmp_path, capsys):
    dispatcher = MagicMock()
    dispatcher.dispatch = AsyncMock(return_value="pong")
    answers = iter(["ping", "", "exit"])

    with patch("builtins.input", side_effect=lambda prompt="": next(answers)):
        cli.run_repl(dispatcher, SessionContext(workspace_path=str(tmp_path)), MagicMock())

    assert dispatcher.dispatch.await_count == 1
    assert "pong" in capsys.readouterr().out
