"""Command-line interface for tdd_assist."""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from tdd_assist.agent_client import HttpAgentClient
from tdd_assist.collaborators import Collaborators
from tdd_assist.config import Config
from tdd_assist.dispatcher import CommandDispatcher
from tdd_assist.errors import ConfigurationError
from tdd_assist.file_writer import WorkspaceFileWriter
from tdd_assist.session_context import SessionContext, index_workspace
from tdd_assist.terminal_executor import TerminalExecutor
from tdd_assist.test_runner import CommandTestRunner

logger = logging.getLogger(__name__)

EXIT_COMMANDS = {"exit", "quit", ":q"}


def configure_logging(verbose: bool = False) -> None:
    """Configure the logging system.

    Args:
        verbose: Whether to enable verbose logging
    """
    level = logging.DEBUG if verbose else logging.INFO
    format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[logging.StreamHandler()]
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)


class ConsolePrompter:
    """Numbered-choice prompt on the terminal; a blank answer declines."""

    def __init__(self, input_func=input, output_func=print):
        self._input = input_func
        self._print = output_func

    async def choose(self, options: List[str], placeholder: str) -> Optional[str]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._choose_sync, options, placeholder)

    def _choose_sync(self, options: List[str], placeholder: str) -> Optional[str]:
        self._print(placeholder)
        for number, option in enumerate(options, start=1):
            self._print(f"  {number}. {option}")
        answer = self._input("Choice (blank to cancel): ").strip()
        if not answer:
            return None
        if answer.isdigit() and 1 <= int(answer) <= len(options):
            return options[int(answer) - 1]
        for option in options:
            if option.lower() == answer.lower():
                return option
        self._print(f"Unknown choice: {answer}")
        return None


def build_collaborators(config: Config, context: SessionContext) -> Collaborators:
    """Wire the concrete collaborators for a workspace."""
    settings = config.settings
    terminal = TerminalExecutor(config, cwd=context.workspace_path)
    return Collaborators(
        agent=HttpAgentClient(settings.agent),
        test_runner=CommandTestRunner(
            terminal, commands=settings.test_runner.commands, timeout=settings.test_runner.timeout
        ),
        file_writer=WorkspaceFileWriter(allowed_dirs=[context.workspace_path]),
        prompter=ConsolePrompter(),
        terminal=terminal,
    )


def run_repl(dispatcher: CommandDispatcher, context: SessionContext, collaborators: Collaborators) -> None:
    print("tdd-assist ready. Type /help for commands, 'exit' to quit.")
    while True:
        try:
            message = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break
        if not message:
            continue
        if message.lower() in EXIT_COMMANDS:
            break
        print(asyncio.run(dispatcher.dispatch(message, context, collaborators)))


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the command-line interface."""
    parser = argparse.ArgumentParser(
        description="Chat-driven coding assistant with a test-first workflow",
    )
    parser.add_argument("message", nargs="*", help="Message to handle; starts a REPL when omitted")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument("--config", help="Path to a JSON configuration file")
    parser.add_argument("--workspace", "-w", help="Workspace directory (default: current directory)")
    parser.add_argument("--agent-mode", action="store_true", help="Allow the assistant to write files")
    parser.add_argument("--auto", action="store_true", help="Run safe code automatically")
    parser.add_argument("--tdd", action="store_true", help="Send code requests through the TDD workflow")
    parser.add_argument("--ui-tdd", action="store_true", help="Also generate UI tests for UI requests")
    parser.add_argument("--index", action="store_true", help="Index the workspace before handling messages")
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    logger.debug("Starting tdd-assist CLI")

    config = Config(args.workspace)
    try:
        config.load(args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    context = SessionContext.from_config(config.settings)
    context.is_agent_mode = context.is_agent_mode or args.agent_mode
    context.is_auto_mode = context.is_auto_mode or args.auto
    context.is_tdd_mode = context.is_tdd_mode or args.tdd
    context.is_ui_tdd_mode = context.is_ui_tdd_mode or args.ui_tdd
    if args.index:
        index_workspace(context)

    collaborators = build_collaborators(config, context)
    dispatcher = CommandDispatcher()

    message = " ".join(args.message).strip()
    if message:
        print(asyncio.run(dispatcher.dispatch(message, context, collaborators)))
    else:
        run_repl(dispatcher, context, collaborators)
    return 0


if __name__ == "__main__":
    sys.exit(main())
