"""Chat commands and the default command table."""

from typing import Callable, List

from . import cleanup, code, edit, general_help, glossary, graph, lint, manifesto, run_code, tdd
from .base import FAILURE_MARKER, ChatCommand, always_matches, failure_message

__all__ = [
    "ChatCommand",
    "FAILURE_MARKER",
    "always_matches",
    "default_commands",
    "failure_message",
]


def default_commands(orchestrator, list_commands: Callable[[], List[ChatCommand]]) -> List[ChatCommand]:
    """Return the built-in commands in matching order.

    Slash commands and narrow phrasings come before the broad code command;
    the help fallback is always last.
    """
    return [
        tdd.make_command(orchestrator),
        lint.COMMAND,
        edit.COMMAND,
        graph.COMMAND,
        glossary.COMMAND,
        manifesto.COMMAND,
        cleanup.COMMAND,
        run_code.COMMAND,
        code.COMMAND,
        general_help.make_command(list_commands),
    ]
