"""Command values held in the dispatcher's ordered table.

A command is a plain value: a stable trigger id, a pure predicate and an
async action. The dispatcher never inspects command types.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from ..collaborators import Collaborators
from ..session_context import SessionContext

logger = logging.getLogger(__name__)

# Prefix of every user-facing failure message
FAILURE_MARKER = "❌"

CommandAction = Callable[[str, SessionContext, Collaborators], Awaitable[str]]


def always_matches(text: str) -> bool:
    """Predicate of the fallback command."""
    return True


@dataclass(frozen=True)
class ChatCommand:
    """One routable capability.

    Attributes:
        command: Primary trigger, e.g. ``/lint``. Used for logging and
            removal; it must be unique within a dispatcher.
        can_handle: Pure predicate over the raw message.
        execute: Produces the response. Implementations catch their own
            errors and return a failure string instead of raising.
        description: One line shown by the help command.
    """

    command: str
    can_handle: Callable[[str], bool]
    execute: CommandAction
    description: str = ""

    @property
    def is_fallback(self) -> bool:
        return self.can_handle is always_matches


def failure_message(label: str, error: object) -> str:
    """Format a command failure for the user."""
    return f"{FAILURE_MARKER} {label}: {error}"
