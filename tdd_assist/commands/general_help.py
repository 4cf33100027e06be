"""General help command, the dispatcher's fallback.

It accepts every message, so it must stay the last entry of the command
table.
"""

import logging
from typing import Callable, List

from ..collaborators import Collaborators
from ..session_context import SessionContext
from .base import ChatCommand, always_matches, failure_message

logger = logging.getLogger(__name__)

GREETINGS = {"hi", "hello", "hey", "help", "/help", "?"}


def _mode_summary(context: SessionContext) -> str:
    flags = [
        ("Agent", context.is_agent_mode),
        ("Auto", context.is_auto_mode),
        ("TDD", context.is_tdd_mode),
        ("UI TDD", context.is_ui_tdd_mode),
        ("Manifesto", context.is_manifesto_mode),
    ]
    return ", ".join(f"{name} {'on' if enabled else 'off'}" for name, enabled in flags)


def make_command(list_commands: Callable[[], List[ChatCommand]]) -> ChatCommand:
    """Build the fallback command.

    Args:
        list_commands: Returns the current command table so the help text
            reflects runtime additions and removals.
    """

    async def execute(text: str, context: SessionContext, collaborators: Collaborators) -> str:
        try:
            lines = [
                f"• `{command.command}`: {command.description}"
                for command in list_commands()
                if not command.is_fallback and command.description
            ]
            header = "👋 **How can I help?**" if text.strip().lower() in GREETINGS else (
                "🤔 **I'm not sure how to handle that yet.**"
            )
            indexed = "indexed" if context.is_codebase_indexed else "not indexed"
            return (
                f"{header}\n\n**Available commands:**\n" + "\n".join(lines) +
                f"\n\n**Session:** {_mode_summary(context)}; codebase {indexed}"
            )
        except Exception as e:
            logger.error("Help command failed: %s", e, exc_info=True)
            return failure_message("Help failed", e)

    return ChatCommand(
        command="/help",
        can_handle=always_matches,
        execute=execute,
        description="Show available commands",
    )
