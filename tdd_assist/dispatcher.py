"""
Routes chat messages to commands or to the TDD workflow.

The dispatcher owns an ordered command table. The first command whose
predicate accepts a message handles it, and the general help command sits
last as the catch-all. In TDD mode, messages that describe code work are
sent to the TDD orchestrator before the table is consulted.
"""

import logging
import threading
from typing import Any, Dict, List, Optional

from .collaborators import Collaborators
from .commands import ChatCommand, default_commands
from .intent_classifier import should_trigger_automatic_fixes
from .logging_utils import truncate_for_log
from .session_context import ChatMessage, SessionContext
from .tdd_orchestrator import TddOrchestrator

logger = logging.getLogger(__name__)

NO_COMMAND_MESSAGE = "❌ No command available to handle this message."
EMPTY_RESPONSE_MESSAGE = "❌ Command returned an empty response."


class CommandDispatcher:
    """Ordered command table plus the TDD preempt."""

    def __init__(self, commands: Optional[List[ChatCommand]] = None,
                 orchestrator: Optional[TddOrchestrator] = None):
        """Create a dispatcher.

        Args:
            commands: Command table in matching order. Defaults to the
                built-in commands. The last entry must be the fallback.
            orchestrator: TDD orchestrator used for preempted messages.

        Raises:
            ValueError: If the table is empty or does not end with the
                fallback command.
        """
        self.orchestrator = orchestrator or TddOrchestrator()
        if commands is None:
            commands = default_commands(self.orchestrator, self.get_available_commands)
        if not commands or not commands[-1].is_fallback:
            raise ValueError("The last command must be the fallback command")
        self._commands: List[ChatCommand] = list(commands)
        self._match_counts: Dict[str, int] = {command.command: 0 for command in self._commands}

    async def dispatch(self, message: str, context: SessionContext,
                       collaborators: Optional[Collaborators] = None) -> str:
        """Handle one message and record the exchange in the history.

        Never raises; unexpected errors become a failure string.
        """
        collaborators = collaborators or Collaborators()
        try:
            response = await self._route(message, context, collaborators)
        except Exception as e:
            logger.error("Command execution failed: %s", e, exc_info=True)
            response = f"❌ Command execution failed: {e}"

        if not isinstance(response, str):
            if response is not None:
                logger.warning("Command returned %s instead of text", type(response).__name__)
            response = EMPTY_RESPONSE_MESSAGE
        elif not response.strip():
            response = EMPTY_RESPONSE_MESSAGE

        context.add_to_conversation_history(ChatMessage(role="user", content=message))
        context.add_to_conversation_history(ChatMessage(role="assistant", content=response))
        return response

    async def _route(self, message: str, context: SessionContext, collaborators: Collaborators) -> str:
        # Explicit slash commands are never preempted
        if (context.is_tdd_mode and not message.strip().startswith("/")
                and should_trigger_automatic_fixes(message, context)):
            logger.info("Routing to TDD workflow: %s", truncate_for_log(message))
            return await self.orchestrator.run(message, context, collaborators)

        command = self.find_matching_command(message)
        if command is None:
            logger.warning("No command matched: %s", truncate_for_log(message))
            return NO_COMMAND_MESSAGE

        logger.info("Routing to %s: %s", command.command, truncate_for_log(message))
        self._match_counts[command.command] = self._match_counts.get(command.command, 0) + 1
        return await command.execute(message, context, collaborators)

    def find_matching_command(self, message: str) -> Optional[ChatCommand]:
        for command in self._commands:
            if command.can_handle(message):
                return command
        return None

    def add_command(self, command: ChatCommand) -> None:
        """Register a command just before the fallback.

        Raises:
            ValueError: If a command with the same id is already registered.
        """
        if any(existing.command == command.command for existing in self._commands):
            raise ValueError(f"Command already registered: {command.command}")
        position = len(self._commands)
        if self._commands and self._commands[-1].is_fallback:
            position -= 1
        self._commands.insert(position, command)
        self._match_counts.setdefault(command.command, 0)
        logger.info("Added command %s at position %d", command.command, position)

    def remove_command(self, command_id: str) -> bool:
        """Remove a command by id; returns False if it was not registered."""
        for index, command in enumerate(self._commands):
            if command.command == command_id:
                del self._commands[index]
                if command.is_fallback:
                    logger.warning("Fallback command %s removed; some messages may go unhandled", command_id)
                else:
                    logger.info("Removed command %s", command_id)
                return True
        return False

    def get_available_commands(self) -> List[ChatCommand]:
        return list(self._commands)

    def get_command_stats(self) -> Dict[str, Any]:
        return {
            "total_commands": len(self._commands),
            "commands": [command.command for command in self._commands],
            "has_fallback": bool(self._commands) and self._commands[-1].is_fallback,
            "matches": dict(self._match_counts),
        }

    def test_input(self, message: str) -> Dict[str, Any]:
        """Report which command would handle ``message`` without running it."""
        command = self.find_matching_command(message)
        return {"matched": command is not None, "command": command.command if command else None}


_default_dispatcher: Optional[CommandDispatcher] = None
_default_lock = threading.Lock()


def get_default_dispatcher() -> CommandDispatcher:
    """Lazily build the process-wide dispatcher with the default table."""
    global _default_dispatcher
    if _default_dispatcher is None:
        with _default_lock:
            if _default_dispatcher is None:
                _default_dispatcher = CommandDispatcher()
    return _default_dispatcher


async def dispatch(message: str, context: SessionContext,
                   collaborators: Optional[Collaborators] = None) -> str:
    """Dispatch a message with the default dispatcher."""
    return await get_default_dispatcher().dispatch(message, context, collaborators)
