"""Explicit ``/tdd <request>`` command."""

import logging
import re

from ..collaborators import Collaborators
from ..session_context import SessionContext
from ..tdd_orchestrator import TddOrchestrator
from .base import ChatCommand, failure_message

logger = logging.getLogger(__name__)

_SLASH_RE = re.compile(r"^/tdd\b", re.IGNORECASE)

USAGE = "🧪 **TDD Command Usage:**\n\n`/tdd <what to build>`\n\nExample: `/tdd add a function that validates email addresses`"


def can_handle(text: str) -> bool:
    return bool(_SLASH_RE.match(text.strip()))


def make_command(orchestrator: TddOrchestrator) -> ChatCommand:
    """Build the ``/tdd`` command bound to ``orchestrator``."""

    async def execute(text: str, context: SessionContext, collaborators: Collaborators) -> str:
        try:
            request = _SLASH_RE.sub("", text.strip()).strip()
            if not request:
                return USAGE
            if not context.is_agent_mode:
                return "⚠️ **Agent mode required**: enable agent mode to run the TDD workflow."
            return await orchestrator.run(request, context, collaborators)
        except Exception as e:
            logger.error("TDD command failed: %s", e, exc_info=True)
            return failure_message("**TDD Workflow Failed**", e)

    return ChatCommand(
        command="/tdd",
        can_handle=can_handle,
        execute=execute,
        description="Run the test-first workflow for a request (`/tdd <request>`)",
    )
