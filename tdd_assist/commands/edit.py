"""Edit command: plans edits in chat mode and applies them in agent mode."""

import logging
import os
import re

from ..agent_client import extract_content, strip_code_fences
from ..collaborators import Collaborators
from ..session_context import IndexedFile, SessionContext
from .base import ChatCommand, failure_message

logger = logging.getLogger(__name__)

_SLASH_RE = re.compile(r"^/edit\b", re.IGNORECASE)
_EDIT_RE = re.compile(r"\b(?:edit|modify|update|change|fix|add\s+to)\b", re.IGNORECASE)
_FILE_RE = re.compile(r"([\w./-]+\.(?:ts|js|tsx|jsx|py|java|cs|cpp|h|md|json))\b", re.IGNORECASE)

PREVIEW_LENGTH = 300
MAX_LISTED_FILES = 8

EDIT_TYPES = [
    (("add", "create"), "Add new functionality"),
    (("fix", "repair"), "Fix existing code"),
    (("refactor", "restructure"), "Refactor/restructure"),
    (("update", "modify"), "Update existing functionality"),
    (("remove", "delete"), "Remove functionality"),
    (("optimize", "improve"), "Optimize/improve"),
]


def can_handle(text: str) -> bool:
    return bool(_SLASH_RE.match(text.strip()) or _EDIT_RE.search(text))


def determine_edit_type(text: str) -> str:
    lowered = text.lower()
    for keywords, label in EDIT_TYPES:
        if any(keyword in lowered for keyword in keywords):
            return label
    return "General modification"


def _available_files(context: SessionContext, limit: int = MAX_LISTED_FILES) -> str:
    return ", ".join(sorted(context.codebase_index)[:limit]) or "none"


def _plan_response(request: str, entry: IndexedFile) -> str:
    preview = entry.content[:PREVIEW_LENGTH] + ("..." if len(entry.content) > PREVIEW_LENGTH else "")
    return (
        f"📝 **Ready to edit {entry.path}**\n\n"
        f"**Edit Type:** {determine_edit_type(request)}\n\n"
        f"**Current Content Preview:**\n```\n{preview}\n```\n\n"
        "Enable agent mode to let me apply this edit."
    )


def _build_edit_prompt(request: str, entry: IndexedFile) -> str:
    return (
        f"Apply the following change to {entry.path}:\n\n{request}\n\n"
        f"Current content:\n```\n{entry.content}\n```\n\n"
        "Return ONLY the complete updated file content, no explanations."
    )


async def execute(text: str, context: SessionContext, collaborators: Collaborators) -> str:
    try:
        if not context.is_codebase_indexed:
            return (
                "⚠️ **Codebase not indexed yet!**\n\n"
                "I need to index your codebase before editing files. Run the index command first."
            )

        request = _SLASH_RE.sub("", text.strip()).strip()
        match = _FILE_RE.search(request)
        if not match:
            return (
                "📝 **Smart Editing Ready**\n\n"
                f"**Request:** {request}\n**Edit Type:** {determine_edit_type(request)}\n\n"
                "Mention the file to edit, e.g. \"Edit user_service.py to add validation\".\n\n"
                f"**Available files:** {_available_files(context)}"
            )

        entry = context.find_indexed_file(match.group(1))
        if entry is None:
            return (
                f"❌ File \"{match.group(1)}\" not found in indexed codebase.\n\n"
                f"**Available files:** {_available_files(context)}"
            )

        if not context.is_agent_mode:
            return _plan_response(request, entry)
        if collaborators.agent is None or collaborators.file_writer is None:
            return failure_message("Edit failed", "agent mode needs an agent client and a file writer")

        response = await collaborators.agent.send_message(_build_edit_prompt(request, entry))
        updated = strip_code_fences(extract_content(response))
        if not updated:
            return failure_message("Edit failed", "the agent returned no content")

        location = await collaborators.file_writer.write(
            os.path.join(os.path.abspath(context.workspace_path), entry.path), updated
        )
        context.add_indexed_file(entry.path, updated)
        logger.info("Applied edit to %s", location)
        return f"✅ **Edited {entry.path}** ({determine_edit_type(request)})\n\nSaved to `{location}`"
    except Exception as e:
        logger.error("Edit command failed: %s", e, exc_info=True)
        return failure_message("Edit operation failed", e)


COMMAND = ChatCommand(
    command="/edit",
    can_handle=can_handle,
    execute=execute,
    description="Edit an indexed file (`/edit <file> <change>`)",
)
