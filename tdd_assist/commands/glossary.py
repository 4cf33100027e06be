"""Glossary command: define, look up, list and remove project terms."""

import difflib
import logging
import re
from typing import Optional

from ..collaborators import Collaborators
from ..session_context import SessionContext
from .base import ChatCommand, failure_message

logger = logging.getLogger(__name__)

_SLASH_RE = re.compile(r"^/(?:glossary|define|lookup)\b", re.IGNORECASE)
_KEYWORD_RE = re.compile(
    r"\b(?:glossary|define|add\s+term|add\s+definition|what\s+does.*mean|acronym)\b", re.IGNORECASE
)

_DEFINE_SLASH_RE = re.compile(r"^/define\s+([\w-]+)(?:\s+(.+))?$", re.IGNORECASE | re.DOTALL)
_LOOKUP_SLASH_RE = re.compile(r"^/lookup\s+([\w-]+)", re.IGNORECASE)
_DEFINE_AS_RE = re.compile(r"\bdefine\s+([\w-]+)\s+as\s+(.+)$", re.IGNORECASE | re.DOTALL)
_ADD_TERM_RE = re.compile(r"\badd\s+term\s+([\w-]+)\s+meaning\s+(.+)$", re.IGNORECASE | re.DOTALL)
_WHAT_DOES_RE = re.compile(r"\bwhat\s+does\s+([\w-]+)\s+mean\b", re.IGNORECASE)
_SHOW_RE = re.compile(r"^/glossary$|\bshow\s+(?:the\s+)?glossary\b", re.IGNORECASE)
_REMOVE_RE = re.compile(r"\b(?:remove|delete)\s+(?:term\s+)?([\w-]+)", re.IGNORECASE)

HELP_TEXT = (
    "📖 **Glossary Commands**\n\n"
    "- `/define TERM definition` or \"Define TERM as DEFINITION\"\n"
    "- `/lookup TERM` or \"What does TERM mean?\"\n"
    "- `/glossary` or \"Show glossary\"\n"
    "- \"Remove TERM from glossary\""
)


def can_handle(text: str) -> bool:
    return bool(_SLASH_RE.match(text.strip()) or _KEYWORD_RE.search(text))


def add_term(context: SessionContext, term: str, definition: str) -> str:
    key = term.upper()
    definition = definition.strip().rstrip(".")
    existing = context.glossary.get(key)
    if existing is not None:
        return (
            f"📖 **Term \"{term}\" already exists**\n\n"
            f"**Current definition:** {existing}\n\n"
            f"Remove it first to replace it with: {definition}"
        )
    context.glossary[key] = definition
    logger.info("Added glossary term %s", key)
    return (
        f"✅ **Added to glossary:**\n\n**{term}**: {definition}\n\n"
        f"📊 **Glossary now contains {len(context.glossary)} terms**"
    )


def lookup_term(context: SessionContext, term: str) -> str:
    definition = context.glossary.get(term.upper())
    if definition is not None:
        return f"📖 **{term.upper()}**: {definition}"
    response = f"❌ **Term \"{term}\" not found in glossary**"
    suggestions = difflib.get_close_matches(term.upper(), list(context.glossary), n=3, cutoff=0.6)
    if suggestions:
        response += "\n\n**Did you mean:** " + ", ".join(suggestions)
    return response


def show_glossary(context: SessionContext) -> str:
    if not context.glossary:
        return "📖 **Glossary is empty**\n\nAdd a term with `/define TERM definition`."
    entries = "\n".join(f"- **{term}**: {context.glossary[term]}" for term in sorted(context.glossary))
    return f"📖 **Project Glossary** ({len(context.glossary)} terms)\n\n{entries}"


def remove_term(context: SessionContext, term: str) -> str:
    if context.glossary.pop(term.upper(), None) is None:
        return f"❌ **Term \"{term}\" not found in glossary**"
    logger.info("Removed glossary term %s", term.upper())
    return f"🗑️ **Removed \"{term}\" from glossary**"


def _route(text: str, context: SessionContext) -> Optional[str]:
    stripped = text.strip()
    match = _DEFINE_SLASH_RE.match(stripped)
    if match:
        term, definition = match.groups()
        return add_term(context, term, definition) if definition else lookup_term(context, term)
    if re.match(r"^/define\b", stripped, re.IGNORECASE):
        return "📖 **Define Command Usage:**\n\n`/define TERM definition here`"
    match = _LOOKUP_SLASH_RE.match(stripped)
    if match:
        return lookup_term(context, match.group(1))
    if re.match(r"^/lookup\b", stripped, re.IGNORECASE):
        return "🔍 **Lookup Command Usage:**\n\n`/lookup TERM`"
    for pattern in (_DEFINE_AS_RE, _ADD_TERM_RE):
        match = pattern.search(stripped)
        if match:
            return add_term(context, match.group(1), match.group(2))
    match = _WHAT_DOES_RE.search(stripped)
    if match:
        return lookup_term(context, match.group(1))
    if _SHOW_RE.search(stripped):
        return show_glossary(context)
    match = _REMOVE_RE.search(stripped)
    if match:
        return remove_term(context, match.group(1))
    return None


async def execute(text: str, context: SessionContext, collaborators: Collaborators) -> str:
    try:
        return _route(text, context) or HELP_TEXT
    except Exception as e:
        logger.error("Glossary command failed: %s", e, exc_info=True)
        return failure_message("Glossary operation failed", e)


COMMAND = ChatCommand(
    command="/glossary",
    can_handle=can_handle,
    execute=execute,
    description="Manage project terms (`/define`, `/lookup`, `/glossary`)",
)
