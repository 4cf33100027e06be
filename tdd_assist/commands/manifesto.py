"""Manifesto command: shows the project's development rules or generates new ones."""

import logging
import os
import re

from ..agent_client import extract_content, strip_code_fences
from ..collaborators import Collaborators
from ..session_context import SessionContext
from .base import ChatCommand, failure_message

logger = logging.getLogger(__name__)

MANIFESTO_FILE = "manifesto.md"

_SLASH_RE = re.compile(r"^/manifesto\b", re.IGNORECASE)
_SHOW_WORDS_RE = re.compile(r"\b(?:manifesto|rules|read|show|display)\b", re.IGNORECASE)
_RULES_RE = re.compile(r"\b(?:manifesto|rules)\b", re.IGNORECASE)
# Common misspellings are accepted
_VARIANTS_RE = re.compile(
    r"\b(?:manifesto|manifsto|manfesto|manifets|manifest|manafesto|manifiest)\b", re.IGNORECASE
)
_CREATE_RE = re.compile(r"\b(?:generate|create|make|build|write|gen)\b", re.IGNORECASE)
_PROJECT_RE = re.compile(r"\b(?:for|project|app|application)\b", re.IGNORECASE)

MANIFESTO_TYPES = [
    (re.compile(r"\b(?:qa|test|testing)\b", re.IGNORECASE), "QA/Testing"),
    (re.compile(r"\b(?:security|secure|auth)\b", re.IGNORECASE), "Security"),
    (re.compile(r"\b(?:api|rest|endpoint)\b", re.IGNORECASE), "API"),
    (re.compile(r"\b(?:frontend|ui|react|vue|angular)\b", re.IGNORECASE), "Frontend/UI"),
    (re.compile(r"\b(?:performance|fast|speed)\b", re.IGNORECASE), "Performance"),
]

TYPE_RULES = {
    "QA/Testing": [
        "Unit tests required for all business logic",
        "Tests are written before the implementation",
        "Every bug fix ships with a regression test",
    ],
    "Security": [
        "Validate and sanitize all user input",
        "Never log secrets or credentials",
        "Use parameterized queries for database access",
    ],
    "API": [
        "RESTful resource naming",
        "Consistent error response format",
        "Version every public endpoint",
    ],
    "Frontend/UI": [
        "Component-based architecture",
        "Accessible markup for every interactive element",
        "UI behaviour covered by UI tests",
    ],
    "Performance": [
        "Measure before optimizing",
        "Avoid N+1 database queries",
        "Cache expensive computations",
    ],
}

CORE_RULES = [
    "Comprehensive error handling for every operation",
    "Input validation at every boundary",
    "Tests accompany every change",
    "Document public interfaces",
    "No hard-coded secrets",
]


def can_handle(text: str) -> bool:
    if _SLASH_RE.match(text.strip()):
        return True
    if _SHOW_WORDS_RE.search(text) and _RULES_RE.search(text):
        return True
    if _VARIANTS_RE.search(text) and (_CREATE_RE.search(text) or _PROJECT_RE.search(text)):
        return True
    return False


def is_generation_request(text: str) -> bool:
    return bool(_CREATE_RE.search(text) and _VARIANTS_RE.search(text))


def detect_manifesto_type(text: str) -> str:
    for pattern, label in MANIFESTO_TYPES:
        if pattern.search(text):
            return label
    return "General"


def build_template(manifesto_type: str) -> str:
    """Rule template for a manifesto type."""
    rules = CORE_RULES + TYPE_RULES.get(manifesto_type, [])
    body = "\n".join(f"- {rule}" for rule in rules)
    return f"# Development Manifesto ({manifesto_type})\n\n## Rules\n\n{body}\n"


def show_manifesto(context: SessionContext) -> str:
    entry = context.find_indexed_file(MANIFESTO_FILE)
    if entry is not None:
        return f"📋 **Project Manifesto** (`{entry.path}`)\n\n{entry.content}"
    path = os.path.join(os.path.abspath(context.workspace_path), MANIFESTO_FILE)
    if os.path.isfile(path):
        with open(path, "r", encoding="utf-8") as f:
            return f"📋 **Project Manifesto** (`{MANIFESTO_FILE}`)\n\n{f.read()}"
    rules = "\n".join(f"- {rule}" for rule in CORE_RULES)
    return (
        f"📋 **Built-in Development Rules**\n\n{rules}\n\n"
        "💡 Ask me to \"generate a manifesto\" to create a project-specific manifesto.md."
    )


async def generate_manifesto(text: str, context: SessionContext, collaborators: Collaborators) -> str:
    manifesto_type = detect_manifesto_type(text)
    template = build_template(manifesto_type)

    if not context.is_agent_mode:
        return (
            f"📋 **{manifesto_type} Manifesto Template**\n\n{template}\n"
            f"💡 Enable agent mode to save this as `{MANIFESTO_FILE}`."
        )
    if collaborators.file_writer is None:
        return failure_message("Failed to generate manifesto", "no file writer available")

    content = template
    if collaborators.agent is not None:
        prompt = (
            f"Write a development manifesto in Markdown for this request:\n\n{text}\n\n"
            f"Tech stack: {context.tech_stack or 'unknown'}\n\n"
            f"Start from these rules and extend them:\n\n{template}\n"
            "Return ONLY the Markdown document."
        )
        content = strip_code_fences(extract_content(await collaborators.agent.send_message(prompt))) or template

    path = os.path.join(os.path.abspath(context.workspace_path), MANIFESTO_FILE)
    location = await collaborators.file_writer.write(path, content)
    context.add_indexed_file(MANIFESTO_FILE, content)
    logger.info("Wrote %s manifesto to %s", manifesto_type, location)
    return f"✅ **{manifesto_type} manifesto created** at `{location}`"


async def execute(text: str, context: SessionContext, collaborators: Collaborators) -> str:
    try:
        if is_generation_request(text):
            return await generate_manifesto(text, context, collaborators)
        return show_manifesto(context)
    except Exception as e:
        logger.error("Manifesto command failed: %s", e, exc_info=True)
        return failure_message("Manifesto operation failed", e)


COMMAND = ChatCommand(
    command="/manifesto",
    can_handle=can_handle,
    execute=execute,
    description="Show or generate the project's development rules",
)
