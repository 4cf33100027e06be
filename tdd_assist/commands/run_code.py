"""Run-code command: executes the most recent code block from the conversation.

Handles short follow-ups such as "test it" or "run this". Execution only
happens in auto mode and only for code without unsafe operations; otherwise
the user gets the command to run it manually.
"""

import asyncio
import logging
import os
import re
import uuid
from typing import NamedTuple, Optional

from ..collaborators import Collaborators
from ..session_context import SessionContext
from ..terminal_executor import is_code_safe_for_auto_execution
from .base import ChatCommand

logger = logging.getLogger(__name__)

EXECUTION_PATTERNS = [
    re.compile(r"^(?:test|run|try|execute)\s+it$"),
    re.compile(r"^(?:test|run|try|execute)\s+(?:this|that)$"),
    re.compile(r"^(?:test|run|try|execute)\s+the\s+(?:code|script|file)$"),
    re.compile(r"^can\s+you\s+(?:test|run|try|execute)\s+it\??$"),
    re.compile(r"^please\s+(?:test|run|try|execute)\s+it$"),
]

_CODE_BLOCK_RE = re.compile(r"```([\w+#-]*)[ \t]*\n(.*?)```", re.DOTALL)

RUNNERS = {
    "python": ("py", "python {path}"),
    "py": ("py", "python {path}"),
    "javascript": ("js", "node {path}"),
    "js": ("js", "node {path}"),
    "typescript": ("ts", "npx ts-node {path}"),
    "ts": ("ts", "npx ts-node {path}"),
}

MAX_SHOWN_OUTPUT = 2000


class CodeBlock(NamedTuple):
    language: str
    code: str


def can_handle(text: str) -> bool:
    normalized = text.lower().strip()
    return any(pattern.match(normalized) for pattern in EXECUTION_PATTERNS)


def find_last_code_block(context: SessionContext) -> Optional[CodeBlock]:
    """Most recent fenced code block in the recent conversation."""
    for message in reversed(context.get_conversation_history()[-5:]):
        blocks = _CODE_BLOCK_RE.findall(message.content)
        if blocks:
            language, code = blocks[-1]
            return CodeBlock(language.lower() or "python", code.strip("\n"))
    return None


def _no_code_response() -> str:
    return (
        "🤔 **Nothing to run**\n\n"
        "I couldn't find a code block in our recent conversation. "
        "Ask me to write some code first, then say \"test it\"."
    )


def _run_block(terminal, block: CodeBlock, directory: str):
    extension, template = RUNNERS[block.language]
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, f"snippet_{uuid.uuid4().hex[:8]}.{extension}")
    with open(path, "w", encoding="utf-8") as f:
        f.write(block.code)
    try:
        return terminal.run_command(template.format(path=path))
    finally:
        os.remove(path)


async def execute(text: str, context: SessionContext, collaborators: Collaborators) -> str:
    try:
        block = find_last_code_block(context)
        if block is None:
            return _no_code_response()
        if block.language not in RUNNERS:
            return f"⚠️ **Unsupported language**: I can't run `{block.language}` code yet."

        extension, template = RUNNERS[block.language]
        manual = template.format(path=f"snippet.{extension}")
        if not context.is_auto_mode:
            return (
                f"▶️ **Ready to run** ({block.language})\n\n"
                f"Save the code as `snippet.{extension}` and run `{manual}`, "
                "or enable auto mode to let me run it."
            )
        if not is_code_safe_for_auto_execution(block.code):
            return (
                "🛡️ **Manual confirmation required**\n\n"
                f"This code contains operations I won't run automatically. Review it and run `{manual}` yourself."
            )
        if collaborators.terminal is None:
            return "❌ **Code Execution Failed**: no terminal available"

        directory = os.path.join(context.get_artifact_root(), "run")
        loop = asyncio.get_running_loop()
        return_code, output = await loop.run_in_executor(
            None, _run_block, collaborators.terminal, block, directory
        )
        logger.info("Executed %s snippet with exit code %s", block.language, return_code)

        shown = output.strip()[:MAX_SHOWN_OUTPUT] or "(no output)"
        status = "✅ **Code ran successfully**" if return_code == 0 else f"❌ **Code exited with code {return_code}**"
        return f"{status}\n\n```\n{shown}\n```"
    except Exception as e:
        logger.error("Run-code command failed: %s", e, exc_info=True)
        return (
            f"❌ **Code Execution Failed**: {e}\n\n"
            "💡 **Tip**: Make sure there's a code block in our recent conversation that I can execute."
        )


COMMAND = ChatCommand(
    command="/run",
    can_handle=can_handle,
    execute=execute,
    description="Run the last code block (\"test it\")",
)
