"""Code command: generates code for a request.

Chat mode only shows the generated code. Agent mode also saves it under the
artifact directory.
"""

import logging
import os
import re

from ..agent_client import extract_content, strip_code_fences
from ..collaborators import Collaborators
from ..session_context import SessionContext
from ..tdd_orchestrator import slugify
from ..tech_stack_detector import language_for_stack
from .base import ChatCommand, failure_message

logger = logging.getLogger(__name__)

_CODE_RE = re.compile(
    r"\b(?:write|create|generate|build|make|code|function|class|component|hello\s+world|script)\b",
    re.IGNORECASE,
)
_LANGUAGE_HINTS = [
    (re.compile(r"\bpython\b", re.IGNORECASE), "python"),
    (re.compile(r"\btypescript\b|\bts\b", re.IGNORECASE), "typescript"),
    (re.compile(r"\bjavascript\b|\bjs\b|\bnode\b", re.IGNORECASE), "javascript"),
]
EXTENSIONS = {"python": "py", "typescript": "ts", "javascript": "js"}

HELLO_WORLD = {
    "python": 'def main():\n    print("Hello, World!")\n\n\nif __name__ == "__main__":\n    main()',
    "typescript": 'function main(): void {\n  console.log("Hello, World!");\n}\n\nmain();',
    "javascript": 'function main() {\n  console.log("Hello, World!");\n}\n\nmain();',
}


def can_handle(text: str) -> bool:
    return bool(_CODE_RE.search(text))


def detect_language(text: str, context: SessionContext) -> str:
    for pattern, language in _LANGUAGE_HINTS:
        if pattern.search(text):
            return language
    return language_for_stack(context.tech_stack)


def _build_prompt(text: str, language: str, context: SessionContext) -> str:
    prompt = f"Write {language} code for the following request:\n\n{text}\n\n"
    if context.glossary:
        terms = "\n".join(f"- {term}: {definition}" for term, definition in sorted(context.glossary.items()))
        prompt += f"Project glossary:\n{terms}\n\n"
    history = context.get_conversation_context(3)
    if history:
        prompt += f"Recent conversation:\n{history}\n\n"
    return prompt + "Return ONLY the code, no explanations."


async def execute(text: str, context: SessionContext, collaborators: Collaborators) -> str:
    try:
        language = detect_language(text, context)
        if re.search(r"\bhello\s+world\b", text, re.IGNORECASE):
            code = HELLO_WORLD[language]
        elif collaborators.agent is not None:
            response = await collaborators.agent.send_message(_build_prompt(text, language, context))
            code = strip_code_fences(extract_content(response))
        else:
            return (
                "💡 **Code generation needs an agent**\n\n"
                "No agent client is configured. Set `TDD_ASSIST_AGENT_ENDPOINT` and try again."
            )

        if not code:
            return failure_message("Code generation failed", "the agent returned no code")

        response_text = f"💻 **Generated {language} code:**\n\n```{language}\n{code}\n```"
        if not context.is_agent_mode or collaborators.file_writer is None:
            return response_text + "\n\n💡 Say \"test it\" to run this code."

        path = os.path.join(context.get_artifact_root(), "src", f"{slugify(text)}.{EXTENSIONS[language]}")
        location = await collaborators.file_writer.write(path, code)
        logger.info("Saved generated code to %s", location)
        return response_text + f"\n\n✅ Saved to `{location}`"
    except Exception as e:
        logger.error("Code command failed: %s", e, exc_info=True)
        return failure_message("Code generation failed", e)


COMMAND = ChatCommand(
    command="/code",
    can_handle=can_handle,
    execute=execute,
    description="Generate code for a request",
)
