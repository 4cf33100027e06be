"""Lint command: runs the project linter and summarizes its findings."""

import asyncio
import logging
import re
from collections import OrderedDict
from typing import Dict, List, NamedTuple, Optional

from ..collaborators import Collaborators
from ..session_context import SessionContext
from ..tech_stack_detector import PYTHON_STACKS
from ..terminal_executor import LAUNCH_FAILURE_CODE
from .base import ChatCommand, failure_message

logger = logging.getLogger(__name__)

_SLASH_RE = re.compile(r"^/(?:lint|fix)\b", re.IGNORECASE)
_LINT_VERB_RE = re.compile(r"\b(?:lint|linting|fix|fixing|check|validate|analy[sz]e)\b", re.IGNORECASE)
_LINT_TARGET_RE = re.compile(r"\b(?:code|file|project|errors|warnings|issues)\b", re.IGNORECASE)
_FILE_RE = re.compile(r"([\w./-]+\.(?:py|js|jsx|ts|tsx))\b", re.IGNORECASE)

# path:line:col: CODE message  (flake8 default and eslint unix formats)
_ISSUE_RE = re.compile(r"^(?P<path>[^:\n]+):(?P<line>\d+):(?P<col>\d+):\s*(?P<message>.+)$")

MAX_REPORTED_ISSUES = 20


class LintIssue(NamedTuple):
    path: str
    line: int
    column: int
    message: str


def can_handle(text: str) -> bool:
    if _SLASH_RE.match(text.strip()):
        return True
    return bool(_LINT_VERB_RE.search(text) and _LINT_TARGET_RE.search(text))


def parse_lint_output(output: str) -> List[LintIssue]:
    """Parse ``path:line:col: message`` lines, ignoring anything else."""
    issues = []
    for line in output.splitlines():
        match = _ISSUE_RE.match(line.strip())
        if match:
            issues.append(LintIssue(
                path=match.group("path"),
                line=int(match.group("line")),
                column=int(match.group("col")),
                message=match.group("message").strip(),
            ))
    return issues


def build_lint_command(context: SessionContext, target: str) -> str:
    if context.tech_stack is None or context.tech_stack in PYTHON_STACKS:
        if target == "." or target.endswith(".py"):
            return f"flake8 {target}"
    return f"npx eslint --format unix {target}"


def _resolve_target(text: str, context: SessionContext) -> Optional[str]:
    match = _FILE_RE.search(text)
    if not match:
        return "."
    entry = context.find_indexed_file(match.group(1))
    if entry is not None:
        return entry.path
    return None if context.is_codebase_indexed else match.group(1)


def format_lint_report(issues: List[LintIssue], target: str) -> str:
    by_file: Dict[str, List[LintIssue]] = OrderedDict()
    for issue in issues:
        by_file.setdefault(issue.path, []).append(issue)

    lines = [f"🔍 **Lint Results** for `{target}`: {len(issues)} issue(s) in {len(by_file)} file(s)", ""]
    shown = 0
    for path, file_issues in by_file.items():
        if shown >= MAX_REPORTED_ISSUES:
            break
        lines.append(f"**{path}**")
        for issue in file_issues:
            if shown >= MAX_REPORTED_ISSUES:
                break
            lines.append(f"- line {issue.line}, col {issue.column}: {issue.message}")
            shown += 1
    if len(issues) > shown:
        lines.append(f"\n...and {len(issues) - shown} more")
    return "\n".join(lines)


async def execute(text: str, context: SessionContext, collaborators: Collaborators) -> str:
    try:
        if collaborators.terminal is None:
            return failure_message("Lint failed", "no terminal available to run the linter")

        target = _resolve_target(text, context)
        if target is None:
            return f"❌ File not found in indexed codebase: {_FILE_RE.search(text).group(1)}"

        command = build_lint_command(context, target)
        logger.info("Running linter: %s", command)
        loop = asyncio.get_running_loop()
        return_code, output = await loop.run_in_executor(None, collaborators.terminal.run_command, command)

        if return_code == LAUNCH_FAILURE_CODE or return_code < 0:
            return failure_message("Lint failed", output.strip() or f"could not run `{command}`")

        issues = parse_lint_output(output)
        if not issues:
            if return_code != 0:
                return failure_message("Lint failed", output.strip() or f"linter exited with code {return_code}")
            return f"✅ **No lint issues found** in `{target}`"
        return format_lint_report(issues, target)
    except Exception as e:
        logger.error("Lint command failed: %s", e, exc_info=True)
        return failure_message("Lint failed", e)


COMMAND = ChatCommand(
    command="/lint",
    can_handle=can_handle,
    execute=execute,
    description="Lint the project or a file (`/lint [file]`)",
)
