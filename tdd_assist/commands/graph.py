"""Graph command: references, change impact and an overview of the indexed codebase."""

import logging
import os
import re
from dataclasses import dataclass
from typing import List, Tuple

from ..collaborators import Collaborators
from ..session_context import SessionContext
from .base import ChatCommand, failure_message

logger = logging.getLogger(__name__)

_SLASH_RE = re.compile(r"^/(?:references|impact|graph)\b", re.IGNORECASE)
_TOPIC_RE = re.compile(r"\b(?:references|dependencies|impact|graph|analy[sz]e|structure|relationships)\b", re.IGNORECASE)
_SCOPE_RE = re.compile(r"\b(?:code|codebase|project|files|modules)\b", re.IGNORECASE)

_REFERENCES_RE = re.compile(r"^/references\b|\breferences\b", re.IGNORECASE)
_IMPACT_RE = re.compile(r"^/impact\b|\bimpact\b", re.IGNORECASE)
_FILE_RE = re.compile(r"([\w-]+\.(?:ts|js|tsx|jsx|py|java|cs|cpp|h))\b", re.IGNORECASE)
_REFERENCE_TARGET_RE = re.compile(r"(?:^/references\s+|\breferences?\s+(?:for\s+|to\s+)?)([\w.-]+)", re.IGNORECASE)
_IMPACT_TARGET_RE = re.compile(r"(?:^/impact\s+|\bimpact\s+(?:of\s+)?(?:changing\s+|modifying\s+)?)([\w.-]+)", re.IGNORECASE)

_COMMENT_PREFIXES = ("//", "#", "*", "/*")
_IMPORT_RE = re.compile(r"^\s*(?:import\b|from\s+[\w.]+\s+import\b|.*\brequire\s*\()")

_DEFINITION_PATTERNS = {
    "functions": re.compile(r"\b(?:function|def)\s+\w+"),
    "classes": re.compile(r"\bclass\s+\w+"),
    "interfaces": re.compile(r"\binterface\s+\w+"),
}
# keyword -> weight in the complexity score
_BRANCH_WEIGHTS = {"if": 1, "elif": 1, "for": 2, "while": 2, "switch": 3, "catch": 1, "except": 1}
_BRANCH_RE = re.compile(r"\b(" + "|".join(_BRANCH_WEIGHTS) + r")\b\s*[\w(]")
HOTSPOT_THRESHOLD = 5

MAX_LISTED_REFERENCES = 10
MAX_OVERVIEW_ENTRIES = 5

NOT_INDEXED_MESSAGE = (
    "⚠️ **Codebase not indexed yet!**\n\n"
    "I need to index your codebase before analysing its structure. Run the index command first."
)


@dataclass(frozen=True)
class Reference:
    path: str
    line: int
    text: str


def can_handle(text: str) -> bool:
    return bool(_SLASH_RE.match(text.strip()) or (_TOPIC_RE.search(text) and _SCOPE_RE.search(text)))


def _is_comment(line: str) -> bool:
    return line.lstrip().startswith(_COMMENT_PREFIXES)


def find_symbol_references(context: SessionContext, symbol: str) -> List[Reference]:
    """Lines of indexed files that mention ``symbol`` as a whole word, comments excluded."""
    pattern = re.compile(r"\b" + re.escape(symbol) + r"\b")
    references = []
    for path in sorted(context.codebase_index):
        for number, line in enumerate(context.codebase_index[path].content.splitlines(), start=1):
            if pattern.search(line) and not _is_comment(line):
                references.append(Reference(path, number, line.strip()))
    return references


def find_file_importers(context: SessionContext, file_name: str) -> List[Reference]:
    """Import lines that pull in ``file_name`` (by file name or module stem)."""
    stem = os.path.splitext(os.path.basename(file_name))[0]
    pattern = re.compile(r"\b" + re.escape(stem) + r"\b")
    importers = []
    for path in sorted(context.codebase_index):
        if os.path.splitext(os.path.basename(path))[0] == stem:
            continue
        for number, line in enumerate(context.codebase_index[path].content.splitlines(), start=1):
            if _IMPORT_RE.match(line) and pattern.search(line):
                importers.append(Reference(path, number, line.strip()))
    return importers


def risk_level(count: int, medium: int, high: int) -> str:
    if count > high:
        return "HIGH"
    if count > medium:
        return "MEDIUM"
    return "LOW"


def _format_references(title: str, references: List[Reference]) -> str:
    lines = [f"🔍 **{title}** ({len(references)} found)", ""]
    for reference in references[:MAX_LISTED_REFERENCES]:
        lines.append(f"**{reference.path}:{reference.line}**")
        lines.append(f"`{reference.text}`")
    if len(references) > MAX_LISTED_REFERENCES:
        lines.append(f"... and {len(references) - MAX_LISTED_REFERENCES} more")
    return "\n".join(lines)


def references_report(context: SessionContext, target: str) -> str:
    if _FILE_RE.fullmatch(target):
        importers = find_file_importers(context, target)
        if not importers:
            return f"🔍 **No imports found for \"{target}\"** in the indexed codebase"
        return _format_references(f"Files importing \"{target}\"", importers)

    references = find_symbol_references(context, target)
    if not references:
        return f"🔍 **No references found for \"{target}\"** in the indexed codebase"
    return (
        _format_references(f"References for \"{target}\"", references)
        + f"\n\n💡 **Impact**: Changes to \"{target}\" affect {len(references)} locations"
    )


def impact_report(context: SessionContext, target: str) -> str:
    if _FILE_RE.fullmatch(target):
        affected = find_file_importers(context, target)
        level = risk_level(len(affected), medium=3, high=8)
        label = "Importing Files"
        advice = {
            "HIGH": "⚠️ Core module - changes cascade to many files; run the full regression suite",
            "MEDIUM": "🔶 Shared module - test every importing module",
            "LOW": "✅ Isolated module - standard testing applies",
        }[level]
    else:
        affected = find_symbol_references(context, target)
        level = risk_level(len(affected), medium=5, high=10)
        label = "Affected Locations"
        advice = {
            "HIGH": "⚠️ High-risk change - extensive testing and backward compatibility review required",
            "MEDIUM": "🔶 Medium-risk change - review affected files and update their tests",
            "LOW": "✅ Low-risk change - verify the affected areas",
        }[level]

    response = (
        f"📊 **Impact Analysis for \"{target}\"**\n\n"
        f"**Risk Level:** {level}\n"
        f"**{label}:** {len(affected)}\n\n"
        f"{advice}"
    )
    if affected:
        response += "\n\n" + _format_references("Affected", affected)
    return response


def _complexity(content: str) -> int:
    score = sum(_BRANCH_WEIGHTS[match.group(1)] for match in _BRANCH_RE.finditer(content))
    return score + len(content) // 1000


def overview_report(context: SessionContext) -> str:
    totals = {name: 0 for name in _DEFINITION_PATTERNS}
    dependencies: List[Tuple[str, int]] = []
    hotspots: List[Tuple[str, int]] = []

    for path, entry in context.codebase_index.items():
        for name, pattern in _DEFINITION_PATTERNS.items():
            totals[name] += len(pattern.findall(entry.content))
        imports = sum(1 for line in entry.content.splitlines() if _IMPORT_RE.match(line))
        if imports:
            dependencies.append((path, imports))
        score = _complexity(entry.content)
        if score > HOTSPOT_THRESHOLD:
            hotspots.append((path, score))

    dependencies.sort(key=lambda item: (-item[1], item[0]))
    hotspots.sort(key=lambda item: (-item[1], item[0]))

    lines = [
        "📊 **Codebase Graph Analysis**",
        "",
        "**Overview:**",
        f"- {len(context.codebase_index)} files indexed",
        f"- {totals['functions']} functions found",
        f"- {totals['classes']} classes found",
        f"- {totals['interfaces']} interfaces found",
        "",
        "**Dependencies:**",
    ]
    lines.extend(f"- {path} → imports {count} modules" for path, count in dependencies[:MAX_OVERVIEW_ENTRIES])
    if not dependencies:
        lines.append("- none")
    lines += ["", "**Complexity Hotspots:**"]
    lines.extend(f"- {path} ({score} complexity score)" for path, score in hotspots[:MAX_OVERVIEW_ENTRIES])
    if not hotspots:
        lines.append("- none")
    lines += [
        "",
        "**Available Commands:**",
        "- `/references <symbol or file>` - find where it is used",
        "- `/impact <symbol or file>` - estimate the risk of changing it",
    ]
    return "\n".join(lines)


async def execute(text: str, context: SessionContext, collaborators: Collaborators) -> str:
    try:
        if not context.is_codebase_indexed:
            return NOT_INDEXED_MESSAGE

        request = text.strip()
        if _REFERENCES_RE.search(request):
            match = _REFERENCE_TARGET_RE.search(request) or _FILE_RE.search(request)
            if not match:
                return "🔍 **Reference Analysis**\n\nName a symbol or file, e.g. `/references UserService`."
            return references_report(context, match.group(1).rstrip("."))

        if _IMPACT_RE.search(request):
            match = _IMPACT_TARGET_RE.search(request) or _FILE_RE.search(request)
            if not match:
                return "📊 **Impact Analysis**\n\nName a symbol or file, e.g. `/impact database.py`."
            return impact_report(context, match.group(1).rstrip("."))

        return overview_report(context)
    except Exception as e:
        logger.error("Graph command failed: %s", e, exc_info=True)
        return failure_message("Graph analysis failed", e)


COMMAND = ChatCommand(
    command="/graph",
    can_handle=can_handle,
    execute=execute,
    description="Analyse the indexed codebase (`/graph`, `/references <name>`, `/impact <name>`)",
)
