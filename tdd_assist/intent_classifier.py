"""Deterministic intent classification for chat messages.

The classifier decides whether a message describes concrete code work that
may trigger automatic action. Rules are evaluated in a fixed priority order
and the first category with a matching pattern wins, so a message that fits
several categories is always reported the same way. UI issue reports are
checked before generic bug fixes because they often contain the word
"broken" as well.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Pattern, Tuple

from .logging_utils import truncate_for_log

logger = logging.getLogger(__name__)


class ClassificationCategory(Enum):
    CODE_GENERATION = "code_generation"
    UI_ISSUE_REPORT = "ui_issue_report"
    REFACTORING = "refactoring"
    BUG_FIX = "bug_fix"
    FEATURE_ADDITION = "feature_addition"
    OPTIMIZATION = "optimization"
    UNCLEAR = "unclear"
    NONE = "none"


@dataclass(frozen=True)
class Classification:
    """Outcome of classifying one message.

    ``matched_rule`` is the pattern that decided the category, or ``None``
    when nothing matched.
    """

    category: ClassificationCategory
    matched_rule: Optional[str] = None


def _compile(*patterns: str) -> List[Pattern]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


# Up to four intervening words between the verb and the object noun
_WINDOW = r"(?:\s+[\w'-]+){0,4}?\s+"

_CODE_VERBS = r"(?:create|write|build|implement|generate|make|develop|add)"
_CODE_OBJECTS = r"(?:functions?|class(?:es)?|components?|methods?|apis?|services?|modules?|scripts?)"

_STRUCTURE_NOUNS = (
    r"(?:code|codebase|functions?|class(?:es)?|methods?|modules?|components?|files?|services?|"
    r"logic|variables?|packages?|structure|handlers?|apis?|helpers?|utils|tests?)"
)

_CAPABILITIES = (
    r"(?:logging|authentication|auth|authorization|validation|monitoring|caching|cache|"
    r"pagination|search|notifications?|analytics|metrics|rate\s+limiting|localization|"
    r"internationalization|i18n|export|import|dark\s+mode|error\s+handling|retries|"
    r"encryption|audit(?:ing)?)"
)

CLASSIFICATION_RULES: List[Tuple[ClassificationCategory, List[Pattern]]] = [
    (ClassificationCategory.CODE_GENERATION, _compile(
        rf"\b{_CODE_VERBS}\b{_WINDOW}{_CODE_OBJECTS}\b",
        r"\bhello\s+world\b",
    )),
    (ClassificationCategory.UI_ISSUE_REPORT, _compile(
        r"\b(?:should|must|needs?\s+to)\s+be\s+(?:horizontally\s+|vertically\s+)?"
        r"(?:aligned|centered|centred|positioned|placed|stacked)\b",
        r"\b(?:misaligned|overlapping|overlaps|off[\s-]cent(?:er|re)|not\s+aligned|"
        r"not\s+centered|out\s+of\s+place)\b",
        r"\bsection\s+should\s+(?:be\s+)?removed\b",
        r"\b(?:tabs?|dropdowns?|drop-downs?)\b.*\b(?:broken|not\s+working|doesn'?t\s+work|"
        r"don'?t\s+work|not\s+opening|not\s+switching)\b",
        r"\bbroken\s+(?:tabs?|dropdowns?|drop-downs?)\b",
        r"\bshould\s+have\s+been\s+(?:fixed|removed|positioned)\b",
        r"\b(?:layout|positioning|alignment)\b.*\b(?:wrong|off|broken|weird)\b",
    )),
    (ClassificationCategory.REFACTORING, _compile(
        r"\b(?:refactor|restructure|reorgani[sz]e|clean\s+up|simplify|optimi[sz]e|consolidate|"
        rf"extract|rename|move|split|merge)\b{_WINDOW}{_STRUCTURE_NOUNS}\b",
        r"\bmake\b.*\bmore\s+(?:efficient|readable|maintainable)\b",
    )),
    (ClassificationCategory.BUG_FIX, _compile(
        r"\b(?:fix|resolve|debug|solve)\b",
        r"\b(?:bugs?|errors?|issues?|problems?|crash(?:es|ed|ing)?|broken)\b",
        r"\bnot\s+working\b",
        r"\bdoesn'?t\s+work\b",
    )),
    (ClassificationCategory.FEATURE_ADDITION, _compile(
        rf"\b(?:add|include|implement|integrate)\b.*\b{_CAPABILITIES}\b",
        r"\bwe\s+need\s+(?:a\s+|an\s+)?new\s+(?:feature|capability|functionality)\b",
    )),
    (ClassificationCategory.OPTIMIZATION, _compile(
        r"\b(?:optimi[sz]e|improve|speed\s+up|reduce|minimi[sz]e)\b",
        r"\b(?:performance|speed|memory|cpu|bandwidth|latency)\b",
        r"\b(?:too\s+slow|is\s+slow|are\s+slow|runs?\s+slow(?:ly)?|sluggish|laggy|takes\s+too\s+long)\b",
    )),
]

# Filler replies that never justify automatic action
UNCLEAR_RESPONSES = frozenset({
    "help", "?", "??", "???", "huh", "huh?", "what", "what?", "hmm", "hmmm", "hm",
    "ok", "okay", "k", "yes", "no", "idk", "sure", "thanks", "thx", "lol", "...",
})
UNCLEAR_MAX_LENGTH = 3


def classify_request(text: str) -> Classification:
    """Classify a message and report the rule that decided it."""
    normalized = text.strip()
    for category, patterns in CLASSIFICATION_RULES:
        for pattern in patterns:
            if pattern.search(normalized):
                return Classification(category, pattern.pattern)
    if normalized.lower() in UNCLEAR_RESPONSES or len(normalized) <= UNCLEAR_MAX_LENGTH:
        return Classification(ClassificationCategory.UNCLEAR, "unclear-response")
    return Classification(ClassificationCategory.NONE)


def classify(text: str) -> ClassificationCategory:
    return classify_request(text).category


def should_trigger_automatic_fixes(text: str, context) -> bool:
    """Decide whether a message may start automatic code work.

    Chat mode (``context.is_agent_mode`` false) never triggers automatic
    action. In agent mode every message qualifies unless it is an unclear
    filler reply.
    """
    if not context.is_agent_mode:
        return False
    classification = classify_request(text)
    logger.debug(
        "Classified %r as %s (rule: %s)",
        truncate_for_log(text), classification.category.value, classification.matched_rule,
    )
    return classification.category is not ClassificationCategory.UNCLEAR
