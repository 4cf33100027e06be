"""Tech Stack Detector component for tdd_assist.

Responsible for detecting the tech stack, unit-test framework and UI-test
framework of an indexed project from its manifest dependency data.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

# Each rule maps dependency names to a label; the first rule with any of its
# dependencies present wins.
Rule = Tuple[Tuple[str, ...], str]

PACKAGE_JSON = "package.json"
REQUIREMENTS_TXT = "requirements.txt"

STACK_RULES: Dict[str, List[Rule]] = {
    PACKAGE_JSON: [
        (("react",), "React"),
        (("vue",), "Vue"),
        (("angular", "@angular/core"), "Angular"),
        (("express",), "Node.js"),
        (("next",), "Next.js"),
        (("svelte",), "Svelte"),
    ],
    REQUIREMENTS_TXT: [
        (("django",), "Django"),
        (("flask",), "Flask"),
        (("fastapi",), "FastAPI"),
    ],
}

# Stack reported when the manifest exists but no framework is recognised
DEFAULT_STACKS = {
    PACKAGE_JSON: "Node.js",
    REQUIREMENTS_TXT: "Python",
}

TEST_FRAMEWORK_RULES: Dict[str, List[Rule]] = {
    PACKAGE_JSON: [
        (("jest",), "Jest"),
        (("mocha",), "Mocha"),
        (("vitest",), "Vitest"),
        (("cypress",), "Cypress"),
        (("playwright",), "Playwright"),
        (("jasmine",), "Jasmine"),
    ],
    REQUIREMENTS_TXT: [
        (("pytest",), "pytest"),
        (("nose2",), "nose2"),
    ],
}

UI_TEST_FRAMEWORK_RULES: Dict[str, List[Rule]] = {
    PACKAGE_JSON: [
        (("playwright", "@playwright/test"), "Playwright"),
        (("cypress",), "Cypress"),
        (("selenium", "selenium-webdriver"), "Selenium"),
        (("@testing-library/react", "@testing-library/vue"), "Testing Library"),
    ],
    REQUIREMENTS_TXT: [
        (("playwright", "pytest-playwright"), "Playwright"),
        (("selenium",), "Selenium"),
    ],
}

MANIFEST_PRIORITY = (PACKAGE_JSON, REQUIREMENTS_TXT)

TECH_STACK_OPTIONS = [
    "React", "Vue", "Angular", "Node.js", "Express", "Next.js", "Svelte",
    "Python", "Django", "Flask", "FastAPI",
]
TEST_FRAMEWORK_OPTIONS = ["Jest", "Mocha", "Vitest", "Cypress", "pytest", "unittest"]
UI_TEST_FRAMEWORK_OPTIONS = ["Playwright", "Cypress", "Selenium", "Testing Library"]

FRONTEND_STACKS = {"React", "Vue", "Angular", "Next.js", "Svelte"}
PYTHON_STACKS = {"Python", "Django", "Flask", "FastAPI"}
TYPESCRIPT_STACKS = {"React", "Vue", "Angular", "Next.js", "TypeScript"}


def is_frontend_stack(tech_stack: Optional[str]) -> bool:
    return tech_stack in FRONTEND_STACKS


def language_for_stack(tech_stack: Optional[str]) -> str:
    """Language identifier used for code blocks and file extensions."""
    if tech_stack in PYTHON_STACKS:
        return "python"
    if tech_stack in TYPESCRIPT_STACKS:
        return "typescript"
    return "javascript"


def extension_for_stack(tech_stack: Optional[str]) -> str:
    return {"python": "py", "typescript": "ts"}.get(language_for_stack(tech_stack), "js")


@dataclass
class DetectedConfiguration:
    """Values found in the manifests; ``None`` means not detected."""

    tech_stack: Optional[str] = None
    test_framework: Optional[str] = None
    ui_test_framework: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.tech_stack is not None and self.test_framework is not None


class TechStackDetector:
    """Detects project configuration from indexed manifest data."""

    def __init__(self, manifests: Sequence[str] = MANIFEST_PRIORITY):
        """Initialize the TechStackDetector.

        Args:
            manifests: Manifest file names in lookup priority order
        """
        self.manifests = tuple(manifests)

    def detect_tech_stack(self, context) -> Optional[str]:
        """Detect the primary tech stack.

        Returns:
            The stack label, or ``None`` when no manifest is indexed
        """
        for manifest in self.manifests:
            dependencies = context.get_manifest_dependencies(manifest)
            if dependencies is None:
                continue
            label = self._first_match(STACK_RULES.get(manifest, []), dependencies)
            return label or DEFAULT_STACKS.get(manifest)
        return None

    def detect_test_framework(self, context) -> Optional[str]:
        return self._detect(context, TEST_FRAMEWORK_RULES)

    def detect_ui_test_framework(self, context) -> Optional[str]:
        return self._detect(context, UI_TEST_FRAMEWORK_RULES)

    def detect(self, context, include_ui: bool = False) -> DetectedConfiguration:
        """Detect everything the TDD workflow needs in one pass."""
        logger.info("Detecting tech stack from indexed manifests...")
        detected = DetectedConfiguration(
            tech_stack=self.detect_tech_stack(context),
            test_framework=self.detect_test_framework(context),
            ui_test_framework=self.detect_ui_test_framework(context) if include_ui else None,
        )
        logger.info(
            "Detection complete: stack=%s, tests=%s, ui tests=%s",
            detected.tech_stack, detected.test_framework, detected.ui_test_framework,
        )
        return detected

    def _detect(self, context, rules: Dict[str, List[Rule]]) -> Optional[str]:
        for manifest in self.manifests:
            dependencies = context.get_manifest_dependencies(manifest)
            if dependencies is None:
                continue
            label = self._first_match(rules.get(manifest, []), dependencies)
            if label:
                return label
        return None

    @staticmethod
    def _first_match(rules: List[Rule], dependencies: Dict[str, str]) -> Optional[str]:
        for names, label in rules:
            if any(name in dependencies for name in names):
                return label
        return None


def format_detected_configuration(detected: DetectedConfiguration, include_ui: bool = False) -> str:
    """Build the detection confirmation shown before the workflow summary."""
    lines = [
        "✅ **Detected Configuration**:",
        f"- **Tech stack**: {detected.tech_stack}",
        f"- **Test framework**: {detected.test_framework}",
    ]
    if include_ui and detected.ui_test_framework:
        lines.append(f"- **UI test framework**: {detected.ui_test_framework}")
    return "\n".join(lines)
