"""Tests for manifest-based tech stack detection."""

import json

import pytest

from tdd_assist.session_context import SessionContext
from tdd_assist.tech_stack_detector import (
    DetectedConfiguration,
    TechStackDetector,
    extension_for_stack,
    format_detected_configuration,
    is_frontend_stack,
    language_for_stack,
)


def package_json(dependencies=None, dev_dependencies=None):
    context = SessionContext()
    context.add_indexed_file("package.json", json.dumps({
        "dependencies": dependencies or {},
        "devDependencies": dev_dependencies or {},
    }))
    return context


def requirements(text):
    context = SessionContext()
    context.add_indexed_file("requirements.txt", text)
    return context


@pytest.fixture
def detector():
    return TechStackDetector()


@pytest.mark.parametrize("dependencies,expected", [
    ({"react": "18", "vue": "3"}, "React"),
    ({"vue": "3", "express": "4"}, "Vue"),
    ({"@angular/core": "17"}, "Angular"),
    ({"express": "4", "next": "14"}, "Node.js"),
    ({"next": "14"}, "Next.js"),
    ({"svelte": "4"}, "Svelte"),
    ({"lodash": "4"}, "Node.js"),
])
def test_package_json_stack_priority(detector, dependencies, expected):
    assert detector.detect_tech_stack(package_json(dependencies)) == expected


@pytest.mark.parametrize("dev_dependencies,expected", [
    ({"jest": "29", "mocha": "10"}, "Jest"),
    ({"mocha": "10", "vitest": "1"}, "Mocha"),
    ({"vitest": "1", "cypress": "13"}, "Vitest"),
    ({"cypress": "13", "playwright": "1"}, "Cypress"),
    ({"playwright": "1"}, "Playwright"),
    ({"jasmine": "5"}, "Jasmine"),
    ({"typescript": "5"}, None),
])
def test_package_json_test_framework_priority(detector, dev_dependencies, expected):
    assert detector.detect_test_framework(package_json(dev_dependencies=dev_dependencies)) == expected


@pytest.mark.parametrize("dev_dependencies,expected", [
    ({"@playwright/test": "1", "cypress": "13"}, "Playwright"),
    ({"cypress": "13", "selenium-webdriver": "4"}, "Cypress"),
    ({"selenium-webdriver": "4"}, "Selenium"),
    ({"@testing-library/vue": "8"}, "Testing Library"),
    ({"jest": "29"}, None),
])
def test_package_json_ui_framework_priority(detector, dev_dependencies, expected):
    assert detector.detect_ui_test_framework(package_json(dev_dependencies=dev_dependencies)) == expected


def test_dependencies_and_dev_dependencies_are_merged(detector):
    context = package_json({"react": "18"}, {"jest": "29"})
    detected = detector.detect(context)
    assert detected == DetectedConfiguration("React", "Jest", None)
    assert detected.is_complete


@pytest.mark.parametrize("text,stack,tests", [
    ("Django==5.0\npytest>=8\n", "Django", "pytest"),
    ("flask\nfastapi\n", "Flask", None),
    ("fastapi[all]>=0.110\nnose2\n", "FastAPI", "nose2"),
    ("numpy\n# pytest is commented out\n", "Python", None),
])
def test_requirements_detection(detector, text, stack, tests):
    context = requirements(text)
    assert detector.detect_tech_stack(context) == stack
    assert detector.detect_test_framework(context) == tests


def test_requirements_ui_frameworks(detector):
    assert detector.detect_ui_test_framework(requirements("playwright\nselenium\n")) == "Playwright"
    assert detector.detect_ui_test_framework(requirements("selenium\n")) == "Selenium"


def test_package_json_takes_priority_over_requirements(detector):
    context = package_json({"vue": "3"})
    context.add_indexed_file("requirements.txt", "django\npytest\n")

    assert detector.detect_tech_stack(context) == "Vue"
    # Test framework falls through to the next manifest
    assert detector.detect_test_framework(context) == "pytest"


def test_nothing_detected_without_manifests(detector):
    context = SessionContext()
    context.add_indexed_file("README.md", "# demo")

    detected = detector.detect(context, include_ui=True)

    assert detected == DetectedConfiguration()
    assert not detected.is_complete


def test_invalid_package_json_is_ignored(detector):
    context = SessionContext()
    context.add_indexed_file("package.json", "{not json")
    assert detector.detect_tech_stack(context) is None


def test_ui_framework_only_detected_when_requested(detector):
    context = package_json({"react": "18"}, {"jest": "29", "cypress": "13"})
    assert detector.detect(context).ui_test_framework is None
    assert detector.detect(context, include_ui=True).ui_test_framework == "Cypress"


def test_stack_helpers():
    assert is_frontend_stack("Svelte")
    assert not is_frontend_stack("Express")
    assert not is_frontend_stack(None)
    assert language_for_stack("FastAPI") == "python"
    assert extension_for_stack("Angular") == "ts"
    assert extension_for_stack("Svelte") == "js"
    assert extension_for_stack(None) == "js"


def test_format_detected_configuration():
    text = format_detected_configuration(DetectedConfiguration("React", "Jest", "Playwright"), include_ui=True)
    assert text.splitlines() == [
        "✅ **Detected Configuration**:",
        "- **Tech stack**: React",
        "- **Test framework**: Jest",
        "- **UI test framework**: Playwright",
    ]
