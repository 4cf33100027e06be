"""tdd_assist: chat command routing with a test-first code generation workflow."""

# Components are loaded on first access so that importing the package does
# not pull in requests/jsonschema for callers that only need the classifier.
from importlib import import_module
from typing import Any

__version__ = "0.1.0"

_MODULE_MAP = {
    "CommandDispatcher": "tdd_assist.dispatcher",
    "dispatch": "tdd_assist.dispatcher",
    "TddOrchestrator": "tdd_assist.tdd_orchestrator",
    "WorkflowRun": "tdd_assist.tdd_orchestrator",
    "WorkflowState": "tdd_assist.tdd_orchestrator",
    "TechStackDetector": "tdd_assist.tech_stack_detector",
    "SessionContext": "tdd_assist.session_context",
    "Collaborators": "tdd_assist.collaborators",
    "RunOutcome": "tdd_assist.collaborators",
    "ClassificationCategory": "tdd_assist.intent_classifier",
    "classify_request": "tdd_assist.intent_classifier",
    "should_trigger_automatic_fixes": "tdd_assist.intent_classifier",
    "ChatCommand": "tdd_assist.commands",
    "HttpAgentClient": "tdd_assist.agent_client",
    "CommandTestRunner": "tdd_assist.test_runner",
    "WorkspaceFileWriter": "tdd_assist.file_writer",
    "TerminalExecutor": "tdd_assist.terminal_executor",
    "Config": "tdd_assist.config",
    "AssistantError": "tdd_assist.errors",
    "redact_auth_headers": "tdd_assist.logging_utils",
}

__all__ = list(_MODULE_MAP.keys())


def __getattr__(name: str) -> Any:
    """Dynamically import objects on first access."""
    module_path = _MODULE_MAP.get(name)
    if module_path is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module = import_module(module_path)
    return getattr(module, name)
