"""
Centralized error definitions for tdd_assist.

This module defines the exception hierarchy shared by the dispatcher, the
commands, the TDD orchestrator and the concrete collaborators. Every exception
carries an ErrorCategory so that callers can decide how to report it without
inspecting the concrete type.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ErrorCategory(Enum):
    """Enumeration of error categories for consistent classification."""

    # Workflow outcomes that are not faults
    SETUP_DECLINED = "setup_declined"
    PREMATURE_PASS = "premature_pass"

    # Workflow faults
    DETECTION = "detection_error"
    TRANSITION = "transition_error"

    # Collaborator failures
    AGENT = "agent_error"
    TEST_EXECUTION = "test_execution_error"
    FILE_WRITE = "file_write_error"

    CONFIGURATION = "configuration_error"

    # Default
    UNKNOWN = "unknown_error"


@dataclass
class ErrorContext:
    """Structured context describing where an error happened."""

    error_type: str
    error_message: str
    category: ErrorCategory = ErrorCategory.UNKNOWN
    timestamp: datetime = field(default_factory=datetime.now)
    phase: Optional[str] = None
    component: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert the error context to a dictionary for serialization."""
        result = {
            "error_type": self.error_type,
            "error_message": self.error_message,
            "category": self.category.value,
            "timestamp": self.timestamp.isoformat(),
        }
        for field_name in ["phase", "component"]:
            value = getattr(self, field_name)
            if value is not None:
                result[field_name] = value
        return result


class AssistantError(Exception):
    """Base exception for all tdd_assist specific errors."""

    def __init__(self, message: str, phase: Optional[str] = None, component: Optional[str] = None):
        super().__init__(message)
        self.context = ErrorContext(
            error_type=self.__class__.__name__,
            error_message=message,
            category=self._get_default_category(),
            phase=phase,
            component=component,
        )

    @property
    def category(self) -> ErrorCategory:
        return self.context.category

    @property
    def phase(self) -> Optional[str]:
        return self.context.phase

    def _get_default_category(self) -> ErrorCategory:
        """Return the default error category for this exception type."""
        return ErrorCategory.UNKNOWN

    def to_dict(self) -> Dict[str, Any]:
        """Convert the exception to a dictionary for serialization."""
        return self.context.to_dict()


# Workflow exceptions
class WorkflowError(AssistantError):
    """Base exception for errors that end a TDD workflow run."""


class SetupDeclinedError(WorkflowError):
    """The user declined a required selection while setting up a new project."""

    def _get_default_category(self) -> ErrorCategory:
        return ErrorCategory.SETUP_DECLINED


class DetectionError(WorkflowError):
    """Project configuration could not be detected from manifest data."""

    def _get_default_category(self) -> ErrorCategory:
        return ErrorCategory.DETECTION


class PrematurePassError(WorkflowError):
    """Generated tests passed before any implementation existed."""

    def _get_default_category(self) -> ErrorCategory:
        return ErrorCategory.PREMATURE_PASS


class WorkflowTransitionError(WorkflowError):
    """A workflow run attempted an illegal state transition."""

    def _get_default_category(self) -> ErrorCategory:
        return ErrorCategory.TRANSITION


class CollaboratorError(WorkflowError):
    """An external collaborator failed during a workflow phase.

    The original exception is kept on ``cause`` so the phase boundary can
    report it without re-raising it.
    """

    def __init__(self, message: str, phase: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message, phase=phase)

    def _get_default_category(self) -> ErrorCategory:
        if isinstance(self.cause, AssistantError):
            return self.cause.category
        return ErrorCategory.UNKNOWN


# Collaborator exceptions
class AgentClientError(AssistantError):
    """The agent client could not produce generated text."""

    def _get_default_category(self) -> ErrorCategory:
        return ErrorCategory.AGENT


class TestExecutionError(AssistantError):
    """The test runner could not execute the test command."""

    __test__ = False

    def _get_default_category(self) -> ErrorCategory:
        return ErrorCategory.TEST_EXECUTION


class FileWriteError(AssistantError):
    """An artifact could not be persisted."""

    def _get_default_category(self) -> ErrorCategory:
        return ErrorCategory.FILE_WRITE


class ConfigurationError(AssistantError):
    """Configuration data failed validation."""

    def _get_default_category(self) -> ErrorCategory:
        return ErrorCategory.CONFIGURATION
