"""
TDD workflow orchestration.

Drives the agent through "failing test -> run -> implementation -> run" for a
single request. Configuration comes either from the user (new project, via
the prompter) or from the indexed manifests (existing project). Every phase
is a state of a ``WorkflowRun`` and a failed phase ends the run with a
message naming that phase.
"""

import logging
import os
import re
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

from .agent_client import extract_content, strip_code_fences
from .collaborators import Collaborators, RunOutcome
from .errors import (
    AgentClientError,
    CollaboratorError,
    DetectionError,
    FileWriteError,
    PrematurePassError,
    SetupDeclinedError,
    TestExecutionError,
    WorkflowTransitionError,
)
from .logging_utils import truncate_for_log
from .session_context import SessionContext
from .tech_stack_detector import (
    TECH_STACK_OPTIONS,
    TEST_FRAMEWORK_OPTIONS,
    UI_TEST_FRAMEWORK_OPTIONS,
    TechStackDetector,
    extension_for_stack,
    format_detected_configuration,
    is_frontend_stack,
    language_for_stack,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

UI_KEYWORDS = ("component", "form", "button", "modal", "page", "ui", "interface", "view", "screen")
_UI_KEYWORD_RE = re.compile(r"\b(?:" + "|".join(UI_KEYWORDS) + r")s?\b", re.IGNORECASE)

PREVIEW_LENGTH = 100
SLUG_LENGTH = 30


class WorkflowState(Enum):
    """Workflow phases in their only permitted order."""

    SELECTING_STACK = "selecting_stack"
    SELECTING_TEST_FRAMEWORK = "selecting_test_framework"
    SELECTING_UI_FRAMEWORK = "selecting_ui_framework"
    DETECTING_CONFIGURATION = "detecting_configuration"
    GENERATING_UNIT_TEST = "generating_unit_test"
    GENERATING_UI_TEST = "generating_ui_test"
    VERIFYING_INITIAL_FAILURE = "verifying_initial_failure"
    GENERATING_IMPLEMENTATION = "generating_implementation"
    VERIFYING_FINAL_SUCCESS = "verifying_final_success"
    COMPLETED = "completed"
    ABORTED = "aborted"


_STATE_ORDER: Dict[WorkflowState, int] = {state: index for index, state in enumerate(WorkflowState)}
TERMINAL_STATES = frozenset({WorkflowState.COMPLETED, WorkflowState.ABORTED})

# Phase names used in failure messages
PHASE_LABELS = {
    WorkflowState.SELECTING_STACK: "Setup",
    WorkflowState.SELECTING_TEST_FRAMEWORK: "Setup",
    WorkflowState.SELECTING_UI_FRAMEWORK: "Setup",
    WorkflowState.DETECTING_CONFIGURATION: "Detection",
    WorkflowState.GENERATING_UNIT_TEST: "Unit Test Generation",
    WorkflowState.GENERATING_UI_TEST: "UI Test Generation",
    WorkflowState.VERIFYING_INITIAL_FAILURE: "Initial Test Run",
    WorkflowState.GENERATING_IMPLEMENTATION: "Implementation Generation",
    WorkflowState.VERIFYING_FINAL_SUCCESS: "Final Test Run",
}


class ArtifactKind(Enum):
    UNIT_TEST = "unit-test"
    UI_TEST = "ui-test"
    IMPLEMENTATION = "implementation"


@dataclass(frozen=True)
class GeneratedArtifact:
    """Code produced by the agent and the place it was stored."""

    kind: ArtifactKind
    content: str
    location: str
    artifact_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def preview(self) -> str:
        if len(self.content) <= PREVIEW_LENGTH:
            return self.content
        return self.content[:PREVIEW_LENGTH] + "..."


@dataclass
class WorkflowRun:
    """State of one orchestrator invocation.

    Transitions only move forward in ``WorkflowState`` declaration order.
    ``ABORTED`` can be entered from any non-terminal state and nothing
    leaves ``COMPLETED`` or ``ABORTED``.
    """

    state: WorkflowState
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    history: List[WorkflowState] = field(default_factory=list)
    artifacts: List[GeneratedArtifact] = field(default_factory=list)
    abort_reason: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.history:
            self.history.append(self.state)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def advance(self, new_state: WorkflowState) -> None:
        """Move to a later state.

        Raises:
            WorkflowTransitionError: If the run is finished or ``new_state``
                is not after the current state.
        """
        if new_state is WorkflowState.ABORTED:
            self.abort("aborted")
            return
        if self.is_terminal:
            raise WorkflowTransitionError(
                f"Run {self.run_id} is {self.state.value}; cannot move to {new_state.value}"
            )
        if _STATE_ORDER[new_state] <= _STATE_ORDER[self.state]:
            raise WorkflowTransitionError(
                f"Illegal transition {self.state.value} -> {new_state.value}"
            )
        logger.debug("Run %s: %s -> %s", self.run_id, self.state.value, new_state.value)
        self.state = new_state
        self.history.append(new_state)

    def abort(self, reason: str) -> None:
        if self.is_terminal:
            raise WorkflowTransitionError(
                f"Run {self.run_id} is {self.state.value}; cannot abort"
            )
        logger.debug("Run %s aborted in %s: %s", self.run_id, self.state.value, reason)
        self.abort_reason = reason
        self.state = WorkflowState.ABORTED
        self.history.append(WorkflowState.ABORTED)

    def add_artifact(self, artifact: GeneratedArtifact) -> None:
        self.artifacts.append(artifact)

    def get_artifact(self, kind: ArtifactKind) -> Optional[GeneratedArtifact]:
        for artifact in self.artifacts:
            if artifact.kind is kind:
                return artifact
        return None


def is_ui_request(message: str) -> bool:
    """True when the request mentions a UI element."""
    return bool(_UI_KEYWORD_RE.search(message))


def slugify(text: str, max_length: int = SLUG_LENGTH) -> str:
    """File-name friendly stem derived from the request text."""
    slug = re.sub(r"[^a-z0-9\s]", "", text.lower())
    slug = re.sub(r"\s+", "_", slug.strip())[:max_length].strip("_")
    return slug or "feature"


def artifact_file_name(kind: ArtifactKind, request: str, tech_stack: Optional[str], artifact_id: str) -> str:
    """File name for an artifact; the id suffix keeps runs from overwriting each other."""
    stem = f"{slugify(request)}_{artifact_id[:8]}"
    extension = extension_for_stack(tech_stack)
    if language_for_stack(tech_stack) == "python":
        # the implementation is imported by module name
        if not stem[0].isalpha():
            stem = f"feature_{stem}"
        if kind is ArtifactKind.IMPLEMENTATION:
            return f"{stem}.py"
        suffix = "_ui" if kind is ArtifactKind.UI_TEST else ""
        return f"test_{stem}{suffix}.py"
    if kind is ArtifactKind.IMPLEMENTATION:
        return f"{stem}.{extension}"
    if kind is ArtifactKind.UI_TEST:
        return f"{stem}.ui.test.{extension}"
    return f"{stem}.test.{extension}"


def implementation_import_hint(tech_stack: Optional[str], implementation_path: str, test_dir: str) -> str:
    """Prompt line telling the agent how the generated test reaches the implementation."""
    file_name = os.path.basename(implementation_path)
    stem = os.path.splitext(file_name)[0]
    if language_for_stack(tech_stack) == "python":
        return (
            f"The implementation will be saved as {file_name}; "
            f"import it in the test with `from {stem} import ...`."
        )
    relative = os.path.relpath(os.path.splitext(implementation_path)[0], test_dir).replace(os.sep, "/")
    if not relative.startswith("."):
        relative = f"./{relative}"
    return f"The implementation will be saved as {file_name}; import it in the test from '{relative}'."


class TddOrchestrator:
    """Runs the TDD workflow for one request at a time."""

    def __init__(self, detector: Optional[TechStackDetector] = None):
        self.detector = detector or TechStackDetector()
        self.last_run: Optional[WorkflowRun] = None

    async def run(self, message: str, context: SessionContext, collaborators: Collaborators) -> str:
        """Run the workflow and return the user-facing result.

        Expected failures (declined setup, failed detection, tests passing
        too early, collaborator errors) end the run with a message instead
        of an exception.
        """
        request = message.strip()
        logger.info("Starting TDD workflow for: %s", truncate_for_log(request))

        if context.is_codebase_indexed:
            run = WorkflowRun(state=WorkflowState.DETECTING_CONFIGURATION)
        else:
            run = WorkflowRun(state=WorkflowState.SELECTING_STACK)
        self.last_run = run

        preamble = ""
        try:
            if run.state is WorkflowState.DETECTING_CONFIGURATION:
                preamble = self._detect_configuration(context)
            else:
                await self._select_configuration(run, context, collaborators)
        except SetupDeclinedError as e:
            logger.info("TDD setup cancelled: %s", e)
            run.abort(str(e))
            return f"❌ **TDD Setup Cancelled**: {e}"
        except DetectionError as e:
            logger.warning("TDD detection failed: %s", e)
            run.abort(str(e))
            return f"❌ **TDD Detection Failed**: {e}"
        except CollaboratorError as e:
            run.abort(str(e))
            return f"❌ **TDD {e.phase} Failed**: {e}"

        outcome = await self._execute_tdd_loop(run, request, context, collaborators)
        return f"{preamble}\n\n{outcome}" if preamble else outcome

    # Configuration

    async def _select_configuration(self, run: WorkflowRun, context: SessionContext,
                                    collaborators: Collaborators) -> None:
        """Ask the user for the stack and frameworks of a new project."""
        tech_stack = await self._choose(
            run, collaborators, TECH_STACK_OPTIONS, "Select the tech stack for this project"
        )
        if not tech_stack:
            raise SetupDeclinedError("Tech stack selection is required", phase="Setup")
        context.tech_stack = tech_stack

        run.advance(WorkflowState.SELECTING_TEST_FRAMEWORK)
        test_framework = await self._choose(
            run, collaborators, TEST_FRAMEWORK_OPTIONS, "Select the test framework"
        )
        if not test_framework:
            raise SetupDeclinedError("Test framework selection is required", phase="Setup")
        context.test_framework = test_framework

        if context.is_ui_tdd_mode and is_frontend_stack(tech_stack):
            run.advance(WorkflowState.SELECTING_UI_FRAMEWORK)
            ui_framework = await self._choose(
                run, collaborators, UI_TEST_FRAMEWORK_OPTIONS, "Select the UI test framework (optional)"
            )
            if ui_framework:
                context.ui_test_framework = ui_framework
            else:
                logger.info("No UI test framework selected; UI tests will use %s", test_framework)

        logger.info("New project configured: %s with %s", context.tech_stack, context.test_framework)

    async def _choose(self, run: WorkflowRun, collaborators: Collaborators,
                      options: List[str], placeholder: str) -> Optional[str]:
        if collaborators.prompter is None:
            logger.info("No prompter available; treating selection as declined")
            return None
        return await self._guarded(run, lambda: collaborators.prompter.choose(options, placeholder))

    def _detect_configuration(self, context: SessionContext) -> str:
        """Fill the context from manifests and return the confirmation text."""
        detected = self.detector.detect(context, include_ui=context.is_ui_tdd_mode)
        if not detected.is_complete:
            missing = []
            if detected.tech_stack is None:
                missing.append("tech stack")
            if detected.test_framework is None:
                missing.append("test framework")
            raise DetectionError(
                f"Could not detect {' or '.join(missing)} from the indexed codebase. "
                "Please ensure package.json or requirements.txt exists.",
                phase="Detection",
            )

        context.tech_stack = detected.tech_stack
        context.test_framework = detected.test_framework
        if detected.ui_test_framework:
            context.ui_test_framework = detected.ui_test_framework
        return format_detected_configuration(detected, include_ui=context.is_ui_tdd_mode)

    # Core loop

    async def _execute_tdd_loop(self, run: WorkflowRun, request: str, context: SessionContext,
                                collaborators: Collaborators) -> str:
        generate_ui = context.is_ui_tdd_mode and is_ui_request(request)
        plan = self._plan_artifacts(request, context, generate_ui)
        implementation_path = plan[ArtifactKind.IMPLEMENTATION][1]
        import_hint = implementation_import_hint(
            context.tech_stack, implementation_path, os.path.dirname(plan[ArtifactKind.UNIT_TEST][1])
        )

        try:
            run.advance(WorkflowState.GENERATING_UNIT_TEST)
            unit_test = await self._generate(
                run, collaborators, ArtifactKind.UNIT_TEST, plan,
                self._build_test_prompt(request, context, import_hint, ui=False),
            )

            ui_test = None
            if generate_ui:
                run.advance(WorkflowState.GENERATING_UI_TEST)
                ui_test = await self._generate(
                    run, collaborators, ArtifactKind.UI_TEST, plan,
                    self._build_test_prompt(request, context, import_hint, ui=True),
                )

            run.advance(WorkflowState.VERIFYING_INITIAL_FAILURE)
            test_paths = self._runnable_tests(context, unit_test, ui_test)
            source_dirs = [os.path.dirname(implementation_path)]
            initial = await self._run_tests(run, context, collaborators, test_paths, source_dirs)
            if initial is RunOutcome.PASSING:
                raise PrematurePassError(
                    "Tests are already passing. TDD requires failing tests first.",
                    phase=PHASE_LABELS[run.state],
                )
            if initial is RunOutcome.ERROR:
                logger.warning("Initial test run reported an error; continuing with implementation")

            run.advance(WorkflowState.GENERATING_IMPLEMENTATION)
            await self._generate(
                run, collaborators, ArtifactKind.IMPLEMENTATION, plan,
                self._build_implementation_prompt(request, context, unit_test, ui_test),
            )

            run.advance(WorkflowState.VERIFYING_FINAL_SUCCESS)
            final = await self._run_tests(run, context, collaborators, test_paths, source_dirs)
        except PrematurePassError as e:
            logger.warning("TDD aborted: %s", e)
            run.abort(str(e))
            return f"⚠️ **TDD Warning**: {e}"
        except CollaboratorError as e:
            run.abort(str(e))
            return f"❌ **TDD {e.phase} Failed**: {e}"

        run.advance(WorkflowState.COMPLETED)
        logger.info("TDD workflow %s completed with final outcome %s", run.run_id, final.value)
        return self._build_summary(run, initial, final)

    def _plan_artifacts(self, request: str, context: SessionContext,
                        generate_ui: bool) -> Dict[ArtifactKind, Tuple[str, str]]:
        """Assign an id and a target path to every artifact of the run."""
        root = context.get_artifact_root()
        kinds = [ArtifactKind.UNIT_TEST, ArtifactKind.IMPLEMENTATION]
        if generate_ui:
            kinds.insert(1, ArtifactKind.UI_TEST)

        plan = {}
        for kind in kinds:
            artifact_id = uuid.uuid4().hex
            directory = "src" if kind is ArtifactKind.IMPLEMENTATION else "tests"
            file_name = artifact_file_name(kind, request, context.tech_stack, artifact_id)
            plan[kind] = (artifact_id, os.path.join(root, directory, file_name))
        return plan

    async def _generate(self, run: WorkflowRun, collaborators: Collaborators, kind: ArtifactKind,
                        plan: Dict[ArtifactKind, Tuple[str, str]], prompt: str) -> GeneratedArtifact:
        artifact_id, path = plan[kind]

        async def generate_and_store() -> Tuple[str, str]:
            if collaborators.agent is None:
                raise AgentClientError("No agent client available")
            response = await collaborators.agent.send_message(prompt)
            content = strip_code_fences(extract_content(response))
            if not content:
                raise AgentClientError("Agent returned empty content")
            if collaborators.file_writer is None:
                raise FileWriteError("No file writer available")
            location = await collaborators.file_writer.write(path, content)
            return content, location or path

        content, location = await self._guarded(run, generate_and_store)
        artifact = GeneratedArtifact(kind=kind, content=content, location=location, artifact_id=artifact_id)
        run.add_artifact(artifact)
        logger.info("Saved %s artifact to %s", kind.value, location)
        return artifact

    def _runnable_tests(self, context: SessionContext, unit_test: GeneratedArtifact,
                        ui_test: Optional[GeneratedArtifact]) -> List[str]:
        """Generated test files the unit test framework can run.

        A UI test written for a separate UI framework is left to that framework.
        """
        paths = [unit_test.location]
        if ui_test is not None and context.ui_test_framework in (None, context.test_framework):
            paths.append(ui_test.location)
        return paths

    async def _run_tests(self, run: WorkflowRun, context: SessionContext, collaborators: Collaborators,
                         test_paths: List[str], source_dirs: List[str]) -> RunOutcome:
        async def run_tests() -> RunOutcome:
            if collaborators.test_runner is None:
                raise TestExecutionError("No test runner available")
            return await collaborators.test_runner.run(context.test_framework, test_paths, source_dirs)

        outcome = await self._guarded(run, run_tests)
        logger.info("Test run during %s: %s", run.state.value, outcome.value)
        return outcome

    async def _guarded(self, run: WorkflowRun, action: Callable[[], Awaitable[T]]) -> T:
        """Await ``action`` and wrap any failure in a CollaboratorError for the current phase."""
        phase = PHASE_LABELS.get(run.state, run.state.value)
        try:
            return await action()
        except Exception as e:
            logger.error("TDD %s failed: %s", phase, e, exc_info=True)
            raise CollaboratorError(str(e), phase=phase, cause=e) from e

    # Prompts and summary

    def _build_test_prompt(self, request: str, context: SessionContext,
                           import_hint: str, ui: bool) -> str:
        language = language_for_stack(context.tech_stack)
        if ui:
            framework = context.ui_test_framework or context.test_framework
            return (
                f"Generate a failing UI test for the following request using {framework} "
                f"and {context.tech_stack}:\n\n{request}\n\n"
                f"{import_hint}\n\n"
                f"Return ONLY the UI test code in {language}, no explanations."
            )
        return (
            f"Generate a failing unit test for the following request using {context.test_framework} "
            f"and {context.tech_stack}:\n\n{request}\n\n"
            f"{import_hint}\n\n"
            f"Return ONLY the test code in {language}, no explanations."
        )

    def _build_implementation_prompt(self, request: str, context: SessionContext,
                                     unit_test: GeneratedArtifact,
                                     ui_test: Optional[GeneratedArtifact]) -> str:
        prompt = f"Generate the implementation code to make these tests pass:\n\nUnit Test:\n{unit_test.content}\n\n"
        if ui_test is not None:
            prompt += f"UI Test:\n{ui_test.content}\n\n"
        prompt += (
            f"Request: {request}\nTech stack: {context.tech_stack}\n\n"
            "Return ONLY the implementation code, no explanations."
        )
        return prompt

    def _build_summary(self, run: WorkflowRun, initial: RunOutcome, final: RunOutcome) -> str:
        icons = {
            ArtifactKind.UNIT_TEST: "🧪 **Test**",
            ArtifactKind.UI_TEST: "🎭 **UI Test**",
            ArtifactKind.IMPLEMENTATION: "💻 **Implementation**",
        }
        parts = ["✅ **TDD Workflow Complete!**"]
        for artifact in run.artifacts:
            parts.append(f"{icons[artifact.kind]} (`{artifact.location}`):\n{artifact.preview}")

        if initial is RunOutcome.ERROR:
            parts.append("ℹ️ The first test run reported an error instead of failing tests.")
        if final is RunOutcome.PASSING:
            parts.append("✅ **All tests passing!**")
        elif final is RunOutcome.ERROR:
            parts.append("⚠️ **Test run reported an error** - manual review required")
        else:
            parts.append("⚠️ **Tests still failing** - manual review required")
        return "\n\n".join(parts)
