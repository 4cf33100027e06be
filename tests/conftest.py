from pathlib import Path
import json
import sys
import pytest
from unittest.mock import AsyncMock, MagicMock

# Add project root to sys.path for module resolution
project_root = Path(__file__).parent.parent.resolve()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from tdd_assist.collaborators import Collaborators, RunOutcome  # noqa: E402
from tdd_assist.session_context import SessionContext  # noqa: E402


@pytest.fixture
def context(tmp_path):
    """Session context rooted in a temporary workspace, all modes off."""
    return SessionContext(workspace_path=str(tmp_path))


@pytest.fixture
def tdd_context(context):
    """Context in agent + TDD mode, the combination that enables the preempt."""
    context.is_agent_mode = True
    context.is_tdd_mode = True
    return context


@pytest.fixture
def indexed_context(tdd_context):
    """TDD context with a React/Jest package.json in the index."""
    tdd_context.add_indexed_file("package.json", json.dumps({
        "name": "demo",
        "dependencies": {"react": "^18.2.0"},
        "devDependencies": {"jest": "^29.0.0", "@playwright/test": "^1.40.0"},
    }))
    return tdd_context


@pytest.fixture
def collaborators():
    """Create a canonical set of mock collaborators.

    The agent answers with a fenced code block, the test runner fails first
    and passes on the second run, and the writer echoes the requested path.
    """
    agent = MagicMock()
    agent.send_message = AsyncMock(side_effect=[
        "```javascript\ntest('adds', () => expect(add(1, 2)).toBe(3));\n```",
        "```javascript\nexport function add(a, b) { return a + b; }\n```",
        "```javascript\nexport const extra = true;\n```",
    ])

    test_runner = MagicMock()
    test_runner.run = AsyncMock(side_effect=[RunOutcome.FAILING, RunOutcome.PASSING])

    file_writer = MagicMock()
    file_writer.write = AsyncMock(side_effect=lambda path, content: path)

    prompter = MagicMock()
    prompter.choose = AsyncMock(return_value=None)

    terminal = MagicMock()
    terminal.run_command = MagicMock(return_value=(0, ""))

    return Collaborators(
        agent=agent,
        test_runner=test_runner,
        file_writer=file_writer,
        prompter=prompter,
        terminal=terminal,
    )
