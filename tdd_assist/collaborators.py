"""
Collaborator interfaces consumed by the dispatcher, the commands and the TDD
orchestrator.

The core only depends on these protocols; concrete implementations live in
``agent_client``, ``test_runner``, ``file_writer``, ``terminal_executor`` and
``cli``.
"""
from abc import abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any
from typing import Dict
from typing import List
from typing import Optional
from typing import Protocol
from typing import Tuple


class RunOutcome(Enum):
    """Result reported by a test run."""

    PASSING = "passing"
    FAILING = "failing"
    ERROR = "error"


class AgentClient(Protocol):
    """Sends a prompt to the text generation agent."""

    @abstractmethod
    async def send_message(self, prompt: str) -> Any:
        """Return generated text, or an object/dict carrying ``content``."""
        ...


class TestRunner(Protocol):
    """Executes the project's tests."""

    __test__ = False

    @abstractmethod
    async def run(self, test_framework: Optional[str], test_paths: Optional[List[str]] = None,
                  source_dirs: Optional[List[str]] = None) -> RunOutcome:
        """Run ``test_paths`` (or the whole suite) with ``source_dirs`` importable."""
        ...


class FileWriter(Protocol):
    """Persists generated artifacts."""

    @abstractmethod
    async def write(self, path: str, content: str) -> str:
        """Write ``content`` to ``path`` and return the stored location."""
        ...


class UserPrompter(Protocol):
    """Asks the user to pick one option (the editor's quick-pick)."""

    @abstractmethod
    async def choose(self, options: List[str], placeholder: str) -> Optional[str]:
        """Return the chosen option, or ``None`` when the user declines."""
        ...


class CommandExecutor(Protocol):
    """Runs a shell command synchronously."""

    @abstractmethod
    def run_command(self, command: str, timeout: Optional[float] = None,
                    env: Optional[Dict[str, str]] = None) -> Tuple[int, str]:
        ...


@dataclass
class Collaborators:
    """Bundle of external collaborators handed to every dispatch."""

    agent: Optional[AgentClient] = None
    test_runner: Optional[TestRunner] = None
    file_writer: Optional[FileWriter] = None
    prompter: Optional[UserPrompter] = None
    terminal: Optional[CommandExecutor] = None
