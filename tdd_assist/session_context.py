"""Session state shared across dispatch decisions.

A ``SessionContext`` is created once per editing session and passed
explicitly into every dispatch and workflow call.
"""

import json
import logging
import os
import re
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Deque, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from .config import ConfigModel, HISTORY_LIMIT, ARTIFACT_DIR

logger = logging.getLogger(__name__)

MANIFEST_FILES = ("package.json", "requirements.txt")

INDEXED_EXTENSIONS = {
    ".py", ".js", ".jsx", ".ts", ".tsx", ".vue", ".svelte",
    ".java", ".cs", ".cpp", ".h", ".go", ".rs", ".php", ".md", ".json", ".txt",
}
SKIPPED_DIRS = {".git", "node_modules", "__pycache__", ".venv", "venv", "dist", "build", ".tdd_assist"}
MAX_INDEXED_FILE_SIZE = 200 * 1024

_REQUIREMENT_NAME_RE = re.compile(r"^([A-Za-z0-9][A-Za-z0-9._-]*)(\[[^\]]*\])?(.*)$")


class ChatMessage(BaseModel):
    """One entry of the conversation history."""

    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class IndexedFile(BaseModel):
    """A file captured by the codebase index."""

    path: str
    content: str
    size: int = 0

    def model_post_init(self, __context) -> None:
        if not self.size:
            self.size = len(self.content.encode("utf-8"))


@dataclass
class SessionContext:
    """Mutable state for one editing session.

    Optional configuration fields use ``None`` for "not determined yet", so an
    undetected framework can never be confused with an empty string.
    """

    is_agent_mode: bool = False
    is_auto_mode: bool = False
    is_tdd_mode: bool = False
    is_ui_tdd_mode: bool = False
    is_manifesto_mode: bool = False
    tech_stack: Optional[str] = None
    test_framework: Optional[str] = None
    ui_test_framework: Optional[str] = None
    workspace_path: str = "."
    artifact_dir: str = ARTIFACT_DIR
    codebase_index: Dict[str, IndexedFile] = field(default_factory=dict)
    glossary: Dict[str, str] = field(default_factory=dict)
    history_limit: int = HISTORY_LIMIT
    _indexed_flag: Optional[bool] = field(default=None, repr=False)
    _history: Deque[ChatMessage] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._history = deque(maxlen=self.history_limit)

    @classmethod
    def from_config(cls, settings: ConfigModel) -> "SessionContext":
        """Build a context whose flags come from the configured defaults."""
        return cls(
            is_agent_mode=settings.modes.agent_mode,
            is_auto_mode=settings.modes.auto_mode,
            is_tdd_mode=settings.modes.tdd_mode,
            is_ui_tdd_mode=settings.modes.ui_tdd_mode,
            is_manifesto_mode=settings.modes.manifesto_mode,
            workspace_path=settings.workspace_path,
            artifact_dir=settings.artifact_dir,
            history_limit=settings.history_limit,
        )

    @property
    def is_codebase_indexed(self) -> bool:
        """True when the index holds files, unless explicitly overridden."""
        if self._indexed_flag is not None:
            return self._indexed_flag
        return bool(self.codebase_index)

    @is_codebase_indexed.setter
    def is_codebase_indexed(self, value: bool) -> None:
        self._indexed_flag = value

    # Codebase index

    def add_indexed_file(self, path: str, content: str) -> IndexedFile:
        """Add or replace a file in the codebase index."""
        entry = IndexedFile(path=path.replace("\\", "/"), content=content)
        self.codebase_index[entry.path] = entry
        return entry

    def find_indexed_file(self, name: str) -> Optional[IndexedFile]:
        """Find an indexed file by exact path or by trailing file name.

        When several files share the name, the one with the shortest path
        (closest to the project root) wins.
        """
        name = name.replace("\\", "/")
        if name in self.codebase_index:
            return self.codebase_index[name]
        matches = [
            entry for path, entry in self.codebase_index.items()
            if path == name or path.endswith("/" + name)
        ]
        if not matches:
            return None
        return min(matches, key=lambda entry: len(entry.path))

    def get_manifest_dependencies(self, name: str) -> Optional[Dict[str, str]]:
        """Return the dependency map declared by an indexed manifest.

        Args:
            name: ``package.json`` or ``requirements.txt``.

        Returns:
            Lower-case dependency name -> version specifier, or ``None`` when
            the manifest is not indexed or cannot be parsed.
        """
        entry = self.find_indexed_file(name)
        if entry is None or not entry.content.strip():
            return None
        if name.endswith(".json"):
            return _parse_package_json(entry.content, entry.path)
        return _parse_requirements(entry.content)

    # Conversation history

    def add_to_conversation_history(self, message: ChatMessage) -> None:
        """Append a message; the oldest entries drop once the limit is hit."""
        self._history.append(message)

    def get_conversation_history(self) -> List[ChatMessage]:
        return list(self._history)

    def get_conversation_context(self, max_messages: int = 5) -> str:
        """Render the most recent messages as plain text."""
        recent = list(self._history)[-max_messages:] if max_messages > 0 else []
        return "\n\n".join(
            f"{'User' if msg.role == 'user' else 'Assistant'}: {msg.content}" for msg in recent
        )

    def clear_conversation_history(self) -> None:
        self._history.clear()
        logger.info("Conversation history cleared")

    # Configuration fields

    def reset_configuration(self) -> None:
        """Forget the detected or selected stack and frameworks."""
        self.tech_stack = None
        self.test_framework = None
        self.ui_test_framework = None

    def get_artifact_root(self) -> str:
        return os.path.join(os.path.abspath(self.workspace_path), self.artifact_dir)


def _parse_package_json(content: str, path: str) -> Optional[Dict[str, str]]:
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        logger.warning("Could not parse %s: %s", path, e)
        return None
    if not isinstance(data, dict):
        return None
    dependencies: Dict[str, str] = {}
    for section in ("dependencies", "devDependencies"):
        values = data.get(section) or {}
        if isinstance(values, dict):
            dependencies.update({str(k).lower(): str(v) for k, v in values.items()})
    return dependencies


def _parse_requirements(content: str) -> Dict[str, str]:
    dependencies: Dict[str, str] = {}
    for raw_line in content.splitlines():
        line = raw_line.split("#", 1)[0].strip()
        if not line or line.startswith("-"):
            continue
        match = _REQUIREMENT_NAME_RE.match(line)
        if match:
            dependencies[match.group(1).lower()] = match.group(3).strip()
    return dependencies


def index_workspace(context: SessionContext, root: Optional[str] = None, max_files: int = 500) -> int:
    """Populate ``context.codebase_index`` from the files under ``root``.

    Paths are stored relative to ``root``. Large files and vendored
    directories are skipped.

    Returns:
        Number of files indexed.
    """
    base = Path(root or context.workspace_path).resolve()
    count = 0
    for dirpath, dirnames, filenames in os.walk(base):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIPPED_DIRS)
        for filename in sorted(filenames):
            if count >= max_files:
                logger.warning("Index limit of %d files reached", max_files)
                return count
            file_path = Path(dirpath) / filename
            if file_path.suffix not in INDEXED_EXTENSIONS and filename not in MANIFEST_FILES:
                continue
            try:
                if file_path.stat().st_size > MAX_INDEXED_FILE_SIZE:
                    continue
                content = file_path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.debug("Skipping %s: %s", file_path, e)
                continue
            context.add_indexed_file(file_path.relative_to(base).as_posix(), content)
            count += 1
    logger.info("Indexed %d files under %s", count, base)
    return count
