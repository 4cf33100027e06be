"""Writes generated artifacts to disk with protection against path traversal."""

import asyncio
import logging
import os
from pathlib import Path
from typing import List, Optional, Tuple

from .errors import FileWriteError

logger = logging.getLogger(__name__)


class WorkspaceFileWriter:
    """File writer restricted to a set of allowed directories."""

    def __init__(self, allowed_dirs: Optional[List[str]] = None,
                 max_file_size: int = 10 * 1024 * 1024):  # 10MB default limit
        """Initialize the writer with security settings.

        Args:
            allowed_dirs: Directories that may be written. Defaults to the
                current directory.
            max_file_size: Maximum content size in bytes.
        """
        self.allowed_dirs = [os.path.realpath(d) for d in (allowed_dirs or [os.getcwd()])]
        self.max_file_size = max_file_size

    def _is_path_allowed(self, file_path: str) -> Tuple[bool, str]:
        """Check if a path lies inside one of the allowed directories.

        Symlinks are resolved before the comparison.

        Returns:
            A tuple of (is_allowed, error_message)
        """
        norm_path = os.path.normpath(os.path.realpath(file_path))
        for dir_path in self.allowed_dirs:
            if norm_path == dir_path or norm_path.startswith(dir_path + os.sep):
                return True, ""
        logger.warning("Attempted write to restricted path: %s", norm_path)
        return False, f"Access to path outside allowed directories: {file_path}"

    def write_file(self, file_path: str, content: str) -> str:
        """Write ``content`` to ``file_path``, creating parent directories.

        Returns:
            The resolved location of the written file.

        Raises:
            FileWriteError: If the path is not allowed, the content is too
                large or the write fails.
        """
        allowed, error = self._is_path_allowed(file_path)
        if not allowed:
            raise FileWriteError(error)

        data = content.encode("utf-8")
        if len(data) > self.max_file_size:
            raise FileWriteError(
                f"Content size ({len(data)} bytes) exceeds maximum allowed size ({self.max_file_size} bytes)"
            )

        target = Path(os.path.realpath(file_path))
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise FileWriteError(f"Error writing {file_path}: {e}") from e

        logger.info("Wrote %d bytes to %s", len(data), target)
        return str(target)

    async def write(self, path: str, content: str) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.write_file, path, content)
