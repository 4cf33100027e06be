"""Executes shell commands with denylist, path and timeout enforcement."""

import logging
import os
import re
import shlex
import subprocess
import threading
from typing import Dict, List, Optional, Tuple

from .config import COMMAND_TIMEOUT, DEFAULT_DENYLIST, MAX_OUTPUT_SIZE

logger = logging.getLogger(__name__)

# Exit code reported when a command could not be started
LAUNCH_FAILURE_CODE = 127

# Code constructs that require a manual confirmation before auto execution
UNSAFE_CODE_PATTERNS = [
    r"\brm\s+-r",
    r"\bsudo\b",
    r"\bshutil\.rmtree\b",
    r"\bos\.(?:remove|unlink|rmdir|system|kill)\b",
    r"\bsubprocess\b",
    r"\b(?:eval|exec)\s*\(",
    r"\bchild_process\b",
    r"\bfs\.(?:unlink|rm|rmdir|writeFile)",
    r"\brequests\.(?:post|put|delete)\b",
    r"\bfetch\s*\(",
    r"\bsocket\b",
    r"\bopen\s*\([^)]*['\"][wa]b?['\"]",
    r"\b(?:mkfs|shutdown|reboot)\b",
]


class TerminalExecutor:
    """Executes shell commands in a restricted subprocess."""

    def __init__(self, config=None, cwd: Optional[str] = None):
        """Initialize the executor with config settings.

        Args:
            config: Optional ``Config`` instance; defaults are used without it.
            cwd: Working directory for commands (defaults to the workspace).
        """
        settings: Dict = config.config if config is not None else {}
        self.denylist: List[str] = settings.get('denylist', DEFAULT_DENYLIST)
        self.timeout: float = settings.get('command_timeout', COMMAND_TIMEOUT)
        self.max_output_size: int = settings.get('max_output_size', MAX_OUTPUT_SIZE)
        self.cwd = os.path.realpath(cwd or settings.get('workspace_path', os.getcwd()))
        self.allowed_dirs: List[str] = [self.cwd]

    def _is_path_allowed(self, path: str) -> bool:
        """Check if a path is within allowed directories."""
        abs_path = os.path.realpath(path)
        return any(
            abs_path == allowed or abs_path.startswith(allowed + os.sep)
            for allowed in self.allowed_dirs
        )

    def _validate_command(self, command: str) -> Tuple[bool, str]:
        """Validate a command against security rules.

        Returns:
            Tuple of (is_valid, error_message)
        """
        for forbidden in self.denylist:
            if forbidden in command:
                logger.warning("Command contains forbidden token: %s", forbidden)
                return False, f"Error: Command contains forbidden token '{forbidden}'"

        path_pattern = re.compile(r'(?:^|\s|"|\'|\()(\/[^\s"\')\|;&<>]+)')
        for path in path_pattern.findall(command):
            path = path.strip()
            if not self._is_path_allowed(path):
                logger.warning("Command attempts to access restricted path: %s", path)
                return False, f"Error: Command attempts to access restricted path '{path}'"

        return True, ""

    def run_command(self, command: str, timeout: Optional[float] = None,
                    env: Optional[Dict[str, str]] = None) -> Tuple[int, str]:
        """Run a shell command, enforcing denylist, path restrictions, and timeout.

        Args:
            command: The shell command to execute
            timeout: Seconds before the process is killed (defaults to config)
            env: Extra environment variables for the process

        Returns:
            A tuple (exit_code, output). A killed process reports a negative
            exit code; a command that could not start reports 127.
        """
        is_valid, error_message = self._validate_command(command)
        if not is_valid:
            return LAUNCH_FAILURE_CODE, error_message

        execution_env = os.environ.copy()
        for dangerous_var in ['LD_PRELOAD', 'LD_LIBRARY_PATH']:
            execution_env.pop(dangerous_var, None)
        if env:
            execution_env.update(env)

        try:
            proc = subprocess.Popen(
                shlex.split(command),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                env=execution_env,
                cwd=self.cwd,
            )
        except (OSError, ValueError) as e:
            logger.error("Error executing command %r: %s", command, e)
            return LAUNCH_FAILURE_CODE, f"Error executing command: {e}"

        timer = threading.Timer(timeout or self.timeout, proc.kill)
        timer.start()
        try:
            output_chunks = []
            total_size = 0
            while True:
                chunk = proc.stdout.read(4096)
                if not chunk:
                    break
                total_size += len(chunk)
                if total_size <= self.max_output_size:
                    output_chunks.append(chunk)
                elif not output_chunks or not output_chunks[-1].startswith("\n... Output truncated"):
                    output_chunks.append("\n... Output truncated due to size limit ...")
            proc.wait()
            return proc.returncode, ''.join(output_chunks)
        finally:
            timer.cancel()
            proc.stdout.close()


def is_code_safe_for_auto_execution(code: str) -> bool:
    """Return False when a snippet contains operations that need confirmation."""
    return not any(re.search(pattern, code) for pattern in UNSAFE_CODE_PATTERNS)
