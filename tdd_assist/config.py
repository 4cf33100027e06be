"""Config manager module for tdd_assist.

Handles configuration loading and default parameters.
"""

import os
import json
import logging
import threading
from pathlib import Path
from typing import Optional, Dict, List, Any

from pydantic import BaseModel, ValidationError, Field

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "tdd_assist.json"

# Agent client parameters
AGENT_ENDPOINT = os.getenv('TDD_ASSIST_AGENT_ENDPOINT', '')
AGENT_MODEL = os.getenv('TDD_ASSIST_AGENT_MODEL', 'gpt-4.1-mini')
AGENT_DEFAULT_TIMEOUT = float(os.getenv('TDD_ASSIST_AGENT_TIMEOUT', '60.0'))

# Test execution parameters
TEST_RUN_TIMEOUT = float(os.getenv('TDD_ASSIST_TEST_TIMEOUT', '300.0'))
COMMAND_TIMEOUT = float(os.getenv('TDD_ASSIST_COMMAND_TIMEOUT', '30.0'))
MAX_OUTPUT_SIZE = int(os.getenv('TDD_ASSIST_MAX_OUTPUT_SIZE', str(1024 * 1024)))

# Session parameters
HISTORY_LIMIT = int(os.getenv('TDD_ASSIST_HISTORY_LIMIT', '20'))
ARTIFACT_DIR = os.getenv('TDD_ASSIST_ARTIFACT_DIR', '.tdd_assist')

DEFAULT_DENYLIST = [
    'rm -rf', 'rm -r', 'rmdir', 'sudo', 'su ',
    'shutdown', 'reboot', 'halt', 'poweroff',
    'mkfs', 'fdisk', 'wget', 'curl -O',
    '>(', '&>', '2>', '>>', '|', ';', '&&', '||',
    'eval ', 'bash -c', 'ssh ', 'telnet',
    'chmod 777', 'chmod -R',
]


class AgentConfig(BaseModel):
    """Connection settings for the text generation agent."""

    endpoint: str = AGENT_ENDPOINT
    model: str = AGENT_MODEL
    api_key: str = os.environ.get("TDD_ASSIST_AGENT_KEY", "")
    timeout: float = AGENT_DEFAULT_TIMEOUT


class RunnerConfig(BaseModel):
    """Settings for the test runner.

    ``commands`` maps a lower-case framework name to the shell command used
    to run it and overrides the built-in defaults.
    """

    timeout: float = TEST_RUN_TIMEOUT
    commands: Dict[str, str] = Field(default_factory=dict)


class ModesConfig(BaseModel):
    """Initial session flags."""

    agent_mode: bool = False  # chat only unless enabled
    auto_mode: bool = False
    tdd_mode: bool = False
    ui_tdd_mode: bool = False
    manifesto_mode: bool = False


class ConfigModel(BaseModel):
    """Typed configuration validated by Pydantic."""

    agent: AgentConfig = AgentConfig()
    test_runner: RunnerConfig = RunnerConfig()
    modes: ModesConfig = ModesConfig()
    workspace_path: str = "."
    artifact_dir: str = ARTIFACT_DIR
    history_limit: int = Field(default=HISTORY_LIMIT, ge=1)
    command_timeout: float = COMMAND_TIMEOUT
    max_output_size: int = MAX_OUTPUT_SIZE
    denylist: List[str] = Field(default_factory=lambda: list(DEFAULT_DENYLIST))

    model_config = {"extra": "allow"}


class Config:
    """Configuration manager for tdd_assist.

    Loads defaults, an optional ``tdd_assist.json`` from the workspace and
    environment overrides into a validated ``ConfigModel``.
    """

    def __init__(self, workspace_path: Optional[str] = None):
        """Initialize the configuration manager.

        Args:
            workspace_path: Directory searched for ``tdd_assist.json``.
                Defaults to the current working directory.
        """
        self.workspace_path = workspace_path or os.getcwd()

        # Flag to track if config loading failed
        self.load_failed = False

        self.settings: ConfigModel = ConfigModel(workspace_path=self.workspace_path)
        self._settings_lock = threading.RLock()

    @property
    def config(self) -> Dict[str, Any]:
        """Dictionary representation of the current settings."""
        with self._settings_lock:
            return self.settings.model_dump()

    @config.setter
    def config(self, new_config: Dict[str, Any]) -> None:
        with self._settings_lock:
            try:
                self.settings = ConfigModel(**new_config)
            except ValidationError as exc:
                self.load_failed = True
                raise ConfigurationError(f"Invalid configuration: {exc}") from exc

    def get_default_config(self) -> Dict[str, Any]:
        """Return default configuration as dictionary."""
        return ConfigModel(workspace_path=self.workspace_path).model_dump()

    def load(self, config_path: Optional[str] = None) -> None:
        """Load configuration from defaults and an optional JSON file.

        Args:
            config_path: Explicit path to a JSON config file. When omitted,
                ``tdd_assist.json`` in the workspace is used if present.

        Raises:
            ConfigurationError: If the file is not valid JSON or the merged
                data does not validate.
        """
        runtime_config: Dict[str, Any] = self.get_default_config()

        json_path = config_path or str(Path(self.workspace_path) / CONFIG_FILE_NAME)
        if os.path.exists(json_path):
            try:
                with open(json_path, 'r', encoding='utf-8') as f:
                    user_config = json.load(f)
            except json.JSONDecodeError as e:
                self.load_failed = True
                raise ConfigurationError(f"Invalid JSON in {json_path}: {e}") from e
            if not isinstance(user_config, dict):
                self.load_failed = True
                raise ConfigurationError(f"{json_path} must contain a JSON object")
            runtime_config = _merge(runtime_config, user_config)
            logger.info("Loaded configuration overrides from %s", json_path)
        elif config_path:
            logger.warning("Configuration file not found: %s", config_path)

        self.config = runtime_config
        logger.info("Configuration loaded")

    def get_artifact_root(self) -> str:
        """Absolute directory that receives generated artifacts."""
        return os.path.join(os.path.abspath(self.settings.workspace_path), self.settings.artifact_dir)


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged

