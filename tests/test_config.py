"""Tests for configuration loading."""

import json

import pytest

from tdd_assist.config import CONFIG_FILE_NAME, Config, ConfigModel
from tdd_assist.errors import ConfigurationError
from tdd_assist.session_context import SessionContext


def test_defaults(tmp_path):
    config = Config(str(tmp_path))
    config.load()

    assert config.settings.history_limit == 20
    assert config.settings.modes.agent_mode is False
    assert config.settings.artifact_dir == ".tdd_assist"
    assert config.load_failed is False


def test_workspace_file_is_merged(tmp_path):
    (tmp_path / CONFIG_FILE_NAME).write_text(json.dumps({
        "modes": {"tdd_mode": True},
        "test_runner": {"commands": {"jest": "yarn test"}},
        "history_limit": 10,
    }))

    config = Config(str(tmp_path))
    config.load()

    assert config.settings.modes.tdd_mode is True
    # Sibling keys of a nested override keep their defaults
    assert config.settings.modes.agent_mode is False
    assert config.settings.test_runner.commands == {"jest": "yarn test"}
    assert config.settings.history_limit == 10


def test_explicit_path(tmp_path):
    path = tmp_path / "custom.json"
    path.write_text(json.dumps({"artifact_dir": "generated"}))

    config = Config(str(tmp_path))
    config.load(str(path))

    assert config.get_artifact_root().endswith("generated")


def test_invalid_json_raises(tmp_path):
    (tmp_path / CONFIG_FILE_NAME).write_text("{broken")

    config = Config(str(tmp_path))
    with pytest.raises(ConfigurationError):
        config.load()
    assert config.load_failed is True


def test_non_object_raises(tmp_path):
    (tmp_path / CONFIG_FILE_NAME).write_text("[1, 2]")

    with pytest.raises(ConfigurationError):
        Config(str(tmp_path)).load()


def test_invalid_values_raise(tmp_path):
    (tmp_path / CONFIG_FILE_NAME).write_text(json.dumps({"history_limit": 0}))

    with pytest.raises(ConfigurationError):
        Config(str(tmp_path)).load()


def test_config_setter_validates(tmp_path):
    config = Config(str(tmp_path))
    with pytest.raises(ConfigurationError):
        config.config = {"history_limit": "many"}


def test_session_context_from_config():
    settings = ConfigModel(modes={"agent_mode": True, "ui_tdd_mode": True}, history_limit=4)

    context = SessionContext.from_config(settings)

    assert context.is_agent_mode is True
    assert context.is_ui_tdd_mode is True
    assert context.is_tdd_mode is False
    assert context.history_limit == 4
