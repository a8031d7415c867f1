"""Tests for layered configuration."""

import json
import os

import pytest

from SimAction.config_manager import (
    ConfigModel,
    ConfigSource,
    RefreshPolicy,
    UnifiedConfigManager,
)
from tests.conftest import ENV_KEYS


@pytest.fixture
def manager(monkeypatch, tmp_path):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(UnifiedConfigManager, "_instance", None)
    monkeypatch.setattr(UnifiedConfigManager, "_config_path", tmp_path / "config.json")
    return UnifiedConfigManager()


def test_defaults(manager):
    config = manager.get_effective_config()

    assert config.xcrun_path == "xcrun"
    assert config.command_timeout == 30.0
    assert config.log_capacity == 20
    assert config.refresh_policy == RefreshPolicy.FAIL_FAST
    assert config.parallel_dispatch is False
    assert manager.get_config_source() == ConfigSource.DEFAULT


def test_singleton(manager):
    assert UnifiedConfigManager() is manager


def test_priority_cli_over_env_over_file(manager, monkeypatch):
    manager.save_file_config(xcrun_path="/file/xcrun", command_timeout=5, log_capacity=50)
    monkeypatch.setenv("SIMACTION_XCRUN_PATH", "/env/xcrun")
    monkeypatch.setenv("SIMACTION_COMMAND_TIMEOUT", "7.5")
    manager.load_env_config()
    manager.set_cli_config(xcrun_path="/cli/xcrun")

    config = manager.get_effective_config()

    assert config.xcrun_path == "/cli/xcrun"
    assert config.command_timeout == 7.5
    assert config.log_capacity == 50
    assert manager.get_field_source("xcrun_path") == ConfigSource.CLI
    assert manager.get_field_source("command_timeout") == ConfigSource.ENV
    assert manager.get_field_source("log_capacity") == ConfigSource.FILE
    assert manager.get_field_source("parallel_dispatch") == ConfigSource.DEFAULT
    assert manager.get_config_source() == ConfigSource.CLI


def test_env_parsing(manager, monkeypatch):
    monkeypatch.setenv("SIMACTION_REFRESH_POLICY", "best_effort")
    monkeypatch.setenv("SIMACTION_PARALLEL_DISPATCH", "yes")
    manager.load_env_config()

    config = manager.get_effective_config()

    assert config.refresh_policy == RefreshPolicy.BEST_EFFORT
    assert config.parallel_dispatch is True


def test_malformed_env_is_ignored(manager, monkeypatch):
    monkeypatch.setenv("SIMACTION_COMMAND_TIMEOUT", "soon")
    manager.load_env_config()

    assert manager.get_effective_config().command_timeout == 30.0


def test_invalid_values_fall_back_to_defaults(manager):
    manager.set_cli_config(command_timeout=-1)
    assert manager.get_effective_config() == ConfigModel()


def test_save_merges_and_rejects_unknown_keys(manager):
    manager.save_file_config(xcrun_path="/a/xcrun")
    manager.save_file_config(log_capacity=40)

    saved = json.loads(manager.get_config_path().read_text(encoding="utf-8"))
    assert saved == {"xcrun_path": "/a/xcrun", "log_capacity": 40}

    with pytest.raises(ValueError):
        manager.save_file_config(theme="dark")


def test_corrupt_file_is_ignored(manager):
    manager.get_config_path().write_text("{broken", encoding="utf-8")

    assert manager.load_file_config() is False
    assert manager.get_effective_config().xcrun_path == "xcrun"


@pytest.mark.parametrize("content", ["[]", '"xcrun"', "42"])
def test_non_object_file_is_ignored(manager, content):
    manager.get_config_path().write_text(content, encoding="utf-8")

    assert manager.load_file_config() is False
    assert manager.get_effective_config() == ConfigModel()
    assert manager.get_config_source() == ConfigSource.DEFAULT


def test_save_replaces_non_object_file(manager):
    manager.get_config_path().write_text("[1, 2]", encoding="utf-8")

    assert manager.save_file_config(log_capacity=30)
    assert json.loads(manager.get_config_path().read_text(encoding="utf-8")) == {"log_capacity": 30}


def test_sync_to_env(manager, monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.setenv(key, "")
    manager.set_cli_config(refresh_policy="best_effort", command_timeout=12)
    manager.sync_to_env()

    assert os.environ["SIMACTION_REFRESH_POLICY"] == "best_effort"
    assert os.environ["SIMACTION_COMMAND_TIMEOUT"] == "12.0"


@pytest.mark.parametrize(
    "values",
    [{"command_timeout": 0}, {"command_timeout": 601}, {"log_capacity": 0}, {"xcrun_path": "  "}],
)
def test_model_validation(values):
    with pytest.raises(ValueError):
        ConfigModel(**values)
