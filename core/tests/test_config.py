"""Tests for configuration loading: file, environment overrides and defaults."""

import json
from pathlib import Path

import pytest

from forgeflow.config import (
    DEFAULT_HISTORY_DIR,
    DEFAULT_LLM_MODEL,
    EngineConfig,
    get_api_key,
    get_config_path,
    get_forgeflow_config,
    get_preferred_model,
)
from forgeflow.graph.executor import JoinPolicy

_ENV_VARS = (
    "FORGEFLOW_MAX_NODE_VISITS",
    "FORGEFLOW_JOIN_POLICY",
    "FORGEFLOW_HTTP_TIMEOUT",
    "FORGEFLOW_LLM_MODEL",
    "FORGEFLOW_LOG_LEVEL",
    "FORGEFLOW_LOG_FORMAT",
    "FORGEFLOW_HISTORY_DIR",
)


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    """Point FORGEFLOW_CONFIG at a temp file and clear every override variable."""
    path = tmp_path / "configuration.json"
    monkeypatch.setenv("FORGEFLOW_CONFIG", str(path))
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return path


def write_config(path: Path, data) -> None:
    path.write_text(json.dumps(data), encoding="utf-8")


def test_config_path_override(config_file):
    assert get_config_path() == config_file


def test_missing_file_is_empty_config(config_file):
    assert get_forgeflow_config() == {}


def test_unreadable_file_is_empty_config(config_file):
    config_file.write_text("{broken", encoding="utf-8")
    assert get_forgeflow_config() == {}


def test_file_with_bom_is_read(config_file):
    config_file.write_text('\ufeff{"engine": {"max_node_visits": 3}}', encoding="utf-8")
    assert get_forgeflow_config() == {"engine": {"max_node_visits": 3}}


def test_defaults(config_file):
    config = EngineConfig()

    assert config.max_node_visits == 0
    assert config.join_policy == "each_path"
    assert config.http_timeout == 30.0
    assert config.llm_model == DEFAULT_LLM_MODEL
    assert config.llm_api_key is None
    assert config.log_level == "INFO"
    assert config.log_format == "auto"
    assert config.history_dir == DEFAULT_HISTORY_DIR


def test_values_from_file(config_file, tmp_path):
    write_config(
        config_file,
        {
            "engine": {"max_node_visits": 5, "join_policy": "once"},
            "http": {"timeout": 10},
            "logging": {"level": "DEBUG", "format": "json"},
            "history_dir": str(tmp_path / "runs"),
        },
    )

    config = EngineConfig()

    assert config.max_node_visits == 5
    assert config.join_policy == "once"
    assert config.http_timeout == 10.0
    assert config.log_level == "DEBUG"
    assert config.log_format == "json"
    assert config.history_dir == tmp_path / "runs"


def test_environment_overrides_file(config_file, monkeypatch):
    write_config(config_file, {"engine": {"max_node_visits": 5}})
    monkeypatch.setenv("FORGEFLOW_MAX_NODE_VISITS", "9")
    monkeypatch.setenv("FORGEFLOW_HTTP_TIMEOUT", "2.5")

    config = EngineConfig()

    assert config.max_node_visits == 9
    assert config.http_timeout == 2.5


def test_invalid_value_falls_back_to_default(config_file, monkeypatch):
    monkeypatch.setenv("FORGEFLOW_MAX_NODE_VISITS", "lots")
    assert EngineConfig().max_node_visits == 0


def test_preferred_model(config_file, monkeypatch):
    write_config(
        config_file, {"llm": {"provider": "anthropic", "model": "claude-3-5-haiku-latest"}}
    )
    assert get_preferred_model() == "anthropic/claude-3-5-haiku-latest"

    monkeypatch.setenv("FORGEFLOW_LLM_MODEL", "ollama/llama3")
    assert get_preferred_model() == "ollama/llama3"


def test_api_key_from_named_variable(config_file, monkeypatch):
    write_config(config_file, {"llm": {"api_key_env_var": "MY_LLM_KEY"}})
    monkeypatch.setenv("MY_LLM_KEY", "sk-123")

    assert get_api_key() == "sk-123"
    assert EngineConfig().llm_api_key == "sk-123"


def test_explicit_values_skip_lookup(config_file):
    write_config(config_file, {"engine": {"max_node_visits": 5}})
    assert EngineConfig(max_node_visits=1).max_node_visits == 1


def test_invalid_join_policy_falls_back(config_file, monkeypatch):
    monkeypatch.setenv("FORGEFLOW_JOIN_POLICY", "bogus")
    assert EngineConfig().join_policy == JoinPolicy.EACH_PATH


def test_explicit_invalid_join_policy_falls_back(config_file):
    assert EngineConfig(join_policy="bogus").join_policy == JoinPolicy.EACH_PATH
    assert EngineConfig(join_policy="once").join_policy is JoinPolicy.ONCE
