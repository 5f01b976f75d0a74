"""Shared ForgeFlow configuration utilities.

Centralises reading of ~/.forgeflow/configuration.json so that the CLI, the
runner and embedding hosts share one implementation. The file location can be
overridden with the FORGEFLOW_CONFIG environment variable.

Example configuration::

    {
      "engine": {"max_node_visits": 50, "join_policy": "each_path"},
      "http": {"timeout": 30},
      "llm": {"provider": "openai", "model": "gpt-4o-mini",
              "api_key_env_var": "OPENAI_API_KEY"},
      "logging": {"level": "INFO", "format": "auto"},
      "history_dir": "~/.forgeflow/executions"
    }
"""

import json
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from forgeflow.graph.executor import JoinPolicy

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Low-level config file access
# ---------------------------------------------------------------------------

FORGEFLOW_HOME = Path.home() / ".forgeflow"
DEFAULT_CONFIG_FILE = FORGEFLOW_HOME / "configuration.json"
DEFAULT_HISTORY_DIR = FORGEFLOW_HOME / "executions"
DEFAULT_LLM_MODEL = "gpt-4o-mini"


def get_config_path() -> Path:
    """Location of the configuration file (FORGEFLOW_CONFIG wins)."""
    override = os.environ.get("FORGEFLOW_CONFIG")
    return Path(override).expanduser() if override else DEFAULT_CONFIG_FILE


def get_forgeflow_config() -> dict[str, Any]:
    """Load the configuration file; an absent or unreadable file is an empty config."""
    path = get_config_path()
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8-sig") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Ignoring unreadable config {path}: {e}")
        return {}
    return data if isinstance(data, dict) else {}


# ---------------------------------------------------------------------------
# Derived helpers
# ---------------------------------------------------------------------------


def _setting(section: str | None, key: str, env_var: str, default: Any, cast: Callable = str):
    """Resolve one setting: environment variable, then config file, then default."""
    raw = os.environ.get(env_var)
    if raw is None:
        config = get_forgeflow_config()
        scope = config.get(section, {}) if section else config
        raw = scope.get(key) if isinstance(scope, dict) else None
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except (TypeError, ValueError):
        logger.warning(f"Invalid value for {env_var}: {raw!r}; using {default!r}")
        return default


def get_preferred_model() -> str:
    """Return the LLM model string for AI nodes (e.g. 'anthropic/claude-3-5-haiku-latest')."""
    env_model = os.environ.get("FORGEFLOW_LLM_MODEL")
    if env_model:
        return env_model
    llm = get_forgeflow_config().get("llm", {})
    if llm.get("provider") and llm.get("model"):
        return f"{llm['provider']}/{llm['model']}"
    return llm.get("model") or DEFAULT_LLM_MODEL


def get_api_key() -> str | None:
    """Return the API key from the environment variable named in the configuration."""
    llm = get_forgeflow_config().get("llm", {})
    api_key_env_var = llm.get("api_key_env_var")
    if api_key_env_var:
        return os.environ.get(api_key_env_var)
    return None


# ---------------------------------------------------------------------------
# EngineConfig
# ---------------------------------------------------------------------------


@dataclass
class EngineConfig:
    """Engine settings loaded from configuration.json and FORGEFLOW_* variables."""

    max_node_visits: int = field(
        default_factory=lambda: _setting(
            "engine", "max_node_visits", "FORGEFLOW_MAX_NODE_VISITS", 0, int
        )
    )
    join_policy: JoinPolicy = field(
        default_factory=lambda: _setting(
            "engine", "join_policy", "FORGEFLOW_JOIN_POLICY", JoinPolicy.EACH_PATH, JoinPolicy
        )
    )
    http_timeout: float = field(
        default_factory=lambda: _setting("http", "timeout", "FORGEFLOW_HTTP_TIMEOUT", 30.0, float)
    )
    llm_model: str = field(default_factory=get_preferred_model)
    llm_api_key: str | None = field(default_factory=get_api_key)
    log_level: str = field(
        default_factory=lambda: _setting("logging", "level", "FORGEFLOW_LOG_LEVEL", "INFO")
    )
    log_format: str = field(
        default_factory=lambda: _setting("logging", "format", "FORGEFLOW_LOG_FORMAT", "auto")
    )
    history_dir: Path = field(
        default_factory=lambda: _setting(
            None,
            "history_dir",
            "FORGEFLOW_HISTORY_DIR",
            DEFAULT_HISTORY_DIR,
            lambda v: Path(v).expanduser(),
        )
    )

    def __post_init__(self) -> None:
        try:
            self.join_policy = JoinPolicy(self.join_policy)
        except ValueError:
            logger.warning(
                f"Invalid join policy {self.join_policy!r}; using {JoinPolicy.EACH_PATH.value!r}"
            )
            self.join_policy = JoinPolicy.EACH_PATH
