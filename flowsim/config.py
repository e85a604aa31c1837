from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, ValidationError, field_validator

from .constants import APP_DIR_NAME, DEFAULT_WATCH_INTERVAL, DEFAULT_WORKSPACE_ID
from .errors import ConfigError

LogLevel = Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]

# Environment variables and the config keys they override.
ENV_OVERRIDES = {
    "FLOWSIM_STATE": "state_path",
    "FLOWSIM_WORKSPACE": "workspace_id",
    "FLOWSIM_LOG_LEVEL": "log_level",
}


class WatchConfig(BaseModel):
    """Polling settings for ``runs watch``."""

    interval: float = DEFAULT_WATCH_INTERVAL


class FlowSimConfig(BaseModel):
    """Top-level configuration model."""

    workspace_id: str = DEFAULT_WORKSPACE_ID
    state_path: Optional[str] = None
    watch: WatchConfig = WatchConfig()
    log_level: LogLevel = "WARNING"

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


def load_config(path: Optional[str] = None) -> FlowSimConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to FLOWSIM_CONFIG env
            variable or 'flowsim.yaml' in the current directory.
    """

    config_path = path or os.getenv("FLOWSIM_CONFIG", "flowsim.yaml")
    data: dict[str, Any] = {}
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigError(config_path, "expected a mapping at the top level")

    for env_name, field in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            data[field] = value
    try:
        return FlowSimConfig(**data)
    except ValidationError as exc:
        raise ConfigError(config_path, str(exc)) from exc


def user_config_dir() -> Optional[Path]:
    """Return the platform's per-user configuration directory, if known."""
    if sys.platform == "win32":
        appdata = os.getenv("APPDATA")
        return Path(appdata) if appdata else None
    if sys.platform == "darwin":
        home = os.getenv("HOME")
        return Path(home) / "Library" / "Application Support" if home else None
    xdg = os.getenv("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg)
    home = os.getenv("HOME")
    return Path(home) / ".config" if home else None


def default_state_path() -> Path:
    """Location of the simulator snapshot when none is configured."""
    base = user_config_dir()
    if base is None:
        base = Path.home() / ".config"
    return base / APP_DIR_NAME / "mock" / "state.json"


def resolve_state_path(config: FlowSimConfig) -> Path:
    if config.state_path:
        return Path(config.state_path).expanduser()
    return default_state_path()
