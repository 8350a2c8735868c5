"""YAML config loader with Pydantic validation."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from ensemble_tv.channel.method_channel import REMOTE_CHANNEL


def _resolve_env_vars(value: str) -> str:
    """Replace ${VAR_NAME} with environment variable values."""
    pattern = re.compile(r"\$\{(\w+)\}")
    def replacer(match: re.Match) -> str:
        var_name = match.group(1)
        env_val = os.environ.get(var_name)
        if env_val is None:
            raise ValueError(f"Environment variable {var_name} is not set")
        return env_val
    return pattern.sub(replacer, value)


def _resolve_env_recursive(data: Any) -> Any:
    """Walk a nested dict/list and resolve env vars in string values."""
    if isinstance(data, str):
        return _resolve_env_vars(data)
    if isinstance(data, dict):
        return {k: _resolve_env_recursive(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_resolve_env_recursive(item) for item in data]
    return data


class ChannelConfig(BaseModel):
    name: str = REMOTE_CHANNEL

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Channel name must not be empty")
        return v


class MessengerConfig(BaseModel):
    url: str = ""  # empty: in-process messenger
    token: str = ""
    timeout_seconds: float = Field(default=5.0, ge=0.5, le=60.0)


class RemoteConfig(BaseModel):
    device_name: str = ""
    grab: bool = True


class LoggingConfig(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @field_validator("level", mode="before")
    @classmethod
    def upper_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class BridgeConfig(BaseModel):
    channel: ChannelConfig = Field(default_factory=ChannelConfig)
    messenger: MessengerConfig = Field(default_factory=MessengerConfig)
    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(config_path: str | Path | None = None) -> BridgeConfig:
    """Load and validate config from YAML file.

    Resolution order:
    1. Explicit path argument
    2. ENSEMBLE_TV_CONFIG env var
    3. config/local.yaml (gitignored, has secrets)
    4. config/default.yaml (checked in, no secrets)
    """
    if config_path is None:
        env_path = os.environ.get("ENSEMBLE_TV_CONFIG")
        if env_path:
            config_path = Path(env_path)
        else:
            project_root = Path(__file__).parent.parent.parent
            local = project_root / "config" / "local.yaml"
            default = project_root / "config" / "default.yaml"
            config_path = local if local.exists() else default

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    resolved = _resolve_env_recursive(raw)
    return BridgeConfig(**resolved)
