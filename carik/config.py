"""Configuration management with Pydantic Settings + optional YAML."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from carik.utils.platform import get_config_dir


class BotConfig(BaseModel):
    name: str = "carik-bot"
    prefix: str = "/"
    version: str = "0.1.0"


class RateLimitConfig(BaseModel):
    max_requests: int = Field(default=20, gt=0)
    window_seconds: int = Field(default=60, gt=0)
    # Actor key policy: "user" falls back to chat id when no sender is known
    key: Literal["user", "chat"] = "user"


class WhitelistConfig(BaseModel):
    enabled: bool = False
    users: list[str] = Field(default_factory=list)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CARIK_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    bot: BotConfig = Field(default_factory=BotConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    whitelist: WhitelistConfig = Field(default_factory=WhitelistConfig)
    middleware: list[str] = Field(
        default_factory=lambda: ["logging", "rate_limit", "whitelist"]
    )
    log_level: str = "INFO"
    log_json: bool = False


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from env vars, optionally overlaying a YAML config."""
    yaml_data: dict[str, Any] = {}

    if config_path is None:
        config_path = os.environ.get("CARIK_CONFIG")
    if config_path is None:
        default = get_config_dir() / "config.yaml"
        if default.exists():
            config_path = default

    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                yaml_data = yaml.safe_load(f) or {}

    if overrides:
        yaml_data = _deep_merge(yaml_data, overrides)

    # YAML values are init kwargs; pydantic-settings gives them priority over env
    return Settings(**yaml_data)
