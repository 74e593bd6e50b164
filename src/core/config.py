"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, SecretStr

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")

API_KEY_ENV_VAR = "OPSGENIE_API_KEY"
MISSING_API_KEY = "OPSGENIE_API_KEY=MISSING"
DEFAULT_ENDPOINT = "https://api.opsgenie.com/v2"


class OpsGenieConfig(BaseModel):
    """OpsGenie Alert API configuration."""

    endpoint: str = DEFAULT_ENDPOINT
    api_key: SecretStr = SecretStr("")


class SinkSettings(BaseModel):
    """Delivery loop tuning and supervision policy."""

    queue_size: int = 500
    stop_on_delivery_error: bool = False


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"


class Settings(BaseModel):
    """Root settings container."""

    opsgenie: OpsGenieConfig = OpsGenieConfig()
    sink: SinkSettings = SinkSettings()
    logging: LoggingConfig = LoggingConfig()


def _resolve_api_key(settings: Settings) -> None:
    # An explicit key in YAML wins over the environment.
    if settings.opsgenie.api_key.get_secret_value():
        return
    key = os.environ.get(API_KEY_ENV_VAR, MISSING_API_KEY)
    settings.opsgenie.api_key = SecretStr(key)


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    The OpsGenie API key falls back to ``$OPSGENIE_API_KEY`` and then to a
    placeholder, so a missing key shows up as a rejected request rather
    than a startup crash.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _settings = Settings(**data)
    _resolve_api_key(_settings)
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
