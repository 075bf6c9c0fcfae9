"""Configuration loader with environment variable resolution."""

from __future__ import annotations

import json
import os
import re
from pathlib import Path

from blueprint_chat.config.models import ChatServiceConfig

_ENV_PATTERN = re.compile(r"\$\{(\w+)\}")

CONFIG_PATH_ENV = "BLUEPRINT_CHAT_CONFIG"


def _resolve_env_vars(value: object) -> object:
    """Recursively resolve ``${ENV_VAR}`` placeholders in config values."""
    if isinstance(value, str):
        return _ENV_PATTERN.sub(lambda m: os.environ.get(m.group(1), m.group(0)), value)
    if isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_env_vars(item) for item in value]
    return value


def load_config(path: str | Path | None = None) -> ChatServiceConfig:
    """Load the service configuration from a JSON file.

    - ``path`` defaults to ``$BLUEPRINT_CHAT_CONFIG`` or ``config.json``.
    - Resolves ``${ENV_VAR}`` placeholders from environment variables.
    - Validates the result against :class:`ChatServiceConfig`.

    Raises:
        FileNotFoundError: If the config file does not exist.
        pydantic.ValidationError: If the config is invalid.
    """
    config_path = Path(path or os.environ.get(CONFIG_PATH_ENV, "config.json"))
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    raw = json.loads(config_path.read_text(encoding="utf-8"))
    resolved = _resolve_env_vars(raw)

    if not isinstance(resolved, dict):
        raise ValueError("Config file must contain a JSON object")

    return ChatServiceConfig.model_validate(resolved)
