"""Load a Configuration from a JSON file."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic.alias_generators import to_camel

from apppanel.config.schema import Configuration
from apppanel.errors import InvalidConfiguration


def get_config_path() -> Path:
    return Path.home() / ".apppanel" / "config.json"


def load_config(path: Path | None = None, **overrides: Any) -> Configuration:
    """Read the config file (camelCase or snake_case keys) and apply overrides."""
    config_path = path or get_config_path()
    data: dict[str, Any] = {}
    if config_path.exists():
        try:
            raw = json.loads(config_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise InvalidConfiguration(f"unreadable config file {config_path}: {e}") from e
        if not isinstance(raw, dict):
            raise InvalidConfiguration(f"config file {config_path} must hold a JSON object")
        data = raw
    else:
        logger.debug(f"No config file at {config_path}, using overrides only")

    data.update({to_camel(k): v for k, v in overrides.items() if v is not None})
    try:
        return Configuration.model_validate(data)
    except ValueError as e:
        raise InvalidConfiguration(str(e)) from e
