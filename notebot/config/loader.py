"""Configuration loading and saving."""

import json
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from notebot.config.schema import Config
from notebot.utils.atomic import atomic_write_json


def get_config_path() -> Path:
    """Default config file location."""
    return Path.home() / ".notebot" / "config.json"


def load_config(path: Path | None = None) -> Config:
    """
    Load configuration from a JSON file, layered under NOTEBOT_* env vars.

    A missing file yields defaults; an unreadable one is logged and ignored.
    """
    path = path or get_config_path()
    data: dict = {}

    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to read config from {path}: {e}; using defaults")
            data = {}

    try:
        return Config(**data)
    except ValidationError as e:
        logger.error(f"Invalid config at {path}: {e}")
        raise


def save_config(config: Config, path: Path | None = None) -> None:
    """Write configuration (camelCase keys) to ``path``."""
    path = path or get_config_path()
    atomic_write_json(path, config.model_dump(by_alias=True))
