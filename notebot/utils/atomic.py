"""Atomic JSON persistence helpers."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from loguru import logger


def atomic_write_json(path: Path, data: Any, indent: int = 2) -> None:
    """Write JSON data atomically via tempfile + os.replace().

    The target is either fully replaced or left untouched, so a crash
    mid-write never leaves a truncated index behind.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=indent, ensure_ascii=False, default=str)
        os.replace(tmp_path, str(path))
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def read_json(path: Path, default: Any) -> Any:
    """Read a JSON document, returning ``default`` if it is missing or unreadable."""
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read {path}: {e}")
        return default
