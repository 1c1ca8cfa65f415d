# engine/storage.py
import json
import logging
import math
import os
import re
from typing import Any

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


def ensure_user_data_dir(path: str) -> None:
    folder = os.path.dirname(path)
    if folder and not os.path.exists(folder):
        os.makedirs(folder, exist_ok=True)


def _sanitize_json_compat(value: Any):
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        return value
    if isinstance(value, dict):
        return {key: _sanitize_json_compat(val) for key, val in value.items()}
    if isinstance(value, (list, tuple)):
        return [_sanitize_json_compat(item) for item in value]
    return value


def load_json(path: str, default: Any) -> Any:
    if not os.path.exists(path):
        return default
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw_text = f.read().strip()
            if not raw_text:
                return default
            data = json.loads(raw_text)
    except (ValueError, OSError) as exc:
        logger.warning("Could not read %s, using defaults: %s", path, exc)
        return default
    if default is not None and not isinstance(data, type(default)):
        logger.warning(
            "Unexpected %s in %s (expected %s), using defaults",
            type(data).__name__,
            path,
            type(default).__name__,
        )
        return default
    return _sanitize_json_compat(data)


def save_json(path: str, value: Any) -> None:
    ensure_user_data_dir(path)
    tmp_path = f"{path}.tmp"
    clean = _sanitize_json_compat(value)
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(clean, f, allow_nan=False, ensure_ascii=False)
    os.replace(tmp_path, path)


class JsonKeyValueStore:
    """String-keyed JSON values, one file per key under ``directory``."""

    def __init__(self, directory: str = "user_data"):
        self.directory = directory

    def path_for(self, key: str) -> str:
        if not _KEY_PATTERN.match(key or ""):
            raise ValueError(f"Invalid storage key: {key!r}")
        return os.path.join(self.directory, f"{key}.json")

    def get(self, key: str, default: Any = None) -> Any:
        return load_json(self.path_for(key), default)

    def set(self, key: str, value: Any) -> None:
        save_json(self.path_for(key), value)
