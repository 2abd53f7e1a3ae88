"""Durable key-value settings storage.

Settings live in a JSON file shared by the connector, the refresh scheduler
and the admin CLI. Every read goes back to disk so that a change made by one
process (for example switching the cache provider) is picked up by the next
operation in any other process without a restart.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

SETTINGS_SCHEMA_VERSION = 1

SETTINGS_DIR_ENV = "LOGIX_SETTINGS_DIR"
DEFAULT_SETTINGS_SUBDIR = ".logix"
SETTINGS_FILENAME = "settings.json"


def _settings_dir() -> Path:
    """Return the directory that should hold the settings file."""

    root = os.getenv(SETTINGS_DIR_ENV)
    if root:
        return Path(root).expanduser().resolve()
    return Path(DEFAULT_SETTINGS_SUBDIR)


def _settings_path() -> Path:
    return _settings_dir() / SETTINGS_FILENAME


class SettingsStore:
    """Thin JSON-backed store of string settings.

    Values are always stored as strings, mirroring a script-properties style
    store: booleans are written as ``"true"``/``"false"`` and structured values
    are JSON-encoded by the caller.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path or _settings_path()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                payload = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Could not read settings file %s: %s", self.path, exc)
            return {}
        if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
            return {str(k): str(v) for k, v in payload["data"].items() if v is not None}
        return {}

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        if value is None:
            data.pop(key, None)
        else:
            data[key] = value if isinstance(value, str) else str(value)
        self._write(data)

    def _write(self, data: Dict[str, str]) -> None:
        path = self.path
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".tmp")
        payload = {
            "data": data,
            "meta": {"schema_version": SETTINGS_SCHEMA_VERSION},
        }
        with tmp_path.open("w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2, sort_keys=True)
            fh.write("\n")
        tmp_path.replace(path)


_SETTINGS_STORE: Optional[SettingsStore] = None


def get_settings_store() -> SettingsStore:
    global _SETTINGS_STORE
    if _SETTINGS_STORE is None:
        _SETTINGS_STORE = SettingsStore()
    return _SETTINGS_STORE


def reset_settings_store() -> None:
    """Drop the process-wide store so the next call re-resolves its path."""
    global _SETTINGS_STORE
    _SETTINGS_STORE = None
