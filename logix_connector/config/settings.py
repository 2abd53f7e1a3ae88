"""Runtime settings and logging setup.

Each value is looked up in the durable settings store first, then the
process environment (``.env`` is loaded on import), then a built-in default.
"""

from __future__ import annotations

import logging
import os
from typing import Callable, Optional, TypeVar

from dotenv import load_dotenv

from .settings_store import get_settings_store

load_dotenv()

logger = logging.getLogger(__name__)

T = TypeVar("T")

SILENT_LEVELS = {"NO", "NONE", "OFF"}
NOISY_LOGGERS = ("aiohttp", "urllib3")
PACKAGE_LOGGER = "logix_connector"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _lookup(key: str) -> Optional[str]:
    stored = get_settings_store().get(key)
    if stored is not None:
        return stored
    return os.getenv(key)


def _coerce(key: str, cast: Callable[[str], T], default: T) -> T:
    """Read ``key`` and convert it with ``cast``, keeping ``default`` on bad input."""
    raw = _lookup(key)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid value for %s: %r", key, raw)
        return default


def get_secret(key: str) -> Optional[str]:
    """Resolve a secret such as ``API_TOKEN``; blank values count as missing.

    Secrets are looked up on every call and never kept on ``Settings``, so a
    rotated token is picked up by the next request.
    """
    raw = _lookup(key)
    if raw is None:
        return None
    return raw.strip() or None


class Settings:
    """Resolved settings, exposed as class attributes."""

    LOG_LEVEL: str = "INFO"
    LOGIX_API_BASE_URL: str = "https://api01.logixcommerce.com"
    FIREBASE_DB_HOST_SUFFIX: str = "-default-rtdb.firebaseio.com"
    FIREBASE_COLLECTION: str = "cache"
    CACHE_REFRESH_DELAY_MS: int = 500
    CACHE_REFRESH_INTERVAL_SECONDS: int = 1800
    HTTP_TIMEOUT_SECONDS: float = 60.0

    @classmethod
    def refresh_from_env(cls) -> None:
        cls.LOG_LEVEL = _coerce("LOG_LEVEL", str, "INFO")
        cls.LOGIX_API_BASE_URL = _coerce(
            "LOGIX_API_BASE_URL", str, "https://api01.logixcommerce.com"
        ).rstrip("/")
        cls.FIREBASE_DB_HOST_SUFFIX = _coerce(
            "FIREBASE_DB_HOST_SUFFIX", str, "-default-rtdb.firebaseio.com"
        )
        cls.FIREBASE_COLLECTION = _coerce("FIREBASE_COLLECTION", str, "cache").strip("/")
        cls.CACHE_REFRESH_DELAY_MS = _coerce("CACHE_REFRESH_DELAY_MS", int, 500)
        cls.CACHE_REFRESH_INTERVAL_SECONDS = _coerce("CACHE_REFRESH_INTERVAL_SECONDS", int, 1800)
        cls.HTTP_TIMEOUT_SECONDS = _coerce("HTTP_TIMEOUT_SECONDS", float, 60.0)

    @classmethod
    def log_config(cls) -> None:
        logger.info(
            "Logix API %s, Firebase collection /%s, refresh delay %d ms every %d s",
            cls.LOGIX_API_BASE_URL,
            cls.FIREBASE_COLLECTION,
            cls.CACHE_REFRESH_DELAY_MS,
            cls.CACHE_REFRESH_INTERVAL_SECONDS,
        )


Settings.refresh_from_env()


def resolve_log_level(name: Optional[str]) -> int:
    level_name = (name or Settings.LOG_LEVEL or "INFO").upper()
    if level_name in SILENT_LEVELS:
        return logging.CRITICAL + 10
    return getattr(logging, level_name, logging.INFO)


def setup_logging(level_override: Optional[str] = None) -> int:
    """Configure the ``logix_connector`` logger from ``LOG_LEVEL`` or an override.

    Only the package logger gets a handler; the root logger and any handlers
    the host application installed are left alone. Calling this again replaces
    the package handler instead of adding a second one. ``NO``, ``NONE`` and
    ``OFF`` silence the package entirely. HTTP client libraries never log
    below INFO.
    """
    level = resolve_log_level(level_override)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(package_logger.handlers):
        if handler.get_name() == PACKAGE_LOGGER:
            package_logger.removeHandler(handler)
            handler.close()

    handler = logging.StreamHandler()
    handler.set_name(PACKAGE_LOGGER)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    package_logger.propagate = False

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(max(level, logging.INFO))
    return level
