"""Tests for settings resolution and logging setup."""

import logging

import pytest

from logix_connector.config.settings import (
    Settings,
    _coerce,
    get_secret,
    resolve_log_level,
    setup_logging,
)
from logix_connector.config.settings_store import get_settings_store


def test_coerce_falls_back_on_bad_input(monkeypatch):
    monkeypatch.setenv("CACHE_REFRESH_DELAY_MS", "250")
    assert _coerce("CACHE_REFRESH_DELAY_MS", int, 500) == 250

    monkeypatch.setenv("CACHE_REFRESH_DELAY_MS", "abc")
    assert _coerce("CACHE_REFRESH_DELAY_MS", int, 500) == 500

    monkeypatch.setenv("HTTP_TIMEOUT_SECONDS", "  ")
    assert _coerce("HTTP_TIMEOUT_SECONDS", float, 60.0) == 60.0

    monkeypatch.delenv("CACHE_REFRESH_DELAY_MS")
    assert _coerce("CACHE_REFRESH_DELAY_MS", int, 7) == 7


def test_secret_prefers_store_over_environment(monkeypatch):
    monkeypatch.setenv("API_TOKEN", "from-env")
    assert get_secret("API_TOKEN") == "from-env"

    get_settings_store().set("API_TOKEN", "from-store")
    assert get_secret("API_TOKEN") == "from-store"


def test_blank_secret_is_missing(monkeypatch):
    monkeypatch.setenv("API_TOKEN", "   ")
    assert get_secret("API_TOKEN") is None


def test_refresh_from_env_reads_overrides(monkeypatch):
    monkeypatch.setenv("CACHE_REFRESH_DELAY_MS", "125")
    monkeypatch.setenv("FIREBASE_COLLECTION", "/reports/")
    try:
        Settings.refresh_from_env()
        assert Settings.CACHE_REFRESH_DELAY_MS == 125
        assert Settings.FIREBASE_COLLECTION == "reports"
    finally:
        monkeypatch.delenv("CACHE_REFRESH_DELAY_MS")
        monkeypatch.delenv("FIREBASE_COLLECTION")
        Settings.refresh_from_env()


@pytest.mark.parametrize(
    "override, expected",
    [
        ("DEBUG", logging.DEBUG),
        ("warning", logging.WARNING),
        ("NO", logging.CRITICAL + 10),
    ],
)
def test_setup_logging_levels(override, expected):
    assert setup_logging(override) == expected
    assert logging.getLogger("logix_connector").level == expected
    assert logging.getLogger("aiohttp").level == max(expected, logging.INFO)


def test_setup_logging_leaves_root_logger_alone():
    root = logging.getLogger()
    root_handlers = list(root.handlers)
    root_level = root.level

    setup_logging("DEBUG")

    assert root.handlers == root_handlers
    assert root.level == root_level
    assert logging.getLogger("logix_connector").propagate is False


def test_setup_logging_twice_keeps_one_handler():
    setup_logging("INFO")
    setup_logging("DEBUG")

    package_logger = logging.getLogger("logix_connector")
    named = [h for h in package_logger.handlers if h.get_name() == "logix_connector"]
    assert len(named) == 1
    assert package_logger.level == logging.DEBUG


def test_resolve_log_level_defaults_to_info(monkeypatch):
    monkeypatch.setattr(Settings, "LOG_LEVEL", "")
    assert resolve_log_level(None) == logging.INFO
    assert resolve_log_level("off") == logging.CRITICAL + 10
    assert resolve_log_level("bogus") == logging.INFO
