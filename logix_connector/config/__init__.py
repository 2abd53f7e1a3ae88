"""Configuration: settings, durable settings store and cache configuration."""

from .cache_config import CacheConfigStore, ProviderConfig, ServiceAccountCredentials
from .settings import Settings, setup_logging
from .settings_store import SettingsStore, get_settings_store

__all__ = [
    "CacheConfigStore",
    "ProviderConfig",
    "ServiceAccountCredentials",
    "Settings",
    "SettingsStore",
    "get_settings_store",
    "setup_logging",
]
