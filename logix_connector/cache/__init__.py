"""Caching layer in front of the Logix API.

Two interchangeable providers are supported, selected with the
``CACHE_PROVIDER`` setting:

    firebase: Firebase Realtime Database (service account credentials)
    proxy:    HTTP cache proxy (``PROXY_BASE_URL``)

Caching is off until ``CACHING_ENABLED`` is set to ``true``.
"""

from .adapter import (
    CACHE_EXPIRATION_MS,
    CachingAdapter,
    get_caching_adapter,
    reset_caching_adapter,
)
from .base import (
    CacheConfigurationError,
    CacheEntry,
    CacheError,
    CacheProvider,
    TokenExchangeError,
)
from .firebase import FirebaseCacheProvider
from .keys import build_key, parse_key
from .proxy import ProxyCacheProvider
from .refresh import CacheRefresher, RefreshOutcome, RefreshResult, run_periodic_refresh

__all__ = [
    "CACHE_EXPIRATION_MS",
    "CacheConfigurationError",
    "CacheEntry",
    "CacheError",
    "CacheProvider",
    "CacheRefresher",
    "CachingAdapter",
    "FirebaseCacheProvider",
    "ProxyCacheProvider",
    "RefreshOutcome",
    "RefreshResult",
    "TokenExchangeError",
    "build_key",
    "get_caching_adapter",
    "parse_key",
    "reset_caching_adapter",
    "run_periodic_refresh",
]
