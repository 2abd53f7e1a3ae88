"""Administrative operations for the cache: toggles, provider switching, maintenance."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Union

from .cache.adapter import CachingAdapter
from .cache.base import CacheConfigurationError, now_ms
from .cache.refresh import CacheRefresher, RefreshResult
from .config.cache_config import (
    CACHE_PROVIDERS,
    PROVIDER_FIREBASE,
    PROVIDER_PROXY,
    CacheConfigStore,
)

logger = logging.getLogger(__name__)


def enable_caching(config: CacheConfigStore) -> bool:
    config.set_caching_enabled(True)
    logger.info("Current provider: %s", config.get_provider_name())
    return True


def disable_caching(config: CacheConfigStore) -> bool:
    config.set_caching_enabled(False)
    return True


def caching_status(config: CacheConfigStore) -> Dict[str, Any]:
    snapshot = config.snapshot()
    return {
        "enabled": snapshot.enabled,
        "provider": snapshot.provider_name,
        "proxy_url": snapshot.proxy_base_url,
        "credentials": config.get_service_account_creds() is not None,
    }


def use_provider(config: CacheConfigStore, name: str) -> bool:
    """Switch the active provider after checking it is configured."""
    if name not in CACHE_PROVIDERS:
        logger.error("Unknown provider %s. Choose from: %s", name, ", ".join(CACHE_PROVIDERS))
        return False
    if name == PROVIDER_FIREBASE and config.get_service_account_creds() is None:
        logger.error("Firebase credentials not configured. Store credentials first.")
        return False
    if name == PROVIDER_PROXY and not config.get_proxy_base_url():
        logger.error("Proxy URL not configured. Set the proxy URL first.")
        return False
    return config.set_provider_name(name)


def configure_proxy_url(config: CacheConfigStore, url: str) -> bool:
    return config.set_proxy_base_url(url)


def store_service_account_credentials(
    config: CacheConfigStore, raw: Union[str, Dict[str, Any]]
) -> bool:
    return config.set_service_account_creds(raw)


async def clear_all_cached_data(adapter: CachingAdapter) -> Dict[str, int]:
    """Delete every entry held by the active provider."""
    entries = await adapter.list_keys()
    if not entries:
        logger.info("No cached data found to clear")
        return {"deleted": 0, "failed": 0}

    deleted = 0
    failed = 0
    for key in entries:
        if await adapter.delete(key):
            deleted += 1
        else:
            logger.warning("Failed to delete key %s", key)
            failed += 1

    logger.info("Cache clearing completed. Deleted: %d, Failed: %d", deleted, failed)
    return {"deleted": deleted, "failed": failed}


async def manually_refresh_all_caches(
    refresher: CacheRefresher, deadline: Optional[float] = None
) -> RefreshResult:
    result = await refresher.refresh_all_caches(deadline=deadline)
    logger.info(
        "Manual cache refresh completed. Refreshed: %d, Failed: %d, Execution time: %ss",
        result.refreshed,
        result.failed,
        result.execution_time,
    )
    return result


async def test_cache_provider(adapter: CachingAdapter, name: Optional[str] = None) -> bool:
    """Write, read and delete a throwaway entry directly on a provider.

    Caching is switched on for the duration of the check if it was off, and
    the previous state is restored afterwards.
    """
    config = adapter.config
    target = name or config.get_provider_name()
    provider = adapter.provider(target)
    logger.info("Testing cache provider: %s", target)

    was_enabled = config.is_caching_enabled()
    if not was_enabled:
        config.set_caching_enabled(True)

    test_key = f"test_{now_ms()}"
    test_data = {"timestamp": now_ms(), "message": f"Test data for {target} provider"}
    try:
        if not await provider.put(test_key, test_data):
            logger.error("FAILED: Could not write test data")
            return False
        if await provider.get(test_key) is None:
            logger.error("FAILED: Could not read test data")
            return False
        if not await provider.delete(test_key):
            logger.error("FAILED: Could not delete test data")
            return False
        logger.info("SUCCESS: %s provider passed write/read/delete", target)
        return True
    except CacheConfigurationError as exc:
        logger.error("FAILED: %s provider is not configured: %s", target, exc)
        return False
    finally:
        if not was_enabled:
            config.set_caching_enabled(False)
