"""Caching adapter: the single entry point callers use for the cache."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, Optional

from pydantic import ValidationError

from ..config.cache_config import (
    DEFAULT_CACHE_PROVIDER,
    PROVIDER_FIREBASE,
    PROVIDER_PROXY,
    CacheConfigStore,
)
from .base import CacheEntry, CacheProvider, now_ms
from .firebase import FirebaseCacheProvider
from .keys import build_key
from .proxy import ProxyCacheProvider

logger = logging.getLogger(__name__)

CACHE_EXPIRATION_HOURS = 1
CACHE_EXPIRATION_MS = CACHE_EXPIRATION_HOURS * 60 * 60 * 1000

ProviderFactory = Callable[[CacheConfigStore], CacheProvider]


class CachingAdapter:
    """Gates cache access on the enabled flag and delegates to the active provider.

    The enabled flag and provider name are read from the config store on every
    call. Providers are built once per name and reused, since they hold no
    configuration of their own beyond a cached access token.
    """

    def __init__(
        self,
        config: Optional[CacheConfigStore] = None,
        factories: Optional[Dict[str, ProviderFactory]] = None,
    ):
        self.config = config or CacheConfigStore()
        self._factories: Dict[str, ProviderFactory] = factories or {
            PROVIDER_FIREBASE: FirebaseCacheProvider,
            PROVIDER_PROXY: ProxyCacheProvider,
        }
        self._providers: Dict[str, CacheProvider] = {}

    def is_enabled(self) -> bool:
        return self.config.is_caching_enabled()

    def provider(self, name: str) -> CacheProvider:
        """Return the provider registered under ``name``, falling back to the default."""
        if name not in self._factories:
            logger.warning(
                "Unknown cache provider: %s, falling back to %s", name, DEFAULT_CACHE_PROVIDER
            )
            name = DEFAULT_CACHE_PROVIDER
        if name not in self._providers:
            self._providers[name] = self._factories[name](self.config)
        return self._providers[name]

    def active_provider(self) -> CacheProvider:
        return self.provider(self.config.get_provider_name())

    async def get(self, key: str) -> Optional[CacheEntry]:
        if not self.is_enabled():
            logger.debug("Cache read skipped - caching disabled")
            return None

        raw = await self.active_provider().get(key)
        if raw is None:
            return None
        try:
            return CacheEntry.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Ignoring malformed cache entry for %s: %s", key, exc)
            return None

    async def put(self, key: str, entry: CacheEntry) -> bool:
        if not self.is_enabled():
            logger.debug("Cache write skipped - caching disabled")
            return False
        return await self.active_provider().put(key, entry.model_dump(mode="json"))

    async def delete(self, key: str) -> bool:
        if not self.is_enabled():
            logger.debug("Cache delete skipped - caching disabled")
            return False
        return await self.active_provider().delete(key)

    async def list_keys(self) -> Optional[Dict[str, Any]]:
        if not self.is_enabled():
            logger.debug("Cache keys fetch skipped - caching disabled")
            return None
        return await self.active_provider().list_keys()

    @staticmethod
    def is_expired(timestamp: int, now: Optional[int] = None) -> bool:
        """True when ``timestamp`` (epoch ms) is more than one hour old."""
        current = now if now is not None else now_ms()
        return current - timestamp > CACHE_EXPIRATION_MS

    @staticmethod
    def build_key(tenant_id: str, field_ids: Iterable[str]) -> str:
        return build_key(tenant_id, field_ids)


_adapter: Optional[CachingAdapter] = None


def get_caching_adapter() -> CachingAdapter:
    """Get the process-wide caching adapter."""
    global _adapter
    if _adapter is None:
        _adapter = CachingAdapter()
    return _adapter


def reset_caching_adapter() -> None:
    global _adapter
    _adapter = None
