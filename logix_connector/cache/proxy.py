"""HTTP proxy cache provider."""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote

import aiohttp

from ..config.cache_config import CacheConfigStore
from ..utils.http_client import get_session
from .base import CacheConfigurationError, CacheProvider, is_success_status

logger = logging.getLogger(__name__)


class ProxyCacheProvider(CacheProvider):
    """Talks to a cache proxy exposing ``/api/cache/{key}`` and ``/api/cache/keys``.

    Listing keys costs one request for the key list plus one per key.
    """

    name = "proxy"

    def __init__(self, config: Optional[CacheConfigStore] = None) -> None:
        self._config = config or CacheConfigStore()

    def _base_url(self) -> str:
        base_url = self._config.get_proxy_base_url()
        if not base_url:
            raise CacheConfigurationError(
                "Proxy base URL not configured. Run `logix-cache proxy-url <url>` first."
            )
        return base_url.rstrip("/")

    @staticmethod
    def _sanitize_url(url: str) -> str:
        """Remove password from URL for logging."""
        return re.sub(r":([^:@/]+)@", r":***@", url)

    def _key_url(self, key: str) -> str:
        return f"{self._base_url()}/api/cache/{quote(key, safe='')}"

    async def _call(
        self, method: str, url: str, payload: Any = None
    ) -> Optional[Tuple[int, str]]:
        try:
            session = await get_session()
            kwargs: Dict[str, Any] = {}
            if payload is not None:
                kwargs["json"] = payload
            async with session.request(method, url, **kwargs) as response:
                return response.status, await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.error("[Proxy] %s %s failed: %s", method, self._sanitize_url(url), exc)
            return None

    async def get(self, key: str) -> Optional[Any]:
        logger.debug("[Proxy] Getting data for key: %s", key)
        result = await self._call("GET", self._key_url(key))
        if result is None:
            return None
        status, body = result
        if status == 404:
            logger.debug("[Proxy] No data found for key: %s", key)
            return None
        if not is_success_status(status):
            logger.error("[Proxy] API error: %s - %s", status, body)
            return None
        if not body:
            return None
        try:
            return json.loads(body)
        except json.JSONDecodeError:
            # Plain-text values are returned as stored
            return body

    async def put(self, key: str, value: Any) -> bool:
        logger.debug("[Proxy] Storing data for key: %s", key)
        result = await self._call("PUT", self._key_url(key), value)
        if result is None:
            return False
        status, body = result
        if not is_success_status(status):
            logger.error("[Proxy] API error during put: %s - %s", status, body)
            return False
        return True

    async def delete(self, key: str) -> bool:
        logger.debug("[Proxy] Deleting data for key: %s", key)
        result = await self._call("DELETE", self._key_url(key))
        if result is None:
            return False
        status, body = result
        if not is_success_status(status):
            logger.error("[Proxy] API error during delete: %s - %s", status, body)
            return False
        return True

    async def list_keys(self) -> Optional[Dict[str, Any]]:
        logger.debug("[Proxy] Fetching all cache keys")
        result = await self._call("GET", f"{self._base_url()}/api/cache/keys")
        if result is None:
            return None
        status, body = result
        if not is_success_status(status):
            logger.error("[Proxy] API error when fetching keys: %s - %s", status, body)
            return None
        try:
            keys = json.loads(body)
        except json.JSONDecodeError as exc:
            logger.error("[Proxy] Invalid key list: %s", exc)
            return None
        if not isinstance(keys, list):
            logger.error("[Proxy] Key list is not an array: %s", type(keys).__name__)
            return None

        entries: Dict[str, Any] = {}
        for key in keys:
            value = await self.get(str(key))
            if value is not None:
                entries[str(key)] = value
        return entries
