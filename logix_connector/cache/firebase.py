"""Firebase Realtime Database cache provider."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote

import aiohttp

from ..config.cache_config import CacheConfigStore, ServiceAccountCredentials
from ..config.settings import Settings
from ..utils.http_client import get_session
from .base import CacheConfigurationError, CacheProvider, is_success_status
from .credentials import ServiceAccountTokenSource

logger = logging.getLogger(__name__)


class FirebaseCacheProvider(CacheProvider):
    """Stores entries as JSON documents under ``/<collection>/<key>.json``.

    Listing keys reads the collection root in a single request, which returns
    the whole subtree as one mapping.
    """

    name = "firebase"

    def __init__(
        self,
        config: Optional[CacheConfigStore] = None,
        token_source: Optional[ServiceAccountTokenSource] = None,
    ) -> None:
        self._config = config or CacheConfigStore()
        self._token_source = token_source or ServiceAccountTokenSource()

    def _credentials(self) -> ServiceAccountCredentials:
        creds = self._config.get_service_account_creds()
        if creds is None:
            raise CacheConfigurationError(
                "Firebase service account credentials not configured. "
                "Store them with `logix-cache credentials <path>` first."
            )
        return creds

    def build_url(self, key: str, creds: Optional[ServiceAccountCredentials] = None) -> str:
        """Return the REST URL for ``key``; an empty key addresses the collection root."""
        creds = creds or self._credentials()
        path = f"/{quote(key, safe=',')}" if key else ""
        return (
            f"https://{creds.project_id}{Settings.FIREBASE_DB_HOST_SUFFIX}"
            f"/{Settings.FIREBASE_COLLECTION}{path}.json"
        )

    async def _call(
        self, method: str, key: str, payload: Any = None
    ) -> Optional[Tuple[int, str]]:
        """Issue one authenticated REST call.

        Returns (status, body) or None when the request itself failed.
        Configuration problems raise before any request is made.
        """
        creds = self._credentials()
        url = self.build_url(key, creds)
        try:
            token = await self._token_source.get_token(creds)
            session = await get_session()
            kwargs: Dict[str, Any] = {"headers": {"Authorization": f"Bearer {token}"}}
            if payload is not None:
                kwargs["json"] = payload
            async with session.request(method, url, **kwargs) as response:
                if response.status == 401:
                    # Token revoked or expired early; exchange again next call
                    self._token_source.invalidate()
                return response.status, await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.error("[Firebase] %s %s failed: %s", method, key or "/", exc)
            return None

    async def get(self, key: str) -> Optional[Any]:
        logger.debug("[Firebase] Getting data for key: %s", key)
        result = await self._call("GET", key)
        if result is None:
            return None
        status, body = result
        if status == 404:
            return None
        if status != 200:
            logger.error("[Firebase] API error: %s - %s", status, body)
            return None
        try:
            return json.loads(body) if body else None
        except json.JSONDecodeError as exc:
            logger.error("[Firebase] Invalid JSON for key %s: %s", key, exc)
            return None

    async def put(self, key: str, value: Any) -> bool:
        logger.debug("[Firebase] Storing data for key: %s", key)
        result = await self._call("PUT", key, value)
        if result is None:
            return False
        status, body = result
        if not is_success_status(status):
            logger.error("[Firebase] API error during put: %s - %s", status, body)
            return False
        return True

    async def delete(self, key: str) -> bool:
        logger.debug("[Firebase] Deleting data for key: %s", key)
        result = await self._call("DELETE", key)
        if result is None:
            return False
        status, body = result
        if not is_success_status(status):
            logger.error("[Firebase] API error during delete: %s - %s", status, body)
            return False
        return True

    async def list_keys(self) -> Optional[Dict[str, Any]]:
        logger.debug("[Firebase] Fetching all cache keys")
        tree = await self.get("")
        if tree is None:
            return None
        if not isinstance(tree, dict):
            logger.error("[Firebase] Unexpected collection payload: %s", type(tree).__name__)
            return None
        return tree
