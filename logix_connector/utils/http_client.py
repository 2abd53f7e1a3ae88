"""One pooled aiohttp session shared by the cache providers and the Logix client."""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from .. import __version__
from ..config.settings import Settings

logger = logging.getLogger(__name__)

USER_AGENT = f"Logix-Connector/{__version__}"


def session_options() -> Dict[str, Any]:
    """Keyword arguments for the pooled ``aiohttp.ClientSession``."""
    return {
        "connector": aiohttp.TCPConnector(
            limit=20,
            limit_per_host=10,
            ttl_dns_cache=300,
            keepalive_timeout=30,
            enable_cleanup_closed=True,
        ),
        "timeout": aiohttp.ClientTimeout(
            total=Settings.HTTP_TIMEOUT_SECONDS, connect=10, sock_read=30
        ),
        "headers": {"User-Agent": USER_AGENT},
        "trust_env": True,
    }


class SharedHTTPClient:
    """Owns the process-wide session and rebinds it to the running event loop.

    The CLI and the refresh scheduler each call ``asyncio.run``; a session
    created under one loop cannot be used from another, so a loop change
    closes the old session and opens a new one.
    """

    def __init__(self) -> None:
        self._session: Optional[aiohttp.ClientSession] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def _is_usable(self, loop: asyncio.AbstractEventLoop) -> bool:
        return (
            self._session is not None
            and not self._session.closed
            and self._loop is loop
        )

    async def get_session(self) -> aiohttp.ClientSession:
        loop = asyncio.get_running_loop()
        if self._is_usable(loop):
            return self._session
        await self._discard()
        self._session = aiohttp.ClientSession(**session_options())
        self._loop = loop
        logger.info("Opened shared HTTP session")
        return self._session

    async def _discard(self) -> None:
        session, self._session, self._loop = self._session, None, None
        if session is None or session.closed:
            return
        try:
            await session.close()
        except (aiohttp.ClientError, RuntimeError) as exc:
            # Closing a session bound to a finished loop can fail; it is dropped either way
            logger.debug("Ignoring error closing stale session: %s", exc)

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            logger.info("Closing shared HTTP session")
        await self._discard()

    async def __aenter__(self) -> "SharedHTTPClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


_client: Optional[SharedHTTPClient] = None


async def get_http_client() -> SharedHTTPClient:
    global _client
    if _client is None:
        _client = SharedHTTPClient()
    return _client


async def cleanup_http_client() -> None:
    """Close the shared session; the next ``get_session`` opens a fresh one."""
    global _client
    if _client is not None:
        await _client.close()
        _client = None


async def get_session() -> aiohttp.ClientSession:
    client = await get_http_client()
    return await client.get_session()
