"""Refresh sweep that revalidates every cached entry against upstream."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Tuple

from ..config.settings import Settings
from .adapter import CachingAdapter
from .base import CacheConfigurationError, CacheEntry
from .keys import parse_key

if TYPE_CHECKING:
    from ..upstream.logix import UpstreamFetcher

logger = logging.getLogger(__name__)

STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"


@dataclass
class RefreshOutcome:
    """Per-key result of a sweep."""

    key: str
    status: str
    row_count: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"key": self.key, "status": self.status}
        if self.row_count is not None:
            payload["rowCount"] = self.row_count
        if self.error is not None:
            payload["error"] = self.error
        return payload


@dataclass
class RefreshResult:
    success: bool = True
    refreshed: int = 0
    failed: int = 0
    skipped: int = 0
    execution_time: float = 0.0
    results: List[RefreshOutcome] = field(default_factory=list)
    timed_out: bool = False
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": self.success,
            "refreshed": self.refreshed,
            "failed": self.failed,
            "skipped": self.skipped,
            "executionTime": self.execution_time,
            "results": [r.to_dict() for r in self.results],
            "timedOut": self.timed_out,
        }
        if self.message:
            payload["message"] = self.message
        return payload


class CacheRefresher:
    """Re-fetches every cached key from upstream, one key at a time.

    Keys are processed sequentially with a fixed pause between upstream calls
    to stay under the Logix rate limit. A failing key is recorded and skipped;
    it stays stale until the next sweep.
    """

    def __init__(
        self,
        adapter: CachingAdapter,
        fetcher: "UpstreamFetcher",
        delay_ms: Optional[int] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.adapter = adapter
        self.fetcher = fetcher
        self.delay_ms = Settings.CACHE_REFRESH_DELAY_MS if delay_ms is None else delay_ms
        self._sleep = sleep
        self._clock = clock

    async def refresh_all_caches(self, deadline: Optional[float] = None) -> RefreshResult:
        """Run one sweep.

        Args:
            deadline: Optional time budget in seconds. Keys not started before
                it elapses are reported as skipped.
        """
        started = self._clock()
        logger.info("Starting cache refresh operation")

        if not self.adapter.is_enabled():
            logger.info("Cache refresh skipped - caching is disabled")
            return RefreshResult(message="Caching is disabled")

        try:
            entries = await self.adapter.list_keys()
        except CacheConfigurationError as exc:
            logger.error("Cache refresh aborted: %s", exc)
            return RefreshResult(success=False, message=str(exc))

        if not entries:
            logger.info("No cached data found to refresh")
            return RefreshResult(message="No cached data found")

        result = RefreshResult()
        keys = list(entries.keys())
        for index, key in enumerate(keys):
            if deadline is not None and self._clock() - started >= deadline:
                remaining = keys[index:]
                logger.warning(
                    "Refresh deadline of %ss reached, skipping %d keys", deadline, len(remaining)
                )
                result.results.extend(RefreshOutcome(k, STATUS_SKIPPED) for k in remaining)
                result.skipped = len(remaining)
                result.timed_out = True
                break

            try:
                outcome, fetched_upstream = await self._refresh_key(key)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("Error refreshing cache key %s: %s", key, exc)
                # Upstream may have been called before the failure
                outcome, fetched_upstream = RefreshOutcome(key, STATUS_FAILED, error=str(exc)), True
            result.results.append(outcome)
            if outcome.status == STATUS_SUCCESS:
                result.refreshed += 1
            else:
                result.failed += 1

            if fetched_upstream and index < len(keys) - 1 and self.delay_ms > 0:
                await self._sleep(self.delay_ms / 1000)

        result.execution_time = round(self._clock() - started, 3)
        logger.info(
            "Cache refresh completed in %s seconds. Refreshed: %d, Failed: %d, Skipped: %d",
            result.execution_time,
            result.refreshed,
            result.failed,
            result.skipped,
        )
        return result

    async def _refresh_key(self, key: str) -> Tuple[RefreshOutcome, bool]:
        """Refresh one key; the flag reports whether upstream was called."""
        logger.debug("Processing cache key: %s", key)
        try:
            tenant_id, field_ids = parse_key(key)
        except ValueError as exc:
            logger.warning("Skipping malformed cache key %s: %s", key, exc)
            return RefreshOutcome(key, STATUS_FAILED, error=str(exc)), False

        logger.debug("Fetching fresh data for tenant %s with %d fields", tenant_id, len(field_ids))
        fetched = await self.fetcher(field_ids, tenant_id)
        if not fetched.success:
            logger.warning("API error for key %s: %s", key, fetched.error)
            error = fetched.error or "Upstream fetch failed"
            return RefreshOutcome(key, STATUS_FAILED, error=error), True

        if not await self.adapter.put(key, CacheEntry.fresh(fetched.data)):
            return RefreshOutcome(key, STATUS_FAILED, error="Cache write failed"), True

        logger.debug("Successfully refreshed cache for key: %s", key)
        return RefreshOutcome(key, STATUS_SUCCESS, row_count=len(fetched.data)), True


async def run_periodic_refresh(
    refresher: CacheRefresher,
    interval_seconds: Optional[float] = None,
    stop_event: Optional[asyncio.Event] = None,
    deadline: Optional[float] = None,
) -> None:
    """Run sweeps on a fixed interval until ``stop_event`` is set."""
    interval = interval_seconds or Settings.CACHE_REFRESH_INTERVAL_SECONDS
    stop = stop_event or asyncio.Event()
    while not stop.is_set():
        try:
            await refresher.refresh_all_caches(deadline=deadline)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Error in scheduled cache refresh: {e}")
        try:
            await asyncio.wait_for(stop.wait(), timeout=interval)
        except asyncio.TimeoutError:
            continue
