"""Read-through data access used by the reporting connector."""

from __future__ import annotations

import logging
import re
import time
from typing import Any, Dict, List, Optional, Sequence

from .cache.adapter import CachingAdapter, get_caching_adapter
from .cache.base import CacheConfigurationError, CacheEntry, Row, now_ms
from .upstream.logix import LogixClient, UpstreamFetcher

logger = logging.getLogger(__name__)

_NON_NUMERIC_RE = re.compile(r"[^0-9.\-]+")


async def get_data(
    tenant_id: str,
    field_ids: Sequence[str],
    *,
    adapter: Optional[CachingAdapter] = None,
    fetcher: Optional[UpstreamFetcher] = None,
    now: Optional[int] = None,
) -> List[Row]:
    """Return rows for ``field_ids``, served from cache while the entry is fresh.

    A hit younger than the expiration window is returned without touching
    upstream. Otherwise rows are fetched, written back to the cache and
    returned. An upstream failure yields an empty list. Cache configuration
    errors are logged and treated as a miss.
    """
    adapter = adapter or get_caching_adapter()
    fetcher = fetcher or LogixClient()
    started = time.monotonic()
    current = now if now is not None else now_ms()
    key = adapter.build_key(tenant_id, field_ids)

    cache_usable = True
    try:
        entry = await adapter.get(key)
    except CacheConfigurationError as exc:
        logger.error("Cache unavailable, reading from upstream: %s", exc)
        entry = None
        cache_usable = False

    if entry is not None and not adapter.is_expired(entry.timestamp, now=current):
        logger.info(
            "Cache hit for %s: %d rows in %.3fs", key, len(entry.data), time.monotonic() - started
        )
        return entry.data

    if entry is not None:
        logger.info("Cache entry expired for %s", key)

    fetched = await fetcher(list(field_ids), tenant_id)
    if not fetched.success:
        logger.error("API error: %s", fetched.error)
        return []

    if cache_usable:
        try:
            await adapter.put(key, CacheEntry.fresh(fetched.data, timestamp=current))
        except CacheConfigurationError as exc:
            logger.error("Could not write cache entry for %s: %s", key, exc)

    logger.info(
        "Fetched %d rows for %s in %.3fs", len(fetched.data), key, time.monotonic() - started
    )
    return fetched.data


def _parse_amount(value: Any) -> Any:
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = _NON_NUMERIC_RE.sub("", str(value))
    try:
        return float(cleaned)
    except ValueError:
        return None


def format_rows(rows: Sequence[Row], field_ids: Sequence[str]) -> List[Dict[str, List[Any]]]:
    """Project rows onto ``field_ids`` in request order.

    Missing fields become empty strings; ``amount`` is parsed to a number.
    """
    formatted = []
    for row in rows:
        values = []
        for field_id in field_ids:
            if field_id not in row:
                values.append("")
            elif field_id == "amount":
                values.append(_parse_amount(row[field_id]))
            else:
                values.append(row[field_id])
        formatted.append({"values": values})
    return formatted
