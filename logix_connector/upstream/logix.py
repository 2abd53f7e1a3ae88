"""Logix Commerce API client used to fetch report rows."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

import aiohttp

from ..cache.base import Row
from ..config.settings import Settings, get_secret
from ..utils.http_client import get_session

logger = logging.getLogger(__name__)

API_TOKEN_KEY = "API_TOKEN"
REPORT_VIEW = "sch_budget_report_view_new"
DEFAULT_COLUMN = "idn"

_FIELD_ID_RE = re.compile(r"^\w+$")


class LogixRequestError(RuntimeError):
    """Raised when the Logix API answers with a non-200 status."""


@dataclass
class FetchResult:
    """Outcome of an upstream fetch: rows on success, an error message otherwise."""

    success: bool
    data: List[Row] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: List[Row]) -> "FetchResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "FetchResult":
        return cls(success=False, error=error)


class UpstreamFetcher(Protocol):
    async def __call__(self, field_ids: Sequence[str], tenant_id: str) -> FetchResult: ...


def build_request_body(field_ids: Sequence[str], query: Optional[str] = None) -> Dict[str, Any]:
    if query is None:
        columns = ", ".join(f"[{f}]" for f in field_ids) if field_ids else f"[{DEFAULT_COLUMN}]"
        query = f"Select {columns} From {REPORT_VIEW}"
    return {
        "Method": "GET",
        "Query": [{"Type": "server", "Obj_query": query}],
    }


class LogixClient:
    """Async client for the Logix ``db/post/request`` endpoint."""

    def __init__(self, base_url: Optional[str] = None, api_token: Optional[str] = None):
        self.base_url = (base_url or Settings.LOGIX_API_BASE_URL).rstrip("/")
        self._api_token = api_token

    def _token(self) -> Optional[str]:
        return self._api_token or get_secret(API_TOKEN_KEY)

    def request_url(self, tenant_id: str) -> str:
        return f"{self.base_url}/usa-sch-{tenant_id}/db/post/request"

    async def _post(self, tenant_id: str, body: Dict[str, Any], token: str) -> Any:
        session = await get_session()
        headers = {"Authorization": token, "Content-Type": "application/json"}
        async with session.post(self.request_url(tenant_id), json=body, headers=headers) as response:
            if response.status != 200:
                text = await response.text()
                logger.error("Logix request failed: %s - %s", response.status, text)
                raise LogixRequestError(f"API returned status code {response.status}")
            return await response.json(content_type=None)

    async def fetch(self, field_ids: Sequence[str], tenant_id: str) -> FetchResult:
        """Fetch report rows for ``field_ids`` from tenant ``tenant_id``."""
        token = self._token()
        if not token:
            logger.error("API token not found in settings")
            return FetchResult.fail("API token not available")

        invalid = [f for f in field_ids if not _FIELD_ID_RE.match(f)]
        if invalid:
            return FetchResult.fail(f"Invalid field ids: {', '.join(invalid)}")

        try:
            payload = await self._post(tenant_id, build_request_body(field_ids), token)
        except LogixRequestError as exc:
            return FetchResult.fail(str(exc))
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            return FetchResult.fail(f"Error fetching data from API: {exc}")

        if not isinstance(payload, dict):
            return FetchResult.fail("API response does not contain valid data")
        objects = payload.get("objects")
        if payload.get("kind") != "Success" or not objects:
            return FetchResult.fail("API response does not contain valid data")
        rows = objects[0].get("rows") if isinstance(objects[0], dict) else None
        return FetchResult.ok(list(rows or []))

    async def __call__(self, field_ids: Sequence[str], tenant_id: str) -> FetchResult:
        return await self.fetch(field_ids, tenant_id)

    async def fetch_element_types(self, tenant_id: str) -> List[str]:
        """Return the element type names for a tenant, or an empty list on error."""
        token = self._token()
        if not token:
            logger.error("API token not available for fetching element types")
            return []
        body = build_request_body([], query="Select name From dbo.sch_element_types")
        try:
            payload = await self._post(tenant_id, body, token)
        except (LogixRequestError, aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            logger.error("Error fetching element types: %s", exc)
            return []

        if not isinstance(payload, dict) or payload.get("kind") != "Success":
            logger.error("API error when fetching element types")
            return []
        objects = payload.get("objects") or []
        rows = objects[0].get("rows") if objects and isinstance(objects[0], dict) else None
        if not rows:
            logger.info("No element types found in API response")
            return []
        return [row["name"] for row in rows if isinstance(row, dict) and "name" in row]
