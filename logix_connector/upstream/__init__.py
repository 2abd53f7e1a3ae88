"""Upstream Logix API access."""

from .districts import DISTRICTS, District, list_districts, resolve_tenant
from .logix import FetchResult, LogixClient, UpstreamFetcher

__all__ = [
    "DISTRICTS",
    "District",
    "FetchResult",
    "LogixClient",
    "UpstreamFetcher",
    "list_districts",
    "resolve_tenant",
]
