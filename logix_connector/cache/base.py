"""Base cache abstractions shared by every cache provider."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

Scalar = Union[str, int, float, bool, None]
Row = Dict[str, Scalar]


class CacheError(RuntimeError):
    """Base class for cache layer errors."""


class CacheConfigurationError(CacheError):
    """Raised when a provider cannot run because it is not configured.

    Both providers raise this for missing configuration (proxy base URL,
    service account credentials). It is never raised for an ordinary miss or
    for a backend that answered with an error status.
    """


class TokenExchangeError(CacheConfigurationError):
    """Raised when a service account token cannot be obtained."""


def now_ms() -> int:
    """Current time as integer epoch milliseconds."""
    return int(time.time() * 1000)


class CacheEntry(BaseModel):
    """Rows fetched from upstream and the time they were fetched."""

    data: List[Row] = Field(default_factory=list)
    timestamp: int

    @classmethod
    def fresh(cls, data: List[Row], timestamp: Optional[int] = None) -> "CacheEntry":
        return cls(data=list(data), timestamp=timestamp if timestamp is not None else now_ms())


def is_success_status(status: int) -> bool:
    return 200 <= status < 300


class CacheProvider(ABC):
    """Abstract base class for cache backends.

    Providers fail soft: a backend error or missing entry yields ``None`` (or
    ``False`` for writes) and is logged. Only configuration problems raise,
    as :class:`CacheConfigurationError`.
    """

    name: str = "base"

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Get a value from the backing store.

        Args:
            key: Cache key

        Returns:
            Stored value, or None if not found or the backend failed
        """
        ...

    @abstractmethod
    async def put(self, key: str, value: Any) -> bool:
        """Store a JSON-serializable value under ``key``.

        Returns:
            True if the backend acknowledged the write
        """
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove the value stored under ``key``.

        Returns:
            True if the backend acknowledged the delete
        """
        ...

    @abstractmethod
    async def list_keys(self) -> Optional[Dict[str, Any]]:
        """Enumerate every stored entry.

        Returns:
            Mapping of key to stored value, or None if nothing could be listed
        """
        ...
