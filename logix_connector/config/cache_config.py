"""Cache configuration persisted in the durable settings store.

Nothing here is cached in memory: every accessor reads the store, so flipping
the enabled flag or switching provider takes effect on the next operation.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ValidationError, field_validator

from .settings import get_secret
from .settings_store import SettingsStore, get_settings_store

logger = logging.getLogger(__name__)

CACHING_ENABLED_KEY = "CACHING_ENABLED"
CACHE_PROVIDER_KEY = "CACHE_PROVIDER"
PROXY_BASE_URL_KEY = "PROXY_BASE_URL"
SERVICE_ACCOUNT_CREDS_KEY = "SERVICE_ACCOUNT_CREDS"

PROVIDER_FIREBASE = "firebase"
PROVIDER_PROXY = "proxy"
CACHE_PROVIDERS = (PROVIDER_FIREBASE, PROVIDER_PROXY)
DEFAULT_CACHE_PROVIDER = PROVIDER_FIREBASE


class ProviderConfig(BaseModel):
    """Snapshot of the cache configuration."""

    provider_name: Literal["firebase", "proxy"] = DEFAULT_CACHE_PROVIDER
    enabled: bool = False
    proxy_base_url: Optional[str] = None

    @field_validator("proxy_base_url")
    @classmethod
    def _validate_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        if not value.startswith("http"):
            raise ValueError("proxy_base_url must start with http:// or https://")
        return value.rstrip("/")


class ServiceAccountCredentials(BaseModel):
    """The subset of a service account key file needed for token exchange."""

    project_id: str
    client_email: str
    private_key: str
    token_uri: str = "https://oauth2.googleapis.com/token"

    @field_validator("project_id", "client_email", "private_key")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value

    @field_validator("private_key")
    @classmethod
    def _looks_like_pem(cls, value: str) -> str:
        if "PRIVATE KEY" not in value:
            raise ValueError("private_key must be a PEM encoded key")
        return value


class CacheConfigStore:
    """Accessor for the cache settings."""

    def __init__(self, store: Optional[SettingsStore] = None) -> None:
        self._store = store

    @property
    def store(self) -> SettingsStore:
        return self._store or get_settings_store()

    # Enabled flag

    def is_caching_enabled(self) -> bool:
        return self.store.get(CACHING_ENABLED_KEY) == "true"

    def set_caching_enabled(self, enabled: bool) -> bool:
        self.store.set(CACHING_ENABLED_KEY, "true" if enabled else "false")
        logger.info("Caching %s", "enabled" if enabled else "disabled")
        return enabled

    # Provider name

    def get_provider_name(self) -> str:
        return self.store.get(CACHE_PROVIDER_KEY) or DEFAULT_CACHE_PROVIDER

    def set_provider_name(self, name: str) -> bool:
        if name not in CACHE_PROVIDERS:
            logger.error(
                "Invalid cache provider name: %s. Must be one of: %s",
                name,
                ", ".join(CACHE_PROVIDERS),
            )
            return False
        self.store.set(CACHE_PROVIDER_KEY, name)
        logger.info("Cache provider set to: %s", name)
        return True

    # Proxy URL

    def get_proxy_base_url(self) -> Optional[str]:
        return self.store.get(PROXY_BASE_URL_KEY) or None

    def set_proxy_base_url(self, url: str) -> bool:
        if not url or not isinstance(url, str) or not url.startswith("http"):
            logger.error("Invalid proxy base URL: %s", url)
            return False
        url = url.rstrip("/")
        self.store.set(PROXY_BASE_URL_KEY, url)
        logger.info("Proxy base URL set to: %s", url)
        return True

    # Service account credentials

    def get_service_account_creds(self) -> Optional[ServiceAccountCredentials]:
        raw = self.store.get(SERVICE_ACCOUNT_CREDS_KEY) or get_secret(SERVICE_ACCOUNT_CREDS_KEY)
        if not raw:
            return None
        try:
            return ServiceAccountCredentials.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.error("Stored service account credentials are invalid: %s", exc)
            return None

    def set_service_account_creds(self, raw: Union[str, Dict[str, Any]]) -> bool:
        try:
            payload = json.loads(raw) if isinstance(raw, str) else dict(raw)
            creds = ServiceAccountCredentials.model_validate(payload)
        except (json.JSONDecodeError, TypeError, ValueError) as exc:
            logger.error("Rejected service account credentials: %s", exc)
            return False
        self.store.set(SERVICE_ACCOUNT_CREDS_KEY, creds.model_dump_json())
        logger.info("Service account credentials stored for %s", creds.client_email)
        return True

    def snapshot(self) -> ProviderConfig:
        name = self.get_provider_name()
        if name not in CACHE_PROVIDERS:
            name = DEFAULT_CACHE_PROVIDER
        return ProviderConfig(
            provider_name=name,
            enabled=self.is_caching_enabled(),
            proxy_base_url=self.get_proxy_base_url(),
        )
