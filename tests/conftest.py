"""Pytest configuration and fixtures for Logix connector tests."""

import json
import logging
from typing import Any, Dict, Optional

import pytest
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from logix_connector.cache.adapter import CachingAdapter, reset_caching_adapter
from logix_connector.cache.base import CacheProvider
from logix_connector.config.cache_config import (
    PROVIDER_FIREBASE,
    PROVIDER_PROXY,
    CacheConfigStore,
)
from logix_connector.config.settings_store import reset_settings_store


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point the settings store at a per-test directory."""
    monkeypatch.setenv("LOGIX_SETTINGS_DIR", str(tmp_path / "settings"))
    for key in ("API_TOKEN", "SERVICE_ACCOUNT_CREDS", "CACHING_ENABLED", "CACHE_PROVIDER"):
        monkeypatch.delenv(key, raising=False)
    reset_settings_store()
    reset_caching_adapter()
    yield
    reset_settings_store()
    reset_caching_adapter()


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Undo handlers and propagation changes made by ``setup_logging``."""
    package_logger = logging.getLogger("logix_connector")
    handlers = list(package_logger.handlers)
    yield
    for handler in list(package_logger.handlers):
        if handler not in handlers:
            package_logger.removeHandler(handler)
            handler.close()
    package_logger.propagate = True
    package_logger.setLevel(logging.ERROR)


@pytest.fixture
def config_store():
    return CacheConfigStore()


@pytest.fixture(scope="session")
def rsa_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048, backend=default_backend())


@pytest.fixture(scope="session")
def rsa_pem(rsa_private_key):
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")


@pytest.fixture
def service_account(rsa_pem):
    return {
        "type": "service_account",
        "project_id": "logix-test",
        "client_email": "cache@logix-test.iam.gserviceaccount.com",
        "private_key": rsa_pem,
        "token_uri": "https://oauth2.googleapis.com/token",
    }


class FakeResponse:
    def __init__(self, status: int, body: str = ""):
        self.status = status
        self._body = body

    async def text(self) -> str:
        return self._body

    async def json(self, content_type: Optional[str] = "application/json") -> Any:
        return json.loads(self._body)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """In-memory stand-in for ``aiohttp.ClientSession``.

    Documents written with PUT are served back by GET on the same URL, and
    DELETE removes them. Explicit routes take precedence and may be a
    ``(status, body)`` tuple or an exception to raise.
    """

    def __init__(self, missing_status: int = 404, missing_body: str = ""):
        self.documents: Dict[str, Any] = {}
        self.routes: Dict[tuple, Any] = {}
        self.calls: list = []
        self.missing_status = missing_status
        self.missing_body = missing_body

    def route(self, method: str, url: str, status: int = 200, body: Any = "") -> None:
        if not isinstance(body, str):
            body = json.dumps(body)
        self.routes[(method, url)] = (status, body)

    def fail(self, method: str, url: str, exc: BaseException) -> None:
        self.routes[(method, url)] = exc

    def calls_for(self, method: str) -> list:
        return [call for call in self.calls if call[0] == method]

    def _respond(self, method: str, url: str, kwargs: Dict[str, Any]) -> FakeResponse:
        self.calls.append((method, url, kwargs))
        routed = self.routes.get((method, url))
        if isinstance(routed, BaseException):
            raise routed
        if routed is not None:
            return FakeResponse(*routed)
        if method == "PUT":
            self.documents[url] = kwargs.get("json")
            return FakeResponse(200, json.dumps(kwargs.get("json")))
        if method == "DELETE":
            self.documents.pop(url, None)
            return FakeResponse(200, "null")
        if method == "GET" and url in self.documents:
            return FakeResponse(200, json.dumps(self.documents[url]))
        return FakeResponse(self.missing_status, self.missing_body)

    def request(self, method: str, url: str, **kwargs):
        return self._respond(method, url, kwargs)

    def post(self, url: str, **kwargs):
        return self._respond("POST", url, kwargs)


@pytest.fixture
def fake_session(monkeypatch):
    """Route every module's shared session to one FakeSession."""
    session = FakeSession()

    async def _get_session():
        return session

    for module in (
        "logix_connector.cache.firebase",
        "logix_connector.cache.proxy",
        "logix_connector.cache.credentials",
        "logix_connector.upstream.logix",
    ):
        monkeypatch.setattr(f"{module}.get_session", _get_session)
    return session


class InMemoryProvider(CacheProvider):
    """Dict-backed provider that records how often it is called."""

    name = "memory"

    def __init__(self):
        self.entries: Dict[str, Any] = {}
        self.calls: list = []
        self.fail_puts_for: set = set()

    async def get(self, key: str) -> Optional[Any]:
        self.calls.append(("get", key))
        return self.entries.get(key)

    async def put(self, key: str, value: Any) -> bool:
        self.calls.append(("put", key))
        if key in self.fail_puts_for:
            return False
        self.entries[key] = value
        return True

    async def delete(self, key: str) -> bool:
        self.calls.append(("delete", key))
        return self.entries.pop(key, None) is not None

    async def list_keys(self) -> Optional[Dict[str, Any]]:
        self.calls.append(("list_keys", None))
        return dict(self.entries) or None


@pytest.fixture
def memory_provider():
    return InMemoryProvider()


@pytest.fixture
def memory_adapter(config_store, memory_provider):
    """Adapter whose providers are both backed by ``memory_provider``."""
    return CachingAdapter(
        config_store,
        factories={
            PROVIDER_FIREBASE: lambda config: memory_provider,
            PROVIDER_PROXY: lambda config: memory_provider,
        },
    )


# Disable logging to reduce noise during tests
logging.getLogger("logix_connector").setLevel(logging.ERROR)
