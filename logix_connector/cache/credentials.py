"""Service account token exchange for the Firebase Realtime Database.

A signed JWT assertion is exchanged for a short-lived OAuth2 bearer token
(RFC 7523 JWT bearer grant). Signing uses RS256 with the service account's
RSA private key.
"""

from __future__ import annotations

import base64
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from ..config.cache_config import ServiceAccountCredentials
from ..utils.http_client import get_session
from .base import TokenExchangeError

logger = logging.getLogger(__name__)

FIREBASE_SCOPES = (
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/firebase.database",
)
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ASSERTION_LIFETIME_SECONDS = 3600
# Tokens are refreshed this long before the server-side expiry
EXPIRY_SKEW_SECONDS = 60


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _load_private_key(pem: str) -> rsa.RSAPrivateKey:
    try:
        key = serialization.load_pem_private_key(
            pem.encode("utf-8"), password=None, backend=default_backend()
        )
    except (ValueError, TypeError) as exc:
        raise TokenExchangeError(f"Invalid service account private key: {exc}") from exc
    if not isinstance(key, rsa.RSAPrivateKey):
        raise TokenExchangeError("Service account private key must be an RSA key")
    return key


def build_assertion(
    creds: ServiceAccountCredentials,
    scopes=FIREBASE_SCOPES,
    issued_at: Optional[int] = None,
) -> str:
    """Build a signed RS256 JWT assertion for ``creds``."""
    iat = int(issued_at if issued_at is not None else time.time())
    header = {"alg": "RS256", "typ": "JWT"}
    claims = {
        "iss": creds.client_email,
        "scope": " ".join(scopes),
        "aud": creds.token_uri,
        "iat": iat,
        "exp": iat + ASSERTION_LIFETIME_SECONDS,
    }
    signing_input = ".".join(
        _b64url(json.dumps(part, separators=(",", ":")).encode("utf-8"))
        for part in (header, claims)
    )
    key = _load_private_key(creds.private_key)
    signature = key.sign(signing_input.encode("ascii"), padding.PKCS1v15(), hashes.SHA256())
    return f"{signing_input}.{_b64url(signature)}"


@dataclass
class AccessToken:
    value: str
    expires_at: float

    def is_valid(self, now: Optional[float] = None) -> bool:
        current = now if now is not None else time.time()
        return current < self.expires_at - EXPIRY_SKEW_SECONDS


class ServiceAccountTokenSource:
    """Exchanges service account credentials for bearer tokens.

    The most recent token is kept in memory and reused until it is close to
    expiry. Credentials that change (a different client email or key) force a
    new exchange.
    """

    def __init__(self) -> None:
        self._token: Optional[AccessToken] = None
        self._fingerprint: Optional[str] = None

    def invalidate(self) -> None:
        self._token = None
        self._fingerprint = None

    async def get_token(self, creds: ServiceAccountCredentials) -> str:
        fingerprint = f"{creds.client_email}:{hash(creds.private_key)}"
        if self._token and self._fingerprint == fingerprint and self._token.is_valid():
            return self._token.value

        assertion = build_assertion(creds)
        token = await self._exchange(creds.token_uri, assertion)
        self._token = token
        self._fingerprint = fingerprint
        return token.value

    async def _exchange(self, token_uri: str, assertion: str) -> AccessToken:
        session = await get_session()
        form = {"grant_type": JWT_BEARER_GRANT, "assertion": assertion}
        # Transport errors propagate as aiohttp.ClientError; the provider treats
        # them like any other backend failure.
        async with session.post(token_uri, data=form) as response:
            if response.status != 200:
                text = await response.text()
                logger.error("Token exchange failed: %s - %s", response.status, text)
                raise TokenExchangeError(
                    f"Token exchange failed with status {response.status}: {text}"
                )
            try:
                payload: Dict[str, Any] = await response.json(content_type=None)
            except ValueError as exc:
                raise TokenExchangeError(f"Token exchange returned a non-JSON body: {exc}") from exc

        access_token = payload.get("access_token") if isinstance(payload, dict) else None
        if not access_token:
            raise TokenExchangeError("Token exchange response did not include access_token")
        try:
            expires_in = int(payload.get("expires_in", ASSERTION_LIFETIME_SECONDS))
        except (TypeError, ValueError) as exc:
            raise TokenExchangeError(f"Invalid expires_in in token response: {exc}") from exc
        logger.debug("Obtained service account token valid for %s seconds", expires_in)
        return AccessToken(value=access_token, expires_at=time.time() + expires_in)
