"""Apple id token verification strategies.

The default strategy only decodes the payload segment. It does not check the
signature, so any well-formed token with the right issuer and a future expiry
is accepted. ``AppleJWKSVerifier`` checks the RS256 signature against Apple's
published keys and is selected with ``AUTHGATE_APPLE_VERIFY_SIGNATURE=true``.
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Any, Protocol

import httpx
from jose import JWTError, jwt

from authgate.auth.errors import ExpiredCredential, InvalidCredential, ProviderUnreachable
from authgate.config import Settings

logger = logging.getLogger(__name__)

INVALID_TOKEN = "Invalid Apple ID token"


class IdTokenVerifier(Protocol):
    """Turns a three-segment id token into its claims dict."""

    async def verify(self, token: str) -> dict[str, Any]:
        ...


def decode_payload_segment(token: str) -> dict[str, Any]:
    """Decode the middle segment of a JWT as base64 (standard or url-safe) JSON."""
    segment = token.split(".")[1]
    segment = segment.replace("+", "-").replace("/", "_")
    try:
        raw = base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
        claims = json.loads(raw)
    except ValueError as e:
        raise InvalidCredential(INVALID_TOKEN) from e
    if not isinstance(claims, dict):
        raise InvalidCredential(INVALID_TOKEN)
    return claims


class UnverifiedIdTokenVerifier:
    """Structural decode only. No signature check."""

    async def verify(self, token: str) -> dict[str, Any]:
        return decode_payload_segment(token)


class AppleJWKSVerifier:
    """Verifies the RS256 signature against Apple's JWKS endpoint."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        keys_url: str,
        issuer: str,
        audience: str | None = None,
    ) -> None:
        self._client = client
        self._keys_url = keys_url
        self._issuer = issuer
        self._audience = audience or None

    async def _fetch_keys(self) -> list[dict[str, Any]]:
        try:
            response = await self._client.get(self._keys_url)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Fetching Apple signing keys failed: {e}")
            raise ProviderUnreachable("Apple signing keys unavailable") from e

        keys = body.get("keys") if isinstance(body, dict) else None
        if not isinstance(keys, list):
            logger.warning("Apple signing keys response has no key list")
            raise ProviderUnreachable("Apple signing keys unavailable")
        return [k for k in keys if isinstance(k, dict)]

    async def verify(self, token: str) -> dict[str, Any]:
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as e:
            raise InvalidCredential(INVALID_TOKEN) from e

        keys = await self._fetch_keys()
        key = next((k for k in keys if k.get("kid") == header.get("kid")), None)
        if key is None:
            raise InvalidCredential(INVALID_TOKEN)

        try:
            return jwt.decode(
                token,
                key,
                algorithms=["RS256"],
                audience=self._audience,
                issuer=self._issuer,
                options={"verify_aud": self._audience is not None},
            )
        except jwt.ExpiredSignatureError as e:
            raise ExpiredCredential("Apple ID token expired") from e
        except JWTError as e:
            raise InvalidCredential(INVALID_TOKEN) from e


def build_id_token_verifier(settings: Settings, client: httpx.AsyncClient) -> IdTokenVerifier:
    if settings.apple_verify_signature:
        return AppleJWKSVerifier(
            client,
            settings.apple_keys_url,
            settings.apple_issuer,
            audience=settings.apple_client_id,
        )
    return UnverifiedIdTokenVerifier()
