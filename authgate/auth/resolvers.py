from __future__ import annotations

import enum
import logging
import math
import time
from collections.abc import Callable
from typing import Any
from uuid import uuid4

import httpx

from authgate.auth.errors import (
    ExpiredCredential,
    InvalidCredential,
    MissingCredential,
    ProviderRejected,
    ProviderUnreachable,
)
from authgate.auth.schemas import ResolvedIdentity
from authgate.auth.verifiers import INVALID_TOKEN, IdTokenVerifier
from authgate.config import Settings
from authgate.models.user import Provider

logger = logging.getLogger(__name__)

GUEST_DEFAULT_NAME = "Guest User"


class ResolveMode(str, enum.Enum):
    SIGNUP = "signup"
    LOGIN = "login"


# Request field that carries the credential, per provider
CREDENTIAL_FIELDS: dict[Provider, str] = {
    Provider.KAKAO: "access_token",
    Provider.APPLE: "id_token",
    Provider.GUEST: "guest_user_id",
}

_DISPLAY_NAMES = {
    Provider.KAKAO: "Kakao",
    Provider.APPLE: "Apple",
    Provider.GUEST: "guest",
}


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class KakaoResolver:
    """Resolves a Kakao access token through the user-info endpoint."""

    def __init__(self, client: httpx.AsyncClient, userinfo_url: str, timeout: float = 10.0) -> None:
        self._client = client
        self._userinfo_url = userinfo_url
        self._timeout = timeout

    async def resolve(self, access_token: str) -> ResolvedIdentity:
        try:
            response = await self._client.get(
                self._userinfo_url,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self._timeout,
            )
        except httpx.RequestError as e:
            logger.warning(f"Kakao user-info request failed: {e!r}")
            raise ProviderUnreachable("Kakao API error: Unknown") from e

        if response.status_code == 401:
            raise InvalidCredential("Invalid Kakao access token")
        if not response.is_success:
            raise ProviderRejected(f"Kakao API error: {response.status_code}", response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderRejected("Kakao token validation failed", response.status_code) from e
        if not isinstance(data, dict) or not _is_int(data.get("id")):
            raise ProviderRejected("Kakao token validation failed", response.status_code)

        account = _as_dict(data.get("kakao_account"))
        profile = _as_dict(account.get("profile"))
        properties = _as_dict(data.get("properties"))

        # Account-scoped profile wins over the legacy top-level properties
        return ResolvedIdentity(
            provider=Provider.KAKAO,
            external_id=str(data["id"]),
            email=_as_str(account.get("email")),
            name=_as_str(profile.get("nickname")) or _as_str(properties.get("nickname")),
            avatar_url=_as_str(profile.get("profile_image_url")) or _as_str(properties.get("profile_image")),
        )


class AppleResolver:
    """Resolves an Apple id token to its subject claim."""

    def __init__(
        self,
        verifier: IdTokenVerifier,
        issuer: str,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._verifier = verifier
        self._issuer = issuer
        self._clock = clock

    async def resolve(self, id_token: str) -> ResolvedIdentity:
        if len(id_token.split(".")) != 3:
            raise InvalidCredential("Invalid Apple ID token format")

        claims = await self._verifier.verify(id_token)

        if claims.get("iss") != self._issuer:
            raise InvalidCredential("Invalid Apple ID token issuer")

        exp = claims.get("exp")
        if isinstance(exp, bool) or not isinstance(exp, (int, float)) or not math.isfinite(exp):
            raise InvalidCredential(INVALID_TOKEN)
        if exp < self._clock():
            raise ExpiredCredential("Apple ID token expired")

        sub = claims.get("sub")
        if not isinstance(sub, str) or not sub:
            raise InvalidCredential(INVALID_TOKEN)

        email = claims.get("email")
        return ResolvedIdentity(
            provider=Provider.APPLE,
            external_id=sub,
            email=email if isinstance(email, str) else None,
        )


class GuestResolver:
    """Guests have no external authority. Signup mints an id, login trusts it."""

    def new_identity(self, email: str | None = None, name: str | None = None) -> ResolvedIdentity:
        return ResolvedIdentity(
            provider=Provider.GUEST,
            external_id=uuid4().hex,
            email=email,
            name=name or GUEST_DEFAULT_NAME,
        )

    def existing_identity(self, guest_user_id: str) -> ResolvedIdentity:
        return ResolvedIdentity(provider=Provider.GUEST, external_id=guest_user_id)


class CredentialResolver:
    """Dispatches a (provider, credential) pair to the matching strategy."""

    def __init__(self, kakao: KakaoResolver, apple: AppleResolver, guest: GuestResolver) -> None:
        self.kakao = kakao
        self.apple = apple
        self.guest = guest

    async def resolve(
        self,
        provider: Provider,
        credential: str | None,
        *,
        mode: ResolveMode,
        email: str | None = None,
        name: str | None = None,
    ) -> ResolvedIdentity:
        if provider is Provider.GUEST and mode is ResolveMode.SIGNUP:
            return self.guest.new_identity(email=email, name=name)

        if not credential:
            raise MissingCredential(
                f"{CREDENTIAL_FIELDS[provider]} is required for "
                f"{_DISPLAY_NAMES[provider]} {mode.value}"
            )

        if provider is Provider.KAKAO:
            return await self.kakao.resolve(credential)
        if provider is Provider.APPLE:
            return await self.apple.resolve(credential)
        return self.guest.existing_identity(credential)


def build_resolver(
    settings: Settings,
    client: httpx.AsyncClient,
    verifier: IdTokenVerifier,
) -> CredentialResolver:
    return CredentialResolver(
        kakao=KakaoResolver(client, settings.kakao_userinfo_url, settings.provider_timeout_seconds),
        apple=AppleResolver(verifier, settings.apple_issuer),
        guest=GuestResolver(),
    )
