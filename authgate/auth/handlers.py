"""Signup and login orchestration.

Both handlers are linear: validate input, resolve the credential, touch the
repository once, issue a token. Every failure is a ServiceError subclass;
the transport layer turns those into responses.
"""

from __future__ import annotations

import logging

from authgate.auth.errors import AccountNotFoundError, BadRequestError, CredentialError
from authgate.auth.jwt import TokenIssuer
from authgate.auth.repository import AccountRepository
from authgate.auth.resolvers import CREDENTIAL_FIELDS, CredentialResolver, ResolveMode
from authgate.auth.schemas import AccountData, LoginRequest, ResolvedIdentity, SignupRequest
from authgate.models.user import Provider, User

logger = logging.getLogger(__name__)

INVALID_PROVIDER = "Invalid provider. Must be kakao, apple, or guest"
NOT_FOUND_MESSAGE = "User not found. Please sign up first."


def parse_provider(value: str | None) -> Provider:
    try:
        return Provider(value)
    except ValueError as e:
        raise BadRequestError(INVALID_PROVIDER) from e


async def _resolve(
    resolver: CredentialResolver,
    provider: Provider,
    body: SignupRequest | LoginRequest,
    mode: ResolveMode,
) -> ResolvedIdentity:
    credential = getattr(body, CREDENTIAL_FIELDS[provider], None)
    try:
        return await resolver.resolve(
            provider,
            credential,
            mode=mode,
            email=getattr(body, "email", None),
            name=getattr(body, "name", None),
        )
    except CredentialError as e:
        logger.warning(f"Provider validation failed ({provider.value} {mode.value}): {e.message}")
        raise


def _account_data(user: User, token: str) -> AccountData:
    # Guests need their generated id to log back in
    extra = {"guest_user_id": user.provider_id} if user.provider is Provider.GUEST else {}
    return AccountData(
        user_id=user.user_id,
        provider=user.provider,
        email=user.email,
        name=user.name,
        profile_image_url=user.profile_image_url,
        token=token,
        **extra,
    )


async def signup(
    body: SignupRequest,
    resolver: CredentialResolver,
    repository: AccountRepository,
    issuer: TokenIssuer,
) -> AccountData:
    provider = parse_provider(body.provider)
    identity = await _resolve(resolver, provider, body, ResolveMode.SIGNUP)

    user = await repository.create(identity)
    logger.info(f"Created {provider.value} account {user.user_id}")

    return _account_data(user, issuer.issue(user.user_id))


async def login(
    body: LoginRequest,
    resolver: CredentialResolver,
    repository: AccountRepository,
    issuer: TokenIssuer,
) -> AccountData:
    provider = parse_provider(body.provider)
    identity = await _resolve(resolver, provider, body, ResolveMode.LOGIN)

    user = await repository.find_by_provider_identity(provider, identity.external_id)
    if user is None:
        raise AccountNotFoundError(NOT_FOUND_MESSAGE)

    return _account_data(user, issuer.issue(user.user_id))
