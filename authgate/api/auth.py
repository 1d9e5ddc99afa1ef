from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from authgate.api.dependencies import get_repository, get_resolver, get_token_issuer
from authgate.api.responses import envelope
from authgate.auth.errors import InternalError, ServiceError
from authgate.auth.handlers import login, signup
from authgate.auth.jwt import TokenIssuer
from authgate.auth.repository import AccountRepository
from authgate.auth.resolvers import CredentialResolver
from authgate.auth.schemas import LoginRequest, SignupRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

INTERNAL_MESSAGE = "Internal server error"


@router.post("/signup", status_code=201)
async def signup_route(
    body: SignupRequest,
    resolver: CredentialResolver = Depends(get_resolver),
    repository: AccountRepository = Depends(get_repository),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> JSONResponse:
    """Create an account for a provider identity and return a session token."""
    try:
        account = await signup(body, resolver, repository, issuer)
    except ServiceError:
        raise
    except Exception as e:
        logger.exception("Signup error")
        raise InternalError(INTERNAL_MESSAGE) from e
    return envelope(201, data=account)


@router.post("/login")
async def login_route(
    body: LoginRequest,
    resolver: CredentialResolver = Depends(get_resolver),
    repository: AccountRepository = Depends(get_repository),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> JSONResponse:
    """Look up the account for a provider identity and return a session token."""
    try:
        account = await login(body, resolver, repository, issuer)
    except ServiceError:
        raise
    except Exception as e:
        logger.exception("Login error")
        raise InternalError(INTERNAL_MESSAGE) from e
    return envelope(200, data=account)
