from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from authgate.auth.jwt import TokenIssuer
from authgate.auth.repository import AccountRepository
from authgate.auth.resolvers import CredentialResolver
from authgate.models.database import get_db


def get_resolver(request: Request) -> CredentialResolver:
    return request.app.state.resolver


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def get_repository(db: AsyncSession = Depends(get_db)) -> AccountRepository:
    return AccountRepository(db)
