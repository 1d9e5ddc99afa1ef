from __future__ import annotations

import base64
import json
import time
from contextlib import asynccontextmanager
from typing import Any

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from authgate.auth.jwt import TokenIssuer
from authgate.auth.resolvers import AppleResolver, CredentialResolver, GuestResolver, KakaoResolver
from authgate.auth.verifiers import UnverifiedIdTokenVerifier
from authgate.models.base import Base

KAKAO_USERINFO_URL = "https://kapi.test/v2/user/me"
APPLE_ISSUER = "https://appleid.apple.com"


@pytest.fixture
async def test_db_engine():
    """Create a test database engine using in-memory SQLite."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def test_db_session_factory(test_db_engine):
    """Create a test async session factory."""
    return async_sessionmaker(
        test_db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def test_db_session(test_db_session_factory):
    async with test_db_session_factory() as session:
        yield session


class FakeKakaoAPI:
    """In-memory stand-in for the Kakao user-info endpoint."""

    def __init__(self):
        self.users: dict[str, dict[str, Any]] = {}
        self.statuses: dict[str, int] = {}
        self.raise_timeout = False
        self.calls: list[httpx.Request] = []

    def add_user(self, access_token: str, payload: dict[str, Any]) -> None:
        self.users[access_token] = payload

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        if self.raise_timeout:
            raise httpx.ReadTimeout("timed out", request=request)

        token = request.headers.get("Authorization", "").removeprefix("Bearer ")
        if token in self.statuses:
            return httpx.Response(self.statuses[token], json={"msg": "error"})
        if token not in self.users:
            return httpx.Response(401, json={"msg": "this access token does not exist", "code": -401})
        return httpx.Response(200, json=self.users[token])


@pytest.fixture
def kakao_api():
    return FakeKakaoAPI()


@pytest.fixture
async def http_client(kakao_api):
    async with httpx.AsyncClient(transport=httpx.MockTransport(kakao_api.handler)) as client:
        yield client


@pytest.fixture
def token_issuer():
    return TokenIssuer("test-secret", "HS256", expire_minutes=60)


@pytest.fixture
def resolver(http_client):
    return CredentialResolver(
        kakao=KakaoResolver(http_client, KAKAO_USERINFO_URL, timeout=10.0),
        apple=AppleResolver(UnverifiedIdTokenVerifier(), APPLE_ISSUER),
        guest=GuestResolver(),
    )


def _b64url(data: dict[str, Any]) -> str:
    return base64.urlsafe_b64encode(json.dumps(data).encode()).rstrip(b"=").decode()


@pytest.fixture
def apple_token():
    """Factory for unsigned Apple id tokens. Keyword arguments override claims."""

    def _make(**overrides: Any) -> str:
        claims: dict[str, Any] = {
            "iss": APPLE_ISSUER,
            "aud": "com.example.app",
            "sub": "001234.abcdef0123456789.0123",
            "email": "ann@privaterelay.appleid.com",
            "iat": int(time.time()),
            "exp": int(time.time()) + 600,
        }
        claims.update(overrides)
        claims = {k: v for k, v in claims.items() if v is not None}
        header = {"alg": "RS256", "kid": "test-key"}
        return f"{_b64url(header)}.{_b64url(claims)}.c2lnbmF0dXJl"

    return _make


@pytest.fixture
async def app(test_db_session_factory, token_issuer, resolver):
    """Create a test FastAPI application with test dependencies."""
    from fastapi import FastAPI

    from authgate.api.auth import router as auth_router
    from authgate.api.health import router as health_router
    from authgate.api.responses import install_exception_handlers

    # Create app without real lifespan (we set up state manually)
    @asynccontextmanager
    async def test_lifespan(app: FastAPI):
        yield

    test_app = FastAPI(title="authgate-test", lifespan=test_lifespan)
    install_exception_handlers(test_app)
    test_app.include_router(auth_router, prefix="/api/v1")
    test_app.include_router(health_router)

    test_app.state.db_session_factory = test_db_session_factory
    test_app.state.token_issuer = token_issuer
    test_app.state.resolver = resolver

    yield test_app

    test_app.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    """Create a test HTTP client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
