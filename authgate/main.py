from __future__ import annotations

import logging
from contextlib import asynccontextmanager

logging.basicConfig(level=logging.INFO)

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from authgate.api.auth import router as auth_router
from authgate.api.health import router as health_router
from authgate.api.responses import install_exception_handlers
from authgate.auth.jwt import TokenIssuer
from authgate.auth.resolvers import build_resolver
from authgate.auth.verifiers import build_id_token_verifier
from authgate.config import settings
from authgate.models.base import Base
from authgate.models.database import build_engine, build_session_factory
import authgate.models.user  # noqa: F401

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build process-wide resources once and hand them to the handlers via app.state."""
    logger.info("Starting up authgate server...")

    engine = build_engine(settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")

    http_client = httpx.AsyncClient(timeout=settings.provider_timeout_seconds)
    verifier = build_id_token_verifier(settings, http_client)
    if not settings.apple_verify_signature:
        logger.warning("Apple id token signatures are NOT verified (AUTHGATE_APPLE_VERIFY_SIGNATURE=false)")

    app.state.db_session_factory = build_session_factory(engine)
    app.state.http_client = http_client
    app.state.token_issuer = TokenIssuer.from_settings(settings)
    app.state.resolver = build_resolver(settings, http_client, verifier)

    logger.info("Server startup complete")

    yield

    logger.info("Shutting down authgate server...")
    await http_client.aclose()
    await engine.dispose()
    logger.info("Server shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="authgate",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["OPTIONS", "POST"],
        allow_headers=["Content-Type", "Authorization", "X-Api-Key"],
    )

    install_exception_handlers(app)

    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(health_router)

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run("authgate.main:app", host=settings.host, port=settings.port)
