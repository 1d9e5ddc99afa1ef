from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from authgate.auth.errors import ServiceError

logger = logging.getLogger(__name__)


def envelope(
    status_code: int,
    data: BaseModel | None = None,
    message: str | None = None,
) -> JSONResponse:
    """Build the {success, data?, message?} response body."""
    content: dict[str, Any] = {"success": 200 <= status_code < 300}
    if data is not None:
        content["data"] = data.model_dump(mode="json", exclude_unset=True)
    if message:
        content["message"] = message
    return JSONResponse(content, status_code=status_code)


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    return envelope(exc.status_code, message=exc.message)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if any(err.get("type") == "missing" and tuple(err.get("loc", ())) == ("body",) for err in errors):
        return envelope(400, message="Request body is required")
    logger.info(f"Rejected request body on {request.url.path}: {errors}")
    return envelope(400, message="Invalid request body")


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
