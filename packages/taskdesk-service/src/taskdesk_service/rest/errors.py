"""Translation of service errors into RFC 7807 problem responses.

This is the only place where exceptions become HTTP responses.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskdesk_service.errors import ServiceError

logger = structlog.get_logger(__name__)

PROBLEM_JSON_MEDIA_TYPE = "application/problem+json"


class ProblemDetail(BaseModel):
    type: str = "about:blank"
    title: str
    status: int
    detail: str
    code: str
    instance: str | None = None
    errors: dict[str, Any] | None = None


def _problem(
    request: Request,
    status: int,
    title: str,
    detail: str,
    code: str,
    errors: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = ProblemDetail(
        title=title,
        status=status,
        detail=detail,
        code=code,
        instance=request.url.path,
        errors=errors,
    )
    if status == 401:
        headers = {**(headers or {}), "WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=status,
        content=body.model_dump(exclude_none=True),
        headers=headers,
        media_type=PROBLEM_JSON_MEDIA_TYPE,
    )


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log("service_error", error=type(exc).__name__, status=exc.status_code, detail=exc.message)
    return _problem(
        request,
        status=exc.status_code,
        title=exc.title,
        detail=exc.message,
        code=exc.error_code,
        errors=exc.errors,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors: dict[str, Any] = {}
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(location) or "request"
        errors.setdefault(field, error.get("msg", "Invalid value"))
    logger.warning("validation_failed", fields=sorted(errors))
    return _problem(
        request,
        status=400,
        title="Validation Error",
        detail="Validation failed",
        code="VALIDATION_FAILED",
        errors=errors,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _problem(
        request,
        status=exc.status_code,
        title=str(exc.detail) if exc.status_code < 500 else "Internal Server Error",
        detail=str(exc.detail),
        code="HTTP_ERROR",
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_exception", path=request.url.path)
    return _problem(
        request,
        status=500,
        title="Internal Server Error",
        detail="An unexpected error occurred",
        code="INTERNAL_ERROR",
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
