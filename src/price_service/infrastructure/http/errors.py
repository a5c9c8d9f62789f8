# src/price_service/infrastructure/http/errors.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Exception handlers rendering the ``{success: false, error: {...}}`` envelope."""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from price_service.domain.enums.prices import ErrorKind
from price_service.domain.exceptions.price import PriceServiceError
from price_service.infrastructure.logging.logger import get_json_logger

logger = get_json_logger(__name__)

_STATUS_KINDS: dict[int, ErrorKind] = {
    400: ErrorKind.INVALID_INPUT,
    401: ErrorKind.UNAUTHORIZED,
    403: ErrorKind.UNAUTHORIZED,
    404: ErrorKind.SYMBOL_NOT_FOUND,
    405: ErrorKind.INVALID_INPUT,
    422: ErrorKind.INVALID_INPUT,
    429: ErrorKind.RATE_LIMIT_EXCEEDED,
}


def _request_id(request: Request) -> str | None:
    return getattr(getattr(request, "state", None), "request_id", None)


def error_envelope(*, code: str, message: str) -> dict[str, Any]:
    return {"success": False, "error": {"code": code, "message": message}}


def error_response(
    *, code: str, message: str, http_status: int, headers: dict[str, str] | None = None
) -> JSONResponse:
    return JSONResponse(
        status_code=http_status,
        content=error_envelope(code=code, message=message),
        headers=headers,
    )


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "invalid request"
    first = errors[0]
    loc = [str(p) for p in first.get("loc", ()) if p not in ("query", "body", "path", "header")]
    msg = str(first.get("msg", "invalid value"))
    if first.get("type") == "missing" and loc:
        return f"{loc[-1]} parameter is required"
    return f"{'.'.join(loc)}: {msg}" if loc else msg


async def handle_price_service_error(request: Request, exc: PriceServiceError) -> Response:
    log = logger.warning if exc.http_status >= 500 else logger.info
    log(
        "http.domain_error",
        extra={
            "extra": {
                "path": request.url.path,
                "code": exc.code,
                "status": exc.http_status,
                "error": exc.message,
                "request_id": _request_id(request),
            }
        },
    )
    return error_response(code=exc.code, message=exc.message, http_status=exc.http_status)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> Response:
    return error_response(
        code=ErrorKind.INVALID_INPUT.value,
        message=_validation_message(exc),
        http_status=400,
    )


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> Response:
    kind = _STATUS_KINDS.get(exc.status_code, ErrorKind.SERVICE_UNAVAILABLE)
    message = exc.detail if isinstance(exc.detail, str) else "HTTP error"
    return error_response(
        code=kind.value,
        message=message,
        http_status=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


async def handle_unhandled_exception(request: Request, exc: Exception) -> Response:
    logger.exception(
        "http.unhandled_error",
        extra={"extra": {"path": request.url.path, "request_id": _request_id(request)}},
    )
    return error_response(
        code=ErrorKind.SERVICE_UNAVAILABLE.value,
        message="internal server error",
        http_status=500,
    )


def install_exception_handlers(app: Any) -> None:
    """Register every handler on a FastAPI app."""
    app.add_exception_handler(PriceServiceError, handle_price_service_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_unhandled_exception)
