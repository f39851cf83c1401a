"""Failure envelope.

Every error leaves the service as::

    {"success": false, "error": {"kind": ..., "message": ...}, "request_id": ...}

``install_error_handlers`` covers exceptions FastAPI routes itself
(HTTPException, request validation, store failures that escaped a controller); ``error_envelope_middleware`` is the last
line for anything unhandled.
"""
import logging
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.errors import KIND_STATUS, ApiError, ErrorKind, kind_for_status

logger = logging.getLogger(__name__)


def error_response(
    request: Request,
    kind: ErrorKind,
    message: str,
    status_code: int | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code or KIND_STATUS[kind],
        content={
            "success": False,
            "error": {"kind": kind.value, "message": message},
            "request_id": getattr(request.state, "request_id", None),
        },
        headers=headers,
    )


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
        msg = err.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "Invalid request"


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc, ApiError):
        kind = exc.kind
    else:
        kind = kind_for_status(exc.status_code)
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return error_response(request, kind, message, exc.status_code, getattr(exc, "headers", None))


async def _store_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc)
    return error_response(
        request, ErrorKind.STORE_UNAVAILABLE, "Storage is temporarily unavailable."
    )


async def _validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return error_response(request, ErrorKind.VALIDATION_ERROR, _validation_message(exc))


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, _store_exception_handler)


async def error_envelope_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    try:
        return await call_next(request)
    except Exception:
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return error_response(request, ErrorKind.INTERNAL_ERROR, "An unexpected error occurred")
