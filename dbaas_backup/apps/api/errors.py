from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from dbaas_backup.apps.api.response import (
    REQUEST_ID_HEADER,
    bad_request_response,
    get_request_id,
    server_error_response,
)
from dbaas_backup.core.errors import AdapterError, DaemonError, DecodeError


logger = logging.getLogger(__name__)

# Locations FastAPI prepends to validation errors; clients only care about the field path.
_LOCATION_ROOTS = {"body", "query", "path", "header"}


def _field_name(loc: tuple[Any, ...] | list[Any]) -> str:
    parts = [str(part) for part in loc]
    if parts and parts[0] in _LOCATION_ROOTS:
        parts = parts[1:]
    return ".".join(parts) or "request"


def format_validation_errors(errors: list[dict[str, Any]]) -> list[str]:
    # Mirror the "Field '<name>' failed validation: <reason>" wording clients already parse.
    return [f"Field '{_field_name(error.get('loc', ()))}' failed validation: {error.get('msg', 'invalid')}" for error in errors]


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = format_validation_errors(list(exc.errors()))
    logger.info(
        "request_validation_failed path=%s errors=%s request_id=%s",
        request.url.path,
        len(details),
        get_request_id(request),
    )
    return JSONResponse(content=bad_request_response(details), status_code=400)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Client-side failures keep the BadRequestResponse shape with the detail as the error text.
    detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        content=bad_request_response(error=detail),
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


def _server_error(request: Request) -> JSONResponse:
    # Unhandled errors are answered outside the request middleware, so set the id header here too.
    return JSONResponse(
        content=server_error_response(request=request),
        status_code=500,
        headers={REQUEST_ID_HEADER: get_request_id(request)},
    )


async def adapter_exception_handler(request: Request, exc: AdapterError) -> JSONResponse:
    # Log each adapter failure once, with everything needed to correlate it with the daemon.
    request_id = exc.request_id or get_request_id(request)
    extra = ""
    if isinstance(exc, DaemonError):
        extra = f" daemon_status={exc.status_code}"
    elif isinstance(exc, DecodeError):
        extra = f" body_sha256={exc.body_sha256} body_excerpt={exc.body_excerpt!r}"
    logger.error(
        "adapter_error kind=%s operation=%s path=%s request_id=%s%s",
        type(exc).__name__,
        exc.operation,
        request.url.path,
        request_id,
        extra,
        exc_info=exc,
    )
    return _server_error(request)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Avoid leaking stack traces; return a stable internal error body.
    logger.error(
        "unhandled_error path=%s request_id=%s",
        request.url.path,
        get_request_id(request),
        exc_info=exc,
    )
    return _server_error(request)
