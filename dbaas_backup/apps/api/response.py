from __future__ import annotations

from typing import Any
from uuid import uuid4

from fastapi import Request

from dbaas_backup.domain.models import BadRequestResponse, ServerErrorResponse


REQUEST_ID_HEADER = "X-Request-Id"
INVALID_REQUEST_MESSAGE = "Invalid request parameters"
INTERNAL_ERROR_MESSAGE = "Internal server error"
MAX_REQUEST_ID_LENGTH = 128


def _is_forwardable(value: str) -> bool:
    # The id is echoed to the daemon as a header, so it must survive ASCII encoding.
    return value.isascii() and value.isprintable() and len(value) <= MAX_REQUEST_ID_LENGTH


def get_request_id(request: Request) -> str:
    # Use existing request IDs when provided to preserve traceability.
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return request_id
    header_request_id = request.headers.get(REQUEST_ID_HEADER)
    if header_request_id and _is_forwardable(header_request_id):
        request.state.request_id = header_request_id
        return header_request_id
    generated = str(uuid4())
    request.state.request_id = generated
    return generated


def bad_request_response(details: list[str] | None = None, *, error: str = INVALID_REQUEST_MESSAGE) -> dict[str, Any]:
    return BadRequestResponse(error=error, details=details or None).to_wire()


def server_error_response(*, request: Request) -> dict[str, Any]:
    # Never echo daemon bodies to clients; the request id is enough to find the log line.
    return ServerErrorResponse(error=INTERNAL_ERROR_MESSAGE, request_id=get_request_id(request)).to_wire()
