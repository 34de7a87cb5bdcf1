from __future__ import annotations


class AdapterError(Exception):
    """Base error for the backup adapter."""

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.request_id = request_id

    def __str__(self) -> str:
        parts = [self.message]
        if self.operation:
            parts.append(f"operation={self.operation}")
        if self.request_id:
            parts.append(f"request_id={self.request_id}")
        return " ".join(parts)


class TransportError(AdapterError):
    """The backup daemon could not be reached."""


class DaemonTimeoutError(TransportError):
    """The daemon call outlived the request deadline."""


class RequestCancelledError(TransportError):
    """The request context was cancelled while a daemon call was outstanding."""


class DaemonError(AdapterError):
    """The daemon answered with an unexpected status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        body: str,
        operation: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message, operation=operation, request_id=request_id)
        self.status_code = status_code
        self.body = body


class DecodeError(AdapterError):
    """The daemon body did not match the expected shape."""

    def __init__(
        self,
        message: str,
        *,
        body_excerpt: str,
        body_sha256: str,
        operation: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message, operation=operation, request_id=request_id)
        self.body_excerpt = body_excerpt
        self.body_sha256 = body_sha256


class NameGenerationError(AdapterError):
    """A restore mapping cannot be turned into a new database name."""


class ContractError(AdapterError):
    """The configured wire contract cannot carry the requested operation."""
