from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
import time
from typing import Any, Awaitable

import httpx

from dbaas_backup.core.config import Settings, get_settings
from dbaas_backup.core.context import RequestContext
from dbaas_backup.core.errors import DaemonTimeoutError, RequestCancelledError, TransportError
from dbaas_backup.services.telemetry import record_external_call


logger = logging.getLogger(__name__)

INTEGRATION_NAME = "backup_daemon"


@dataclass(frozen=True)
class DaemonResponse:
    # Raw daemon answer; interpretation belongs to the orchestrator.
    status_code: int
    body: bytes

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


def build_http_client(
    settings: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    # One pooled client per process; httpx.AsyncClient is safe for concurrent use.
    settings = settings or get_settings()
    auth = None
    if settings.backup_daemon_username:
        auth = httpx.BasicAuth(settings.backup_daemon_username, settings.backup_daemon_password or "")
    limits = httpx.Limits(
        max_connections=settings.backup_daemon_max_connections,
        max_keepalive_connections=settings.backup_daemon_max_connections,
    )
    return httpx.AsyncClient(
        base_url=settings.backup_daemon_url,
        auth=auth,
        timeout=settings.backup_daemon_timeout_ms / 1000.0,
        limits=limits,
        transport=transport,
    )


class DaemonClient:
    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> DaemonClient:
        return cls(build_http_client(settings, transport=transport))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def post(
        self, path: str, *, ctx: RequestContext, operation: str, json: Any
    ) -> DaemonResponse:
        return await self.request("POST", path, ctx=ctx, operation=operation, json=json)

    async def get(
        self, path: str, *, ctx: RequestContext, operation: str, params: dict[str, str] | None = None
    ) -> DaemonResponse:
        return await self.request("GET", path, ctx=ctx, operation=operation, params=params)

    async def delete(
        self, path: str, *, ctx: RequestContext, operation: str, params: dict[str, str] | None = None
    ) -> DaemonResponse:
        return await self.request("DELETE", path, ctx=ctx, operation=operation, params=params)

    async def request(
        self,
        method: str,
        path: str,
        *,
        ctx: RequestContext,
        operation: str,
        params: dict[str, str] | None = None,
        json: Any = None,
    ) -> DaemonResponse:
        # Exactly one outbound call; retries are the caller's business.
        if ctx.cancelled:
            raise RequestCancelledError(
                "request was cancelled before the daemon call",
                operation=operation,
                request_id=ctx.request_id,
            )
        headers = {"X-Request-Id": ctx.request_id}
        start = time.monotonic()
        try:
            response = await self._race(
                self._client.request(method, path, params=params, json=json, headers=headers),
                ctx,
                operation=operation,
            )
        except TransportError:
            self._record(start, operation, success=False)
            raise
        except httpx.TimeoutException as exc:
            self._record(start, operation, success=False)
            raise DaemonTimeoutError(
                f"backup daemon timed out on {method} {path}",
                operation=operation,
                request_id=ctx.request_id,
            ) from exc
        except httpx.HTTPError as exc:
            self._record(start, operation, success=False)
            raise TransportError(
                f"backup daemon unreachable on {method} {path}: {exc}",
                operation=operation,
                request_id=ctx.request_id,
            ) from exc

        latency_ms = self._record(start, operation, success=response.status_code < 500)
        logger.debug(
            "daemon_call operation=%s method=%s path=%s status=%s latency_ms=%.1f request_id=%s",
            operation,
            method,
            path,
            response.status_code,
            latency_ms,
            ctx.request_id,
        )
        return DaemonResponse(status_code=response.status_code, body=response.content)

    async def _race(
        self,
        call: Awaitable[httpx.Response],
        ctx: RequestContext,
        *,
        operation: str,
    ) -> httpx.Response:
        # Abort the in-flight call when the context deadline passes or the context is cancelled.
        call_task = asyncio.ensure_future(call)
        cancel_task = asyncio.ensure_future(ctx.wait_cancelled())
        try:
            done, _pending = await asyncio.wait(
                {call_task, cancel_task},
                timeout=ctx.remaining(),
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (call_task, cancel_task):
                if not task.done():
                    task.cancel()
            await asyncio.wait({call_task, cancel_task})

        if call_task in done:
            return call_task.result()
        if cancel_task in done:
            logger.warning("daemon_call_cancelled operation=%s request_id=%s", operation, ctx.request_id)
            raise RequestCancelledError(
                "request was cancelled while the daemon call was outstanding",
                operation=operation,
                request_id=ctx.request_id,
            )
        raise DaemonTimeoutError(
            "request deadline exceeded while the daemon call was outstanding",
            operation=operation,
            request_id=ctx.request_id,
        )

    @staticmethod
    def _record(start: float, operation: str, *, success: bool) -> float:
        latency_ms = (time.monotonic() - start) * 1000.0
        record_external_call(
            integration=INTEGRATION_NAME,
            operation=operation,
            latency_ms=latency_ms,
            success=success,
        )
        return latency_ms
