from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Protocol

from fastapi import HTTPException, Query, Request, status

from dbaas_backup.apps.api.response import get_request_id
from dbaas_backup.core.config import Settings
from dbaas_backup.core.context import RequestContext
from dbaas_backup.services.orchestrator import BackupOrchestrator


logger = logging.getLogger(__name__)

DISCONNECT_POLL_S = 0.5


class _Disconnectable(Protocol):
    async def is_disconnected(self) -> bool: ...


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_orchestrator(request: Request) -> BackupOrchestrator:
    # The orchestrator and its pooled daemon client are built once per app.
    return request.app.state.orchestrator


async def watch_disconnect(
    request: _Disconnectable,
    ctx: RequestContext,
    *,
    interval_s: float = DISCONNECT_POLL_S,
) -> None:
    # A client that hangs up cancels the context, which aborts any outstanding daemon call.
    while not ctx.cancelled:
        if await request.is_disconnected():
            logger.info("client_disconnected request_id=%s", ctx.request_id)
            ctx.cancel()
            return
        await asyncio.sleep(interval_s)


async def get_request_context(request: Request) -> AsyncIterator[RequestContext]:
    # Bound every daemon call by the configured timeout and tag it with the request id.
    settings = get_app_settings(request)
    ctx = RequestContext.new(
        get_request_id(request),
        timeout_s=settings.backup_daemon_timeout_ms / 1000.0,
    )
    watcher = asyncio.create_task(watch_disconnect(request, ctx))
    try:
        yield ctx
    finally:
        watcher.cancel()


def require_blob_path(blob_path: str | None = Query(default=None, alias="blobPath")) -> str:
    # Backup ids are scoped by blob path, so track/evict calls must name one.
    value = (blob_path or "").strip()
    if not value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="query parameter 'blobPath' is required",
        )
    return value
