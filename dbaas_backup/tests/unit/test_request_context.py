from __future__ import annotations

import asyncio

import httpx
import pytest

from dbaas_backup.apps.api.deps import watch_disconnect
from dbaas_backup.core.context import RequestContext
from dbaas_backup.core.errors import RequestCancelledError
from dbaas_backup.services.orchestrator import BackupOrchestrator
from dbaas_backup.tests.utils.daemon import FakeDaemon


class _Client:
    # Reports a disconnect once it has been polled `hang_up_after` times.
    def __init__(self, hang_up_after: int | None) -> None:
        self.hang_up_after = hang_up_after
        self.polls = 0

    async def is_disconnected(self) -> bool:
        self.polls += 1
        return self.hang_up_after is not None and self.polls >= self.hang_up_after


@pytest.mark.asyncio
async def test_disconnect_cancels_context() -> None:
    client = _Client(hang_up_after=3)
    ctx = RequestContext.new("req-gone")

    await asyncio.wait_for(watch_disconnect(client, ctx, interval_s=0.01), timeout=1)

    assert ctx.cancelled
    assert client.polls == 3


@pytest.mark.asyncio
async def test_watch_stops_once_context_is_cancelled() -> None:
    client = _Client(hang_up_after=None)
    ctx = RequestContext.new("req-done")
    watcher = asyncio.create_task(watch_disconnect(client, ctx, interval_s=0.01))
    await asyncio.sleep(0.05)

    ctx.cancel()

    await asyncio.wait_for(watcher, timeout=1)
    assert client.polls >= 1


@pytest.mark.asyncio
async def test_disconnect_aborts_outstanding_daemon_call(daemon: FakeDaemon) -> None:
    async def _hang(_request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(5)
        return httpx.Response(200, json={"restoreId": "r1", "status": "completed"})

    daemon.route("GET", "/api/v1/restore/r1", _hang)
    ctx = RequestContext.new("req-hangup", timeout_s=5.0)
    watcher = asyncio.create_task(watch_disconnect(_Client(hang_up_after=2), ctx, interval_s=0.01))

    with pytest.raises(RequestCancelledError):
        await asyncio.wait_for(BackupOrchestrator(daemon.client()).track_restore(ctx, "r1", "b1"), timeout=1)
    await watcher
