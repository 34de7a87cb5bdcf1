from __future__ import annotations

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from dbaas_backup.apps.api.main import api_prefix, create_app
from dbaas_backup.tests.utils.daemon import FakeDaemon, make_settings


@pytest.mark.asyncio
async def test_health_does_not_touch_daemon(daemon: FakeDaemon) -> None:
    app = create_app(make_settings(), daemon_transport=daemon.transport())
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert daemon.requests == []


@pytest.mark.asyncio
async def test_metrics_report_daemon_calls(daemon: FakeDaemon) -> None:
    daemon.respond("GET", "/api/v1/backup/abc", json_body={"backupId": "abc", "status": "completed"})
    daemon.respond("GET", "/api/v1/backup/gone", 404)
    settings = make_settings()
    app = create_app(settings, daemon_transport=daemon.transport())
    prefix = api_prefix(settings)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        await client.get(f"{prefix}/backups/backup/abc", params={"blobPath": "b1"})
        await client.get(f"{prefix}/backups/backup/gone", params={"blobPath": "b1"})
        response = await client.get("/ops/metrics", params={"window_s": 60})

    assert response.status_code == 200
    payload = response.json()
    assert payload["window_s"] == 60
    assert payload["daemon_calls"]["backup_daemon"]["calls"] == 2
    assert payload["daemon_calls"]["backup_daemon"]["failures"] == 0
    assert payload["daemon_calls"]["backup_daemon"]["operations"]["track_backup"]["calls"] == 2
    assert payload["counters"]["daemon_not_found_total"] == 1
    assert payload["availability"] == 100.0


@pytest.mark.asyncio
async def test_api_version_and_app_name_shape_the_prefix(daemon: FakeDaemon) -> None:
    settings = make_settings(api_version="v1", app_name="mongodb")
    daemon.respond("GET", "/api/v1/backup/abc", json_body={"backupId": "abc", "status": "completed"})
    app = create_app(settings, daemon_transport=daemon.transport())

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        moved = await client.get("/api/v1/dbaas/adapter/mongodb/backups/backup/abc", params={"blobPath": "b1"})
        old = await client.get("/api/v2/dbaas/adapter/postgresql/backups/backup/abc", params={"blobPath": "b1"})

    assert moved.status_code == 200
    assert old.status_code == 404


@pytest.mark.asyncio
async def test_unclassified_failure_counts_against_availability(daemon: FakeDaemon) -> None:
    def _explode(_request: httpx.Request) -> httpx.Response:
        raise RuntimeError("unexpected failure inside the daemon client")

    daemon.route("GET", "/api/v1/backup/abc", _explode)
    settings = make_settings()
    app = create_app(settings, daemon_transport=daemon.transport())
    transport = ASGITransport(app=app, raise_app_exceptions=False)

    async with AsyncClient(transport=transport, base_url="http://test") as client:
        failed = await client.get(
            f"{api_prefix(settings)}/backups/backup/abc",
            params={"blobPath": "b1"},
            headers={"X-Request-Id": "req-boom"},
        )
        metrics = await client.get("/ops/metrics", params={"window_s": 60})

    assert failed.status_code == 500
    assert failed.json() == {"error": "Internal server error", "requestId": "req-boom"}
    assert failed.headers["X-Request-Id"] == "req-boom"
    assert metrics.json()["availability"] < 100.0
