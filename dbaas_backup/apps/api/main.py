from __future__ import annotations

from contextlib import asynccontextmanager
import logging
import time
from typing import AsyncIterator

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from dbaas_backup.apps.api.errors import (
    adapter_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from dbaas_backup.apps.api.response import REQUEST_ID_HEADER, get_request_id
from dbaas_backup.apps.api.routes.backups import router as backups_router
from dbaas_backup.apps.api.routes.health import router as health_router
from dbaas_backup.apps.api.routes.ops import router as ops_router
from dbaas_backup.core.config import Settings, get_settings
from dbaas_backup.core.errors import AdapterError
from dbaas_backup.core.logging import configure_logging
from dbaas_backup.services.daemon_client import DaemonClient
from dbaas_backup.services.orchestrator import BackupOrchestrator
from dbaas_backup.services.telemetry import record_request


logger = logging.getLogger(__name__)


def api_prefix(settings: Settings) -> str:
    return f"/api/{settings.api_version}/dbaas/adapter/{settings.app_name}"


def create_app(
    settings: Settings | None = None,
    *,
    daemon_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    # Built eagerly so an unknown contract fails at startup, not on the first restore.
    daemon = DaemonClient.from_settings(settings, transport=daemon_transport)
    orchestrator = BackupOrchestrator.from_settings(daemon, settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "adapter_started app_name=%s daemon_url=%s contract=%s",
            settings.app_name,
            settings.backup_daemon_url,
            orchestrator.contract.name,
        )
        try:
            yield
        finally:
            await daemon.aclose()

    app = FastAPI(title="DBaaS Backup Adapter", lifespan=lifespan)
    app.state.settings = settings
    app.state.daemon = daemon
    app.state.orchestrator = orchestrator

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):  # type: ignore[override]
        # Preserve incoming request IDs or assign a new one for traceability.
        request_id = get_request_id(request)
        start = time.monotonic()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            # Unclassified errors escape to the outer handler; they still count against availability.
            record_request(
                path=request.url.path,
                status_code=status_code,
                latency_ms=(time.monotonic() - start) * 1000.0,
            )
        response.headers.setdefault(REQUEST_ID_HEADER, request_id)
        return response

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(AdapterError, adapter_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(backups_router, prefix=api_prefix(settings))
    app.include_router(health_router)
    app.include_router(ops_router)
    return app
