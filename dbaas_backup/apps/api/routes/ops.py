from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query
from pydantic import BaseModel

from dbaas_backup.services.telemetry import (
    availability,
    counters_snapshot,
    external_call_stats,
    p95_latency,
)


router = APIRouter(prefix="/ops", tags=["ops"])


class MetricsResponse(BaseModel):
    # Expose in-process request and daemon call signals for operator dashboards.
    window_s: int
    availability: float | None
    p95_latency_ms: float | None
    daemon_calls: dict[str, dict[str, Any]]
    counters: dict[str, int]


@router.get("/metrics", response_model=MetricsResponse)
async def metrics(window_s: int = Query(default=300, ge=1, le=86400)) -> MetricsResponse:
    return MetricsResponse(
        window_s=window_s,
        availability=availability(window_s),
        p95_latency_ms=p95_latency(window_s),
        daemon_calls=external_call_stats(window_s),
        counters=counters_snapshot(),
    )
