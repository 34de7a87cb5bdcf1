from __future__ import annotations

import math
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Any, Deque, Iterable, TypeVar


@dataclass(frozen=True)
class InboundSample:
    ts: float
    path: str
    status_code: int
    latency_ms: float


@dataclass(frozen=True)
class DaemonCallSample:
    ts: float
    integration: str
    operation: str
    latency_ms: float
    success: bool


SampleT = TypeVar("SampleT", InboundSample, DaemonCallSample)

# Bounded so a busy adapter keeps memory flat; old samples fall off the left.
_inbound: Deque[InboundSample] = deque(maxlen=20000)
_daemon_calls: Deque[DaemonCallSample] = deque(maxlen=10000)
_counters: dict[str, int] = defaultdict(int)


def record_request(*, path: str, status_code: int, latency_ms: float) -> None:
    _inbound.append(InboundSample(ts=time.time(), path=path, status_code=status_code, latency_ms=latency_ms))


def record_external_call(*, integration: str, operation: str, latency_ms: float, success: bool) -> None:
    _daemon_calls.append(
        DaemonCallSample(
            ts=time.time(),
            integration=integration,
            operation=operation,
            latency_ms=latency_ms,
            success=success,
        )
    )


def increment_counter(name: str, value: int = 1) -> None:
    _counters[name] += value


def _since(samples: Iterable[SampleT], window_s: int) -> list[SampleT]:
    cutoff = time.time() - window_s
    return [sample for sample in samples if sample.ts >= cutoff]


def _p95(latencies: list[float]) -> float | None:
    if not latencies:
        return None
    ordered = sorted(latencies)
    return ordered[max(0, math.ceil(0.95 * len(ordered)) - 1)]


def availability(window_s: int) -> float | None:
    """Percentage of inbound requests in the window that did not end in a 5xx."""
    samples = _since(_inbound, window_s)
    if not samples:
        return None
    healthy = sum(1 for sample in samples if sample.status_code < 500)
    return healthy / len(samples) * 100.0


def p95_latency(window_s: int) -> float | None:
    return _p95([sample.latency_ms for sample in _since(_inbound, window_s)])


def _call_summary(samples: list[DaemonCallSample]) -> dict[str, Any]:
    latencies = [sample.latency_ms for sample in samples]
    return {
        "calls": len(samples),
        "failures": sum(1 for sample in samples if not sample.success),
        "p95": _p95(latencies),
        "max": max(latencies) if latencies else None,
    }


def external_call_stats(window_s: int) -> dict[str, dict[str, Any]]:
    # One summary per integration, broken down by the adapter operation that made the call.
    by_integration: dict[str, list[DaemonCallSample]] = defaultdict(list)
    for sample in _since(_daemon_calls, window_s):
        by_integration[sample.integration].append(sample)

    result: dict[str, dict[str, Any]] = {}
    for integration, samples in by_integration.items():
        by_operation: dict[str, list[DaemonCallSample]] = defaultdict(list)
        for sample in samples:
            by_operation[sample.operation].append(sample)
        summary = _call_summary(samples)
        summary["operations"] = {
            operation: _call_summary(operation_samples)
            for operation, operation_samples in sorted(by_operation.items())
        }
        result[integration] = summary
    return result


def counters_snapshot() -> dict[str, int]:
    return dict(_counters)


def reset_telemetry() -> None:
    # Tests share the module-level buffers; clear them between cases.
    _inbound.clear()
    _daemon_calls.clear()
    _counters.clear()
