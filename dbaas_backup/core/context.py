from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import time
from uuid import uuid4


@dataclass
class RequestContext:
    # Carry correlation id, deadline and cancellation explicitly through every daemon call.
    request_id: str
    deadline: float | None = None
    _cancelled: asyncio.Event = field(default_factory=asyncio.Event, repr=False, compare=False)

    @classmethod
    def new(cls, request_id: str | None = None, *, timeout_s: float | None = None) -> RequestContext:
        deadline = time.monotonic() + timeout_s if timeout_s is not None else None
        return cls(request_id=request_id or str(uuid4()), deadline=deadline)

    def remaining(self) -> float | None:
        # Seconds left before the deadline; None when the context has no deadline.
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    async def wait_cancelled(self) -> None:
        await self._cancelled.wait()
