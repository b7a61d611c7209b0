from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class _Gate:
    interval: float
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    last_start: float | None = None


class RateLimiter:
    """
    Per-source serializing gate.

    For one source id at most one call is in flight, waiters are served in
    arrival order, and consecutive calls start at least ``interval`` seconds
    apart. Different source ids never wait on each other.
    """

    def __init__(
        self,
        intervals: dict[str, float] | None = None,
        default_interval: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._intervals = dict(intervals or {})
        self._default_interval = default_interval
        self._clock = clock
        self._sleep = sleep
        self._gates: dict[str, _Gate] = {}

    def _gate(self, source_id: str) -> _Gate:
        gate = self._gates.get(source_id)
        if gate is None:
            interval = self._intervals.get(source_id, self._default_interval)
            gate = self._gates[source_id] = _Gate(interval=interval)
        return gate

    async def schedule(self, source_id: str, thunk: Callable[[], Awaitable[T]]) -> T:
        gate = self._gate(source_id)
        async with gate.lock:
            if gate.last_start is not None:
                wait = gate.last_start + gate.interval - self._clock()
                if wait > 0:
                    logger.debug("Throttling %s for %.2fs", source_id, wait)
                    await self._sleep(wait)
            gate.last_start = self._clock()
            return await thunk()

    def pending(self, source_id: str) -> bool:
        """Whether a call for *source_id* currently holds the gate."""
        gate = self._gates.get(source_id)
        return gate is not None and gate.lock.locked()
