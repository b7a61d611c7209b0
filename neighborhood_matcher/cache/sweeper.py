from __future__ import annotations

import asyncio
import logging

from .store import TTLCacheStore

logger = logging.getLogger(__name__)


class CacheSweeper:
    """Periodic expiry sweep, started and stopped by the app lifespan."""

    def __init__(self, store: TTLCacheStore, interval_seconds: float) -> None:
        self.store = store
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.store.sweep_expired()
            except Exception:
                logger.warning("Cache sweep failed", exc_info=True)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="cache-sweeper")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
