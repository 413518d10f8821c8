from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from game import Room, RoomRegistry, now_ms

logger = logging.getLogger(__name__)

OnChange = Callable[[Room], Awaitable[None]]


class TurnClock:
    """Shared polling loop that forces plays for seats whose deadline lapsed.

    Deadline precision is bounded by ``interval`` seconds.
    """

    def __init__(self, registry: RoomRegistry, on_change: Optional[OnChange] = None, interval: float = 0.25):
        self.registry = registry
        self.on_change = on_change
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self, now: Optional[int] = None) -> int:
        changed = self.registry.tick(now if now is not None else now_ms())
        if self.on_change is not None:
            for room in changed:
                await self.on_change(room)
        return len(changed)

    async def _run(self):
        logger.info("Turn clock started (interval=%.3fs)", self.interval)
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Turn clock tick failed")

    def start(self):
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="turn-clock")

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Turn clock stopped")
