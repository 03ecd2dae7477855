import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTicker:
    """Периодический тик в фоне, пока tick() сообщает об активности."""

    def __init__(self, interval: float, tick: Callable[[], bool],
                 on_tick: Optional[Callable[[], Awaitable[None]]] = None):
        self.interval = interval
        self.tick = tick
        self.on_tick = on_tick
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            if not self.tick():
                return
            if self.on_tick is not None:
                try:
                    await self.on_tick()
                except Exception as e:
                    logger.warning(f"Ticker callback failed: {e}")
