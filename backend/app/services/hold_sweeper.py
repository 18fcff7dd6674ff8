"""
Background task that reclaims expired holds on a fixed interval.
Started and stopped by the application lifespan.
"""

import asyncio
from typing import Optional

from app.core.exceptions import StorageError
from app.core.logging import get_logger
from app.services.hold_manager import HoldManager

logger = get_logger(__name__)


class HoldSweeper:
    def __init__(self, hold_manager: HoldManager, interval_seconds: float = 5.0):
        self.hold_manager = hold_manager
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="hold-sweeper")
        logger.info("hold_sweeper_started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("hold_sweeper_stopped")

    async def run_once(self) -> int:
        try:
            return await self.hold_manager.sweep_expired()
        except StorageError:
            logger.warning("hold_sweep_failed", reason="storage_unavailable")
            return 0

    async def _run(self) -> None:
        while True:
            try:
                await self.run_once()
            except Exception:
                logger.exception("hold_sweep_crashed")
            await asyncio.sleep(self.interval_seconds)
