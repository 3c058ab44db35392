# service/periodic_sweep.py
import asyncio
import logging
from service.archive_service import ArchiveService
from util.enums import ComponentState

logger = logging.getLogger(__name__)


class PeriodicSweep:
    def __init__(self, service: ArchiveService, interval_seconds: float) -> None:
        self._service = service
        self._interval = interval_seconds
        self._stop = asyncio.Event()
        self.state = ComponentState.STARTING

    async def run(self) -> None:
        """Sweep now, then every interval, until stop()."""
        self.state = ComponentState.RUNNING
        logger.info("sweep.start interval=%.0fs", self._interval)
        while not self._stop.is_set():
            try:
                await self._service.sweep_once()
            except Exception:
                logger.error("sweep.pass.error", exc_info=True)
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
        self.state = ComponentState.STOPPED
        logger.info("sweep.stopped")

    def stop(self) -> None:
        self._stop.set()
