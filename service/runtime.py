# service/runtime.py
import asyncio
import logging
from typing import Callable, Optional
from core.pod_watch import WatchSource
from model.api import ComponentsPayload, HealthResponse, StatsPayload
from model.archive import ArchiverConfig
from service.archive_service import ArchiveService
from service.event_trigger import EventTrigger
from service.periodic_sweep import PeriodicSweep
from service.task_tracker import DrainReport, TaskTracker
from util.enums import ComponentState

logger = logging.getLogger(__name__)


class ArchiverRuntime:
    """
    Starting -> Running -> Stopping -> Stopped (or Failed when the watch dies).
    Running = the watch consumer and the sweep loop, unaware of each other.
    """

    def __init__(
        self,
        config: ArchiverConfig,
        source: WatchSource,
        fatal_hook: Optional[Callable[[BaseException], None]] = None,
        service: Optional[ArchiveService] = None,
    ) -> None:
        self.config = config
        self.service = service or ArchiveService(config)
        self.tracker = TaskTracker()
        self.sweep = PeriodicSweep(self.service, config.sweep_interval_seconds)
        self.trigger = EventTrigger(
            source,
            self.service.matcher,
            self.service,
            self.tracker,
            on_fatal=self._on_watch_failed,
        )
        self._fatal_hook = fatal_hook
        self._sweep_task: Optional[asyncio.Task] = None
        self.state = ComponentState.STARTING

    async def start(self) -> None:
        loop = asyncio.get_running_loop()
        self._sweep_task = loop.create_task(self.sweep.run(), name="periodic-sweep")
        self.trigger.start(loop)
        if self.state == ComponentState.STARTING:
            self.state = ComponentState.RUNNING
        logger.info(
            "runtime.start patterns=%s remove_after_copy=%s naming=%s",
            ",".join(self.config.patterns),
            self.config.remove_after_copy,
            self.config.naming_mode.value,
        )

    async def stop(self) -> DrainReport:
        if self.state != ComponentState.FAILED:
            self.state = ComponentState.STOPPING
        grace = self.config.shutdown_grace_seconds
        self.trigger.stop()
        self.sweep.stop()

        if self._sweep_task is not None:
            # A pass in progress finishes its current directory, then the loop sees stop
            _done, pending = await asyncio.wait({self._sweep_task}, timeout=grace)
            for task in pending:
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)

        report = await self.tracker.drain(grace)
        if self.state != ComponentState.FAILED:
            self.state = ComponentState.STOPPED
        logger.info(
            "runtime.stop finished=%d abandoned=%d", report.finished, report.abandoned
        )
        return report

    def _on_watch_failed(self, exc: BaseException) -> None:
        # Called from the watch thread
        self.state = ComponentState.FAILED
        if self._fatal_hook is not None:
            self._fatal_hook(exc)

    @property
    def ready(self) -> bool:
        return (
            self.state == ComponentState.RUNNING
            and self.trigger.state == ComponentState.RUNNING
            and self.sweep.state == ComponentState.RUNNING
        )

    def health(self) -> HealthResponse:
        s = self.service.stats
        return HealthResponse(
            ok=self.state != ComponentState.FAILED,
            state=self.state.value,
            components=ComponentsPayload(
                watch=self.trigger.state.value, sweep=self.sweep.state.value
            ),
            pendingTasks=self.tracker.pending,
            stats=StatsPayload(
                runs=s.runs,
                copied=s.copied,
                skipped=s.skipped,
                removed=s.removed,
                errors=s.errors,
                sweeps=s.sweeps,
                events=s.events,
                lastSweepAt=s.last_sweep_at,
            ),
        )
