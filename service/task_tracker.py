# service/task_tracker.py
import asyncio
import logging
from typing import Coroutine, Any, NamedTuple, Optional, Set

logger = logging.getLogger(__name__)


class DrainReport(NamedTuple):
    finished: int
    abandoned: int


class TaskTracker:
    """
    Handles for fire-and-forget archival tasks.
    Tasks drop out of the set when done; drain() is the shutdown contract:
    wait up to `grace` seconds, then cancel and report whatever is left.
    A cancelled task may still have a copy running in a worker thread; the
    engine's temp-file rename keeps that from leaving a partial destination.
    """

    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: Optional[str] = None) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("task.failed name=%s", task.get_name(), exc_info=exc)

    async def drain(self, grace: float) -> DrainReport:
        tasks = set(self._tasks)
        if not tasks:
            return DrainReport(finished=0, abandoned=0)

        logger.info("tasks.drain pending=%d grace=%.1fs", len(tasks), grace)
        done, pending = await asyncio.wait(tasks, timeout=grace)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning("tasks.abandoned count=%d", len(pending))
        return DrainReport(finished=len(done), abandoned=len(pending))
