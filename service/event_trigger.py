# service/event_trigger.py
import asyncio
import logging
import threading
from typing import Any, Callable, Optional
from core.matcher import NamespaceMatcher
from core.pod_watch import WatchSource, decode_event
from model.pod import Unrecognized
from service.archive_service import ArchiveService
from service.task_tracker import TaskTracker
from util.enums import ComponentState

logger = logging.getLogger(__name__)


class EventTrigger:
    """
    Archives a pod's logs when the watch reports it terminating.

    The watch iterator blocks, so it is consumed on a daemon thread; each raw
    event is handed to the event loop, decoded there, and terminations in
    matching namespaces get one tracked archival task each (not awaited).
    The subscription is reopened whenever it ends normally. If opening it or
    reading from it raises, the trigger fails and `on_fatal` is called.
    """

    def __init__(
        self,
        source: WatchSource,
        matcher: NamespaceMatcher,
        service: ArchiveService,
        tracker: TaskTracker,
        on_fatal: Optional[Callable[[BaseException], None]] = None,
        resubscribe_delay: float = 1.0,
    ) -> None:
        self._source = source
        self._matcher = matcher
        self._service = service
        self._tracker = tracker
        self._on_fatal = on_fatal
        self._resubscribe_delay = resubscribe_delay
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self.state = ComponentState.STARTING

    def start(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop or asyncio.get_running_loop()
        self._thread = threading.Thread(target=self._consume, name="pod-watch", daemon=True)
        self.state = ComponentState.RUNNING
        self._thread.start()
        logger.info("watch.start")

    def stop(self) -> None:
        self._stop.set()
        self._source.stop()
        if self.state != ComponentState.FAILED:
            self.state = ComponentState.STOPPED

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    # ---------------- Consumer thread ----------------

    def _consume(self) -> None:
        try:
            while not self._stop.is_set():
                for event in self._source.stream():
                    if self._stop.is_set():
                        break
                    self._loop.call_soon_threadsafe(self.handle_event, event)
                # Subscription ended (server timeout or expired resume point)
                self._stop.wait(self._resubscribe_delay)
        except RuntimeError as e:
            if self._stop.is_set() or self._loop.is_closed():
                # Loop went away during shutdown
                logger.debug("watch.consume.loop_closed err=%s", e)
                return
            self._fail(e)
        except Exception as e:
            if self._stop.is_set():
                return
            self._fail(e)
        logger.info("watch.stopped")

    def _fail(self, exc: BaseException) -> None:
        self.state = ComponentState.FAILED
        logger.critical("watch.failed err=%s", exc, exc_info=exc)
        if self._on_fatal is not None:
            self._on_fatal(exc)

    # ---------------- Event loop side ----------------

    def handle_event(self, event: Any) -> Optional[asyncio.Task]:
        decoded = decode_event(event)
        if isinstance(decoded, Unrecognized):
            logger.warning(
                "watch.event.unrecognized type=%s code=%s reason=%s",
                decoded.type,
                decoded.code,
                decoded.reason,
            )
            return None

        pod = decoded.ref
        logger.debug(
            "watch.event type=%s pod=%s phase=%s deletion=%s",
            decoded.type.value,
            pod,
            decoded.phase,
            decoded.pod.metadata.deletion_timestamp,
        )
        if not decoded.is_termination:
            return None
        if not self._matcher.should_archive(pod.namespace):
            logger.debug("watch.event.filtered pod=%s", pod)
            return None

        logger.info("watch.event.terminating type=%s pod=%s", decoded.type.value, pod)
        return self._tracker.spawn(self._service.archive_pod(pod), name=f"archive:{pod}")
