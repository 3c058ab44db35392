import os
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import pytest

from model.archive import ArchiverConfig
from model.pod import PodRef


@pytest.fixture
def log_root(tmp_path: Path) -> Path:
    root = tmp_path / "pods"
    root.mkdir()
    return root


@pytest.fixture
def backup_root(tmp_path: Path) -> Path:
    return tmp_path / "backup"


@pytest.fixture
def make_config(log_root: Path, backup_root: Path) -> Callable[..., ArchiverConfig]:
    def _make(**overrides: Any) -> ArchiverConfig:
        values: Dict[str, Any] = {
            "log_root": str(log_root),
            "backup_root": str(backup_root),
            "patterns": ("*",),
            "remove_after_copy": False,
            "staleness_seconds": 60.0,
            "sweep_interval_seconds": 3600.0,
            "shutdown_grace_seconds": 1.0,
        }
        values.update(overrides)
        return ArchiverConfig(**values)

    return _make


@pytest.fixture
def make_log(log_root: Path) -> Callable[..., Path]:
    """Write a file under the log root with its mtime `age` seconds in the past."""

    def _make(rel_path: str, content: bytes = b"line 1\nline 2\n", age: float = 0.0) -> Path:
        path = log_root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        mtime = int(time.time() - age)
        os.utime(path, (mtime, mtime))
        return path

    return _make


def _pod_event(
    etype: str,
    namespace: str,
    name: str,
    *,
    deleting: bool = False,
    resource_version: str = "100",
    phase: str = "Running",
) -> Dict[str, Any]:
    metadata: Dict[str, Any] = {
        "name": name,
        "namespace": namespace,
        "resourceVersion": resource_version,
    }
    if deleting:
        metadata["deletionTimestamp"] = "2024-05-01T10:00:00Z"
    raw = {
        "kind": "Pod",
        "apiVersion": "v1",
        "metadata": metadata,
        "status": {"phase": phase},
    }
    return {"type": etype, "object": raw, "raw_object": raw}


@pytest.fixture
def pod_event() -> Callable[..., Dict[str, Any]]:
    return _pod_event


class FakeWatchSource:
    """
    First subscription yields `events` (or raises `error`), then blocks until stop().
    Later subscriptions just block until stop().
    """

    def __init__(self, events: Iterable[Any] = (), error: Optional[BaseException] = None) -> None:
        self._events = list(events)
        self._error = error
        self.subscriptions = 0
        self.stopped = threading.Event()

    def stream(self):
        self.subscriptions += 1
        if self.subscriptions == 1:
            if self._error is not None:
                raise self._error
            yield from self._events
        self.stopped.wait(5)

    def stop(self) -> None:
        self.stopped.set()


@pytest.fixture
def fake_source() -> Callable[..., FakeWatchSource]:
    return FakeWatchSource


class RecordingService:
    def __init__(self) -> None:
        self.pods: List[PodRef] = []

    async def archive_pod(self, pod: PodRef) -> list:
        self.pods.append(pod)
        return []


@pytest.fixture
def recording_service() -> RecordingService:
    return RecordingService()
