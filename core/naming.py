# core/naming.py
import os
import time
from typing import Callable
from uuid import uuid4
from core.entities import CandidateFile
from model.pod import PodRef
from util.constants import PARTIAL_PREFIX, PARTIAL_SUFFIX, TIMESTAMP_FORMAT
from util.enums import NamingMode


class DestinationNamer:
    """
    {backup_root}/{namespace}/{pod}/{key}-{basename}

    key is a one-second timestamp:
      - TIMESTAMP: wall clock at copy time. Two triggers a second apart both
        copy the same file; duplicates are accepted over missing backups.
      - MTIME: the source's modification time. An unchanged file maps to the
        same destination from every trigger, so the existence check dedups it.
    """

    def __init__(
        self,
        backup_root: str,
        mode: NamingMode = NamingMode.TIMESTAMP,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._root = backup_root
        self._mode = mode
        self._clock = clock

    @property
    def mode(self) -> NamingMode:
        return self._mode

    def pod_dir(self, pod: PodRef) -> str:
        return os.path.join(self._root, pod.namespace, pod.name)

    def key(self, source: CandidateFile) -> str:
        ts = source.mtime if self._mode == NamingMode.MTIME else self._clock()
        return time.strftime(TIMESTAMP_FORMAT, time.localtime(ts))

    def destination(self, pod: PodRef, source: CandidateFile) -> str:
        name = f"{self.key(source)}-{os.path.basename(source.path)}"
        return os.path.join(self.pod_dir(pod), name)


def partial_path(destination: str) -> str:
    # Hidden sibling in the same directory so the final rename stays on one
    # filesystem; unique per attempt so racing triggers never share a temp file.
    head, tail = os.path.split(destination)
    return os.path.join(head, f"{PARTIAL_PREFIX}{tail}.{uuid4().hex[:12]}{PARTIAL_SUFFIX}")
