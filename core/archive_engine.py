# core/archive_engine.py
import contextlib
import logging
import os
import shutil
import stat
import time
from typing import Callable, Optional
from core.entities import ArchiveResult, CandidateFile
from core.naming import DestinationNamer, partial_path
from model.archive import ArchivePolicy, ArchiverConfig
from model.pod import PodRef
from util.enums import ArchiveStage, NamingMode
from util.errors import FileArchiveError

logger = logging.getLogger(__name__)

COPY_BUFSIZE = 1024 * 1024
# utime/stat round trip through nanoseconds
MTIME_TOLERANCE = 1e-3


class ArchiveEngine:
    """
    Copies the eligible files of one pod log directory into the backup tree.

    Flow per regular file (directories are walked, never copied):
      1. name / age / readability filter from the ArchivePolicy
      2. destination from DestinationNamer
      3. destination already exists -> skip (the only dedup mechanism)
      4. makedirs for the destination directory
      5. stream into a hidden temp sibling, copy mode, set mtime to the
         source's, fsync, then rename onto the destination
      6. optionally remove the source, only after 5 succeeded; in mtime mode a
         matching existing backup also counts as 5 having succeeded

    Failures are collected per file on the ArchiveResult; nothing aborts the walk.
    Blocking I/O throughout: callers on the event loop go through asyncio.to_thread.
    """

    def __init__(
        self,
        config: ArchiverConfig,
        namer: Optional[DestinationNamer] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._remove_after_copy = config.remove_after_copy
        self._clock = clock
        self._namer = namer or DestinationNamer(
            config.backup_root, config.naming_mode, clock=clock
        )

    @property
    def namer(self) -> DestinationNamer:
        return self._namer

    def archive(self, directory: str, pod: PodRef, policy: ArchivePolicy) -> ArchiveResult:
        result = ArchiveResult(directory=directory, pod=pod)

        def _on_walk_error(err: OSError) -> None:
            path = err.filename or directory
            logger.error("archive.walk.error dir=%s path=%s err=%s", directory, path, err)
            result.errors.append(FileArchiveError(path, ArchiveStage.WALK, err))

        for root, _dirs, files in os.walk(directory, onerror=_on_walk_error):
            for name in files:
                self._archive_file(os.path.join(root, name), pod, policy, result)

        logger.info(
            "archive.dir.done dir=%s pod=%s policy=%s copied=%d skipped=%d removed=%d errors=%d",
            directory,
            pod,
            policy.name,
            result.copied,
            result.skipped,
            result.removed,
            len(result.errors),
        )
        return result

    # ---------------- Per-file pipeline ----------------

    def _archive_file(
        self, path: str, pod: PodRef, policy: ArchivePolicy, result: ArchiveResult
    ) -> None:
        if not policy.accepts_name(path):
            return

        try:
            st = os.stat(path)
        except OSError as e:
            # Vanished between listing and stat (rotation, earlier trigger removed it)
            self._fail(result, path, ArchiveStage.STAT, e)
            return
        if not stat.S_ISREG(st.st_mode):
            return

        candidate = CandidateFile(
            path=path, mtime=st.st_mtime, size=st.st_size, mode=stat.S_IMODE(st.st_mode)
        )
        if not self._eligible(candidate, policy):
            return

        dst = self._namer.destination(pod, candidate)
        if os.path.lexists(dst):
            logger.info("archive.skip.exists src=%s dst=%s", path, dst)
            result.skipped += 1
            # Rename landed but the remove did not (crash or earlier REMOVE error)
            if self._remove_after_copy and self._is_backup_of(dst, candidate):
                self._remove_source(path, result)
            return

        try:
            os.makedirs(os.path.dirname(dst), exist_ok=True)
        except OSError as e:
            self._fail(result, path, ArchiveStage.MKDIR, e)
            return

        try:
            self._copy(candidate, dst)
        except OSError as e:
            self._fail(result, path, ArchiveStage.COPY, e)
            return
        result.copied += 1
        logger.info("archive.copy.ok src=%s dst=%s bytes=%d", path, dst, candidate.size)

        if self._remove_after_copy:
            self._remove_source(path, result)

    def _remove_source(self, path: str, result: ArchiveResult) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            # A concurrent trigger finished the same move first
            logger.debug("archive.remove.gone src=%s", path)
            return
        except OSError as e:
            self._fail(result, path, ArchiveStage.REMOVE, e)
            return
        result.removed += 1
        logger.info("archive.remove.ok src=%s", path)

    def _is_backup_of(self, dst: str, candidate: CandidateFile) -> bool:
        if self._namer.mode != NamingMode.MTIME:
            return False
        try:
            st = os.stat(dst)
        except OSError:
            return False
        return (
            stat.S_ISREG(st.st_mode)
            and st.st_size == candidate.size
            and abs(st.st_mtime - candidate.mtime) < MTIME_TOLERANCE
        )

    def _eligible(self, candidate: CandidateFile, policy: ArchivePolicy) -> bool:
        if policy.min_age_seconds is not None:
            age = self._clock() - candidate.mtime
            if age <= policy.min_age_seconds:
                logger.debug("archive.skip.young src=%s age=%.1f", candidate.path, age)
                return False

        if policy.require_readable:
            if candidate.size <= 0:
                logger.debug("archive.skip.empty src=%s", candidate.path)
                return False
            try:
                with open(candidate.path, "rb"):
                    pass
            except OSError as e:
                logger.debug("archive.skip.unreadable src=%s err=%s", candidate.path, e)
                return False
        return True

    def _copy(self, candidate: CandidateFile, dst: str) -> None:
        tmp = partial_path(dst)
        try:
            with open(candidate.path, "rb") as fsrc, open(tmp, "xb") as fdst:
                shutil.copyfileobj(fsrc, fdst, COPY_BUFSIZE)
                fdst.flush()
                os.fsync(fdst.fileno())
            os.chmod(tmp, candidate.mode)
            os.utime(tmp, (self._clock(), candidate.mtime))
            os.replace(tmp, dst)
        except BaseException:
            with contextlib.suppress(OSError):
                os.remove(tmp)
            raise

    @staticmethod
    def _fail(result: ArchiveResult, path: str, stage: ArchiveStage, err: OSError) -> None:
        logger.error("archive.%s.error src=%s err=%s", stage.value, path, err)
        result.errors.append(FileArchiveError(path, stage, err))
