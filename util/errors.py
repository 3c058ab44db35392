# util/errors.py
from typing import Optional
from util.enums import ArchiveStage


class ArchiverError(Exception):
    # Flow: base for everything the archiver raises or collects.
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class FileArchiveError(ArchiverError):
    """A single file (or directory walk) failed at `stage`; siblings carry on."""

    def __init__(
        self,
        path: str,
        stage: ArchiveStage,
        cause: Optional[BaseException] = None,
    ) -> None:
        detail = f"{type(cause).__name__}: {cause}" if cause is not None else "failed"
        super().__init__(f"{stage.value} {path}: {detail}")
        self.path = path
        self.stage = stage
        self.cause = cause


class ClusterUnavailableError(ArchiverError):
    # Fatal at startup: no config, no API, or the pod list probe was refused.
    pass
