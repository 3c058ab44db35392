# model/archive.py
import os
from typing import Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field
from util.constants import LogFiles
from util.enums import NamingMode


class ArchiverConfig(BaseModel):
    """
    Immutable runtime configuration.
    Built once from settings before any task starts, then handed to every component.
    """

    model_config = ConfigDict(frozen=True)

    log_root: str
    backup_root: str
    patterns: Tuple[str, ...] = ("*",)
    remove_after_copy: bool = False
    naming_mode: NamingMode = NamingMode.TIMESTAMP
    sweep_interval_seconds: float = Field(default=60.0, gt=0)
    staleness_seconds: float = Field(default=60.0, ge=0)
    shutdown_grace_seconds: float = Field(default=10.0, ge=0)
    watch_timeout_seconds: int = Field(default=300, gt=0)

    @classmethod
    def from_settings(cls, s) -> "ArchiverConfig":
        return cls(
            log_root=s.LOG_ROOT,
            backup_root=s.BACKUP_ROOT,
            patterns=s.patterns,
            remove_after_copy=s.REMOVE_AFTER_COPY,
            naming_mode=s.NAMING_MODE,
            sweep_interval_seconds=s.SWEEP_INTERVAL_SECONDS,
            staleness_seconds=s.STALENESS_SECONDS,
            shutdown_grace_seconds=s.SHUTDOWN_GRACE_SECONDS,
            watch_timeout_seconds=s.WATCH_TIMEOUT_SECONDS,
        )


class ArchivePolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    suffixes: Tuple[str, ...]
    infixes: Tuple[str, ...] = ()
    min_age_seconds: Optional[float] = None
    # Skip empty or unreadable files (mid-write, mid-rotation)
    require_readable: bool = False

    @classmethod
    def for_sweep(cls, staleness_seconds: float) -> "ArchivePolicy":
        return cls(
            name="sweep",
            suffixes=LogFiles.SWEEP_SUFFIXES,
            min_age_seconds=staleness_seconds,
            require_readable=True,
        )

    @classmethod
    def for_event(cls) -> "ArchivePolicy":
        # A terminating pod's files are final: no age or emptiness guard.
        return cls(
            name="event",
            suffixes=LogFiles.EVENT_SUFFIXES,
            infixes=LogFiles.EVENT_INFIXES,
        )

    def accepts_name(self, path: str) -> bool:
        base = os.path.basename(path)
        return base.endswith(self.suffixes) or any(i in base for i in self.infixes)
