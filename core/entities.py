# core/entities.py
from dataclasses import dataclass, field
from typing import List
from model.pod import PodRef
from util.errors import FileArchiveError


@dataclass(frozen=True)
class CandidateFile:
    path: str
    mtime: float  # seconds since epoch
    size: int
    mode: int


@dataclass
class ArchiveResult:
    """
    Outcome of one engine run over one pod log directory.
    `skipped` counts eligible files whose destination already existed.
    """

    directory: str
    pod: PodRef
    copied: int = 0
    skipped: int = 0
    removed: int = 0
    errors: List[FileArchiveError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass
class ArchiveStats:
    """Running totals shown by the health probe. Mutated on the event loop only."""

    runs: int = 0
    copied: int = 0
    skipped: int = 0
    removed: int = 0
    errors: int = 0
    sweeps: int = 0
    events: int = 0
    last_sweep_at: float | None = None

    def add(self, result: ArchiveResult) -> None:
        self.runs += 1
        self.copied += result.copied
        self.skipped += result.skipped
        self.removed += result.removed
        self.errors += len(result.errors)
