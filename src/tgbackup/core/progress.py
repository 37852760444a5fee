from __future__ import annotations

import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional

from .transport import BackupObserver


@dataclass
class ProgressSnapshot:
    completed: int
    failed: int
    skipped: int
    total: int
    elapsed_seconds: float
    eta_seconds: Optional[float]
    label: Optional[str] = None
    outcome: Optional[str] = None  # "uploaded" | "failed" | "skipped"
    detail: Optional[str] = None

    @property
    def processed(self) -> int:
        return self.completed + self.failed + self.skipped

    @property
    def percent(self) -> float:
        if self.total <= 0:
            return 100.0
        return min(100.0, self.processed * 100.0 / self.total)

    @property
    def eta_text(self) -> str:
        return format_eta(self.eta_seconds)


@dataclass
class BackupResult:
    success: bool
    uploaded: int
    failed: int
    skipped: int
    total: int
    elapsed_seconds: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def format_eta(seconds: Optional[float]) -> str:
    if seconds is None:
        return "calculating"
    seconds = int(round(seconds))
    if seconds < 60:
        return f"{seconds}s"
    minutes, secs = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m {secs}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m"


class ProgressTracker:
    """Running counters for one backup run.

    A snapshot goes to the observer after every outcome. ETA extrapolates the
    average time per completed unit over the remaining ones and stays undefined
    until the first unit completes.
    """

    def __init__(
        self,
        total: int,
        observer: Optional[BackupObserver] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.total = total
        self.completed = 0
        self.failed = 0
        self.skipped = 0
        self.observer = observer or BackupObserver()
        self._clock = clock
        self.start_time = clock()

    @property
    def remaining(self) -> int:
        return max(self.total - self.completed - self.failed - self.skipped, 0)

    def elapsed(self) -> float:
        return self._clock() - self.start_time

    def eta_seconds(self) -> Optional[float]:
        if self.completed == 0:
            return None
        return self.elapsed() / self.completed * self.remaining

    def snapshot(
        self,
        label: Optional[str] = None,
        outcome: Optional[str] = None,
        detail: Optional[str] = None,
    ) -> ProgressSnapshot:
        return ProgressSnapshot(
            completed=self.completed,
            failed=self.failed,
            skipped=self.skipped,
            total=self.total,
            elapsed_seconds=self.elapsed(),
            eta_seconds=self.eta_seconds(),
            label=label,
            outcome=outcome,
            detail=detail,
        )

    def _emit(self, label: str, outcome: str, detail: Optional[str]) -> ProgressSnapshot:
        snap = self.snapshot(label, outcome, detail)
        self.observer.on_progress(snap)
        return snap

    def record_success(self, label: str, detail: Optional[str] = None) -> ProgressSnapshot:
        self.completed += 1
        return self._emit(label, "uploaded", detail)

    def record_failure(self, label: str, error: Optional[str] = None) -> ProgressSnapshot:
        self.failed += 1
        return self._emit(label, "failed", error)

    def record_skip(self, label: str, reason: Optional[str] = None) -> ProgressSnapshot:
        self.skipped += 1
        return self._emit(label, "skipped", reason)

    def result(self) -> BackupResult:
        return BackupResult(
            success=self.failed == 0,
            uploaded=self.completed,
            failed=self.failed,
            skipped=self.skipped,
            total=self.total,
            elapsed_seconds=self.elapsed(),
        )
