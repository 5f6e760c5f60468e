"""Render pass progress accounting."""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .errors import ProgrammingError

log = logging.getLogger(__name__)

StatusObserver = Callable[[str], None]


@dataclass(frozen=True)
class ProgressSnapshot:
    """Point-in-time view of a pass's counters."""

    total: int
    completed: int
    finished: bool
    elapsed_seconds: Optional[int]
    status: str


def format_in_progress(completed: int, total: int) -> str:
    return f"Rendering ({completed} of {total})"


def format_finished(completed: int, total: int, elapsed: int) -> str:
    return f"Finished ({completed} of {total}) in {elapsed}secs"


class ProgressTracker:
    """
    Counts dispatched and completed tile jobs for the current render pass.

    total is bumped when a job goes in flight, completed when its outcome is
    known (success or failure). Every completion emits a status string to the
    optional observer; the one that brings completed up to total emits the
    "Finished" form with whole elapsed seconds.
    """

    def __init__(
        self,
        observer: Optional[StatusObserver] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._observer = observer
        self._clock = clock
        self._lock = threading.Lock()
        self._total = 0
        self._completed = 0
        self._start_time = clock()
        self._elapsed: Optional[int] = None
        self._status = format_in_progress(0, 0)

    @property
    def total(self) -> int:
        return self._total

    @property
    def completed(self) -> int:
        return self._completed

    @property
    def start_time(self) -> float:
        return self._start_time

    @property
    def status(self) -> str:
        """Last emitted status string."""
        return self._status

    @property
    def finished(self) -> bool:
        return self._elapsed is not None

    def reset(self) -> None:
        """Zero both counters and record the pass start time."""
        with self._lock:
            self._total = 0
            self._completed = 0
            self._start_time = self._clock()
            self._elapsed = None
            self._status = format_in_progress(0, 0)

    def note_dispatch(self) -> None:
        """Count one more job sent to an endpoint."""
        with self._lock:
            self._total += 1

    def note_completion(self) -> str:
        """Count one finished job and emit the resulting status."""
        with self._lock:
            if self._completed >= self._total:
                raise ProgrammingError(
                    f"Completion noted with {self._completed} of {self._total} "
                    "jobs already accounted for"
                )
            self._completed += 1
            if self._completed == self._total:
                self._elapsed = math.floor(self._clock()) - math.floor(
                    self._start_time
                )
                status = format_finished(self._completed, self._total, self._elapsed)
            else:
                status = format_in_progress(self._completed, self._total)
            self._status = status

        self._emit(status)
        return status

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            return ProgressSnapshot(
                total=self._total,
                completed=self._completed,
                finished=self._elapsed is not None,
                elapsed_seconds=self._elapsed,
                status=self._status,
            )

    def _emit(self, status: str) -> None:
        if self._observer is None:
            return
        try:
            self._observer(status)
        except Exception:
            # Observer failures must not break accounting
            log.exception(f"Progress observer failed on status {status!r}")
