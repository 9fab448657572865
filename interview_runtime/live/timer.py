from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

from interview_runtime.core.config import LOW_TIME_WARNING_SEC

Clock = Callable[[], float]


def format_countdown(remaining_ms: int) -> str:
    minutes = remaining_ms // 60000
    seconds = (remaining_ms % 60000) // 1000
    return f"{minutes}:{seconds:02d}"


def format_elapsed(total_seconds: int) -> str:
    total_seconds = max(0, int(total_seconds))
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"


@dataclass(frozen=True)
class TimerReading:
    elapsed_ms: int
    remaining_ms: int
    allocated_ms: int
    low_time: bool
    overrun: bool
    percent: float

    @property
    def display(self) -> str:
        return format_countdown(self.remaining_ms)

    def to_dict(self) -> dict:
        return {
            "elapsed_ms": self.elapsed_ms,
            "remaining_ms": self.remaining_ms,
            "allocated_ms": self.allocated_ms,
            "low_time": self.low_time,
            "overrun": self.overrun,
            "percent": self.percent,
            "display": self.display,
        }


class SectionTimer:
    """
    Countdown for the active section.

    Elapsed time is always recomputed from the anchor, so a reader that
    polls late (throttled tick, backgrounded client) still sees the right
    value on its next read. Running out of time only raises the flags; it
    never blocks scoring or forces a transition.
    """

    def __init__(
        self,
        allocated_minutes: int,
        clock: Clock = time.time,
        warning_threshold_sec: int = LOW_TIME_WARNING_SEC,
    ):
        self._clock = clock
        self._warning_ms = max(0, int(warning_threshold_sec)) * 1000
        self.allocated_minutes = max(0, int(allocated_minutes))
        self.anchor_ts: float = self._clock()

    def anchor(self, allocated_minutes: int | None = None, at: float | None = None) -> None:
        if allocated_minutes is not None:
            self.allocated_minutes = max(0, int(allocated_minutes))
        self.anchor_ts = float(at) if at is not None else self._clock()

    def read(self) -> TimerReading:
        allocated_ms = self.allocated_minutes * 60000
        # a clock that steps backwards must not yield negative elapsed time
        elapsed_ms = max(0, int((self._clock() - self.anchor_ts) * 1000))
        remaining_ms = max(0, allocated_ms - elapsed_ms)
        percent = 100.0 if allocated_ms <= 0 else min(100.0, round(elapsed_ms / allocated_ms * 100.0, 2))
        return TimerReading(
            elapsed_ms=elapsed_ms,
            remaining_ms=remaining_ms,
            allocated_ms=allocated_ms,
            low_time=remaining_ms < self._warning_ms,
            overrun=elapsed_ms > allocated_ms,
            percent=percent,
        )
