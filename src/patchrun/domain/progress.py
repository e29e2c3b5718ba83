"""Progress counters and a rolling-average ETA estimate."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import timedelta
from statistics import fmean
from typing import Final

DEFAULT_HISTORY_SIZE: Final[int] = 64


@dataclass(frozen=True, slots=True)
class ProgressSnapshot:
    current: int
    total: int
    item: str | None
    eta: timedelta | None

    @property
    def finished(self) -> bool:
        return self.current >= self.total

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 0
        return (self.current * 100) // self.total


@dataclass(slots=True)
class ProgressModel:
    """Current/total counters plus a bounded history of per-item durations."""

    total: int
    history_size: int = DEFAULT_HISTORY_SIZE
    current: int = 0
    history: deque[float] = field(init=False)

    def __post_init__(self) -> None:
        if self.total < 0:
            raise ValueError("Progress total must be non-negative")
        if self.history_size < 1:
            raise ValueError("Progress history must hold at least one sample")
        self.history = deque(maxlen=self.history_size)

    def advance(self, duration: float) -> None:
        """Count one processed item that took ``duration`` seconds."""

        self.current += 1
        self.history.append(max(duration, 0.0))

    def eta(self) -> timedelta | None:
        """Estimated time remaining, ``None`` while there is nothing to average."""

        if not self.history:
            return None
        remaining = max(self.total - self.current, 0)
        return timedelta(seconds=fmean(self.history) * remaining)

    def snapshot(self, item: str | None = None) -> ProgressSnapshot:
        return ProgressSnapshot(current=self.current, total=self.total, item=item, eta=self.eta())


def format_eta(eta: timedelta | None) -> str:
    if eta is None:
        return "calculating..."
    return format_duration(eta.total_seconds())


def format_duration(seconds: float) -> str:
    whole = int(seconds)
    minutes, secs = divmod(whole, 60)
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


__all__ = [
    "DEFAULT_HISTORY_SIZE",
    "ProgressModel",
    "ProgressSnapshot",
    "format_duration",
    "format_eta",
]
