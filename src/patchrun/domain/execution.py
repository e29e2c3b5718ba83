"""Consumption of the engine's outcome stream into the ledger and progress model."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from patchrun.domain.ports.engine import OutcomeStream
from patchrun.domain.progress import DEFAULT_HISTORY_SIZE, ProgressModel

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator, Sequence

    from patchrun.domain.ledger import ResultsLedger
    from patchrun.domain.progress import ProgressSnapshot
    from patchrun.domain.types import Patch, PatchOutcome

log = getLogger(__name__)


class ProgressRenderer(Protocol):
    """Projection of progress snapshots onto some display."""

    def start(self, snapshot: ProgressSnapshot) -> None: ...

    def update(self, snapshot: ProgressSnapshot) -> None: ...

    def finish(self, snapshot: ProgressSnapshot) -> None: ...


class NullProgressRenderer:
    """Renderer for headless runs and tests."""

    def start(self, snapshot: ProgressSnapshot) -> None:
        _ = snapshot

    def update(self, snapshot: ProgressSnapshot) -> None:
        _ = snapshot

    def finish(self, snapshot: ProgressSnapshot) -> None:
        _ = snapshot


@dataclass(slots=True)
class IteratorOutcomeStream:
    """Adapt a plain iterable (for example a generator) to ``OutcomeStream``."""

    source: Iterable[PatchOutcome]
    _iterator: Iterator[PatchOutcome] = field(init=False)

    def __post_init__(self) -> None:
        self._iterator = iter(self.source)

    def __iter__(self) -> Iterator[PatchOutcome]:
        return self

    def __next__(self) -> PatchOutcome:
        return next(self._iterator)

    def cancel(self) -> Iterable[PatchOutcome]:
        close = getattr(self._iterator, "close", None)
        if close is not None:
            close()
        return ()


@dataclass(frozen=True, slots=True)
class ExecutionReport:
    total: int
    processed: int
    elapsed: float
    interrupted: bool = False


def _as_stream(stream: OutcomeStream | Iterable[PatchOutcome]) -> OutcomeStream:
    if isinstance(stream, OutcomeStream):
        return stream
    return IteratorOutcomeStream(stream)


@dataclass(slots=True)
class _Fold:
    """Folds one outcome at a time; ``resume`` finishes a fold cut short by Ctrl+C."""

    ledger: ResultsLedger
    progress: ProgressModel
    renderer: ProgressRenderer
    clock: Callable[[], float]
    last_tick: float
    pending: PatchOutcome | None = None
    pending_elapsed: float = 0.0
    recorded_target: int = 0
    progress_target: int = 0

    def __call__(self, outcome: PatchOutcome) -> None:
        self.recorded_target = self.ledger.processed + 1
        self.progress_target = self.progress.current + 1
        self.pending_elapsed = outcome.elapsed or 0.0
        self.pending = outcome
        now = self.clock()
        if outcome.elapsed is None:
            self.pending_elapsed = now - self.last_tick
        self.last_tick = now
        self.resume()

    def resume(self) -> None:
        outcome = self.pending
        if outcome is None:
            return
        elapsed = self.pending_elapsed
        # each step checks its target so a repeated call never counts twice
        if self.ledger.processed < self.recorded_target:
            self._record(outcome, elapsed)
        if self.progress.current < self.progress_target:
            self.progress.advance(elapsed)
        self.pending = None
        self.renderer.update(self.progress.snapshot(outcome.patch))

    def _record(self, outcome: PatchOutcome, elapsed: float) -> None:
        if outcome.error is None:
            self.ledger.add_success(outcome.patch, elapsed)
            log.debug("%s succeeded in %.3fs", outcome.patch, elapsed)
        else:
            self.ledger.add_failure(
                outcome.patch,
                elapsed,
                outcome.error.message or "Unknown error",
                outcome.error.trace,
            )
            log.debug("%s failed: %s", outcome.patch, outcome.error.message)


def execute_patches(
    patches: Sequence[Patch],
    stream: OutcomeStream | Iterable[PatchOutcome],
    *,
    ledger: ResultsLedger,
    renderer: ProgressRenderer | None = None,
    clock: Callable[[], float] = time.monotonic,
    history_size: int = DEFAULT_HISTORY_SIZE,
) -> ExecutionReport:
    """Fold every outcome of ``stream`` into ``ledger``, in stream order.

    Failing patches are recorded and consumption continues. Exceptions raised by
    the stream itself (``EngineError``) propagate. On ``KeyboardInterrupt`` the
    stream is cancelled, whatever the engine had already emitted is still
    recorded and the ledger is flagged as interrupted.
    """

    active_stream = _as_stream(stream)
    active_renderer = renderer or NullProgressRenderer()
    progress = ProgressModel(total=len(patches), history_size=history_size)
    started = clock()
    fold = _Fold(ledger, progress, active_renderer, clock, started)
    interrupted = False

    active_renderer.start(progress.snapshot())
    try:
        for outcome in active_stream:
            fold(outcome)
    except KeyboardInterrupt:
        interrupted = True
        fold.resume()
        log.warning("Interrupted, waiting for the engine to stop")
        for outcome in active_stream.cancel():
            fold(outcome)
        ledger.interrupted = True
    finally:
        active_renderer.finish(progress.snapshot())

    return ExecutionReport(
        total=progress.total,
        processed=progress.current,
        elapsed=clock() - started,
        interrupted=interrupted,
    )


__all__ = [
    "ExecutionReport",
    "IteratorOutcomeStream",
    "NullProgressRenderer",
    "ProgressRenderer",
    "execute_patches",
]
