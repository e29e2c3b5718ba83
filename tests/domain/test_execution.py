from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import pytest

from patchrun.domain.errors import EngineError
from patchrun.domain.execution import IteratorOutcomeStream, execute_patches
from patchrun.domain.ledger import ResultsLedger
from patchrun.domain.progress import ProgressSnapshot
from patchrun.domain.types import PatchError, PatchOutcome
from tests.support.fakes import FakeOutcomeStream, StepClock, make_catalog, make_patch

if TYPE_CHECKING:
    from collections.abc import Iterator


@dataclass
class _RecordingRenderer:
    started: list[ProgressSnapshot] = field(default_factory=list)
    updates: list[ProgressSnapshot] = field(default_factory=list)
    finished: list[ProgressSnapshot] = field(default_factory=list)

    def start(self, snapshot: ProgressSnapshot) -> None:
        self.started.append(snapshot)

    def update(self, snapshot: ProgressSnapshot) -> None:
        self.updates.append(snapshot)

    def finish(self, snapshot: ProgressSnapshot) -> None:
        self.finished.append(snapshot)


PATCHES = make_catalog(make_patch("A"), make_patch("B"), make_patch("C"))


def _outcomes() -> list[PatchOutcome]:
    return [
        PatchOutcome("A", elapsed=1.0),
        PatchOutcome("B", error=PatchError("boom", "at B\nat run\nat main"), elapsed=2.0),
        PatchOutcome("C", elapsed=3.0),
    ]


def test_outcomes_are_folded_in_stream_order() -> None:
    ledger = ResultsLedger()
    renderer = _RecordingRenderer()

    report = execute_patches(
        PATCHES, FakeOutcomeStream(_outcomes()), ledger=ledger, renderer=renderer
    )

    assert [entry.name for entry in ledger.succeeded] == ["A", "C"]
    assert [(entry.name, entry.message) for entry in ledger.failed] == [("B", "boom")]
    assert ledger.failed[0].trace.startswith("at B")
    assert report.processed == 3
    assert report.interrupted is False
    assert ledger.processed == report.processed
    assert ledger.failed_overall


def test_renderer_sees_every_step() -> None:
    renderer = _RecordingRenderer()

    execute_patches(
        PATCHES, FakeOutcomeStream(_outcomes()), ledger=ResultsLedger(), renderer=renderer
    )

    assert renderer.started[0].current == 0
    assert renderer.started[0].eta is None
    assert [snapshot.item for snapshot in renderer.updates] == ["A", "B", "C"]
    assert [snapshot.current for snapshot in renderer.updates] == [1, 2, 3]
    assert renderer.finished[-1].finished


def test_missing_elapsed_is_measured_by_the_clock() -> None:
    ledger = ResultsLedger()
    outcomes = [PatchOutcome("A"), PatchOutcome("B")]

    execute_patches(PATCHES[:2], outcomes, ledger=ledger, clock=StepClock(step=0.5))

    assert [entry.elapsed for entry in ledger.succeeded] == [0.5, 0.5]


def test_plain_iterables_are_accepted() -> None:
    ledger = ResultsLedger()

    report = execute_patches(PATCHES, iter(_outcomes()), ledger=ledger)

    assert report.processed == 3


def test_empty_failure_message_is_replaced() -> None:
    ledger = ResultsLedger()

    execute_patches(PATCHES[:1], [PatchOutcome("A", error=PatchError(""))], ledger=ledger)

    assert ledger.failed[0].message == "Unknown error"


def test_interrupt_keeps_emitted_outcomes() -> None:
    ledger = ResultsLedger()
    renderer = _RecordingRenderer()
    stream = FakeOutcomeStream(
        _outcomes(),
        interrupt_after=1,
        pending_on_cancel=[PatchOutcome("B", elapsed=1.0)],
    )

    report = execute_patches(PATCHES, stream, ledger=ledger, renderer=renderer)

    assert stream.cancelled
    assert report.interrupted
    assert ledger.interrupted
    assert [entry.name for entry in ledger.succeeded] == ["A", "B"]
    assert report.processed == 2
    assert len(renderer.finished) == 1


def test_interrupt_while_rendering_counts_the_outcome_once() -> None:
    class _InterruptedRenderer(_RecordingRenderer):
        def update(self, snapshot: ProgressSnapshot) -> None:
            super().update(snapshot)
            if len(self.updates) == 1:
                raise KeyboardInterrupt

    ledger = ResultsLedger()
    stream = FakeOutcomeStream(_outcomes(), pending_on_cancel=[PatchOutcome("B", elapsed=1.0)])

    report = execute_patches(PATCHES, stream, ledger=ledger, renderer=_InterruptedRenderer())

    assert report.interrupted
    assert [entry.name for entry in ledger.succeeded] == ["A", "B"]
    assert report.processed == ledger.processed == 2


def test_interrupt_mid_fold_still_records_the_outcome() -> None:
    calls: list[int] = []

    def clock() -> float:
        calls.append(1)
        if len(calls) == 2:
            raise KeyboardInterrupt
        return float(len(calls))

    ledger = ResultsLedger()
    stream = FakeOutcomeStream([PatchOutcome("A"), PatchOutcome("C", elapsed=1.0)])

    report = execute_patches(PATCHES, stream, ledger=ledger, clock=clock)

    assert report.interrupted
    assert [entry.name for entry in ledger.succeeded] == ["A"]
    assert report.processed == ledger.processed == 1
    assert stream.cancelled


def test_engine_error_propagates_and_closes_renderer() -> None:
    def failing() -> Iterator[PatchOutcome]:
        yield PatchOutcome("A", elapsed=0.1)
        raise EngineError("engine crashed")

    ledger = ResultsLedger()
    renderer = _RecordingRenderer()

    with pytest.raises(EngineError):
        execute_patches(PATCHES, failing(), ledger=ledger, renderer=renderer)

    assert [entry.name for entry in ledger.succeeded] == ["A"]
    assert len(renderer.finished) == 1


def test_iterator_stream_cancel_closes_generator() -> None:
    closed: list[bool] = []

    def source() -> Iterator[PatchOutcome]:
        try:
            yield PatchOutcome("A")
            yield PatchOutcome("B")
        finally:
            closed.append(True)

    stream = IteratorOutcomeStream(source())
    next(stream)

    assert list(stream.cancel()) == []
    assert closed == [True]
