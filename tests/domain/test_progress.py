from __future__ import annotations

from datetime import timedelta

import pytest

from patchrun.domain.progress import ProgressModel, format_duration, format_eta


def test_eta_is_indeterminate_before_first_sample() -> None:
    progress = ProgressModel(total=4)

    assert progress.eta() is None
    assert format_eta(progress.eta()) == "calculating..."
    assert progress.snapshot().eta is None


def test_eta_uses_mean_of_recent_durations() -> None:
    progress = ProgressModel(total=5)
    progress.advance(2.0)
    progress.advance(4.0)

    assert progress.eta() == timedelta(seconds=9)


def test_history_is_bounded() -> None:
    progress = ProgressModel(total=10, history_size=2)
    for duration in (100.0, 1.0, 3.0):
        progress.advance(duration)

    assert list(progress.history) == [1.0, 3.0]
    assert progress.eta() == timedelta(seconds=14)


def test_eta_is_zero_once_finished() -> None:
    progress = ProgressModel(total=1)
    progress.advance(5.0)

    snapshot = progress.snapshot("A")
    assert snapshot.finished
    assert snapshot.percent == 100
    assert snapshot.eta == timedelta(0)


def test_empty_run_reports_zero_percent() -> None:
    snapshot = ProgressModel(total=0).snapshot()

    assert snapshot.percent == 0
    assert snapshot.finished


@pytest.mark.parametrize(("total", "history"), [(-1, 4), (3, 0)])
def test_invalid_arguments_raise(total: int, history: int) -> None:
    with pytest.raises(ValueError):
        ProgressModel(total=total, history_size=history)


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(0.0, "0s"), (59.9, "59s"), (61.0, "1m 1s"), (3600.0, "60m 0s")],
)
def test_format_duration(seconds: float, expected: str) -> None:
    assert format_duration(seconds) == expected
