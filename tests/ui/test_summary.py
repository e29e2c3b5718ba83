from __future__ import annotations

import io

from patchrun.domain.ledger import ResultsLedger, SkipReason, WarningKind
from patchrun.ui.style import Palette
from patchrun.ui.summary import print_summary, render_summary


def _plain(ledger: ResultsLedger) -> list[str]:
    return render_summary(ledger, palette=Palette(enabled=False))


def test_successful_run_summary() -> None:
    ledger = ResultsLedger(total_duration=75.0)
    ledger.add_success("Theme", 0.5)

    lines = _plain(ledger)

    assert "    ⏱ Total Time: 1m 15s" in lines
    assert "    │ ✓ Theme" in lines
    assert any("PATCHING COMPLETED SUCCESSFULLY" in line for line in lines)
    assert not any("FAILED" in line for line in lines)


def test_failure_details_are_truncated() -> None:
    ledger = ResultsLedger()
    ledger.add_failure(
        "Broken",
        0.1,
        "x" * 60,
        "\n  at first.frame\n\n  at second.frame\n  at third.frame",
    )

    lines = _plain(ledger)

    assert f"    │   Error: {'x' * 40}" in lines
    assert "    │   at first.frame" in lines
    assert "    │   at second.frame" in lines
    assert not any("third.frame" in line for line in lines)
    assert "    ⚠ COMPLETED WITH 1 ERROR(S) ⚠" in lines


def test_warnings_and_skip_overflow() -> None:
    ledger = ResultsLedger()
    ledger.add_warning("Installation", "Device not found: abc", WarningKind.INSTALLATION)
    for number in range(7):
        ledger.add_skipped(f"P{number}", SkipReason.NOT_ENABLED)

    lines = _plain(ledger)

    assert "    │ ⚠ [Installation]" in lines
    assert "    │   Device not found: abc" in lines
    assert "    │ • P4" in lines
    assert "    │ • P5" not in lines
    assert "    │ ... and 2 more" in lines


def test_interrupted_banner() -> None:
    lines = _plain(ResultsLedger(interrupted=True))

    assert "    ⚠ INTERRUPTED, PARTIAL RESULTS ⚠" in lines


def test_print_summary_is_uncoloured_for_plain_streams() -> None:
    stream = io.StringIO()
    ledger = ResultsLedger()
    ledger.add_success("Theme", 0.5)

    print_summary(ledger, stream)

    assert "\033[" not in stream.getvalue()
    assert "★ PATCHING SUMMARY ★" in stream.getvalue()
