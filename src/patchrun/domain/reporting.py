"""Read-only summary of a finished (or interrupted) run."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from patchrun.domain.ledger import ResultsLedger

SKIPPED_PREVIEW: Final[int] = 5


class RunStatus(StrEnum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    INTERRUPTED = "interrupted"


@dataclass(frozen=True, slots=True)
class RunSummary:
    status: RunStatus
    total_duration: float
    succeeded: int
    failed: int
    warnings: int
    skipped: int
    skipped_preview: tuple[str, ...]

    @property
    def skipped_remainder(self) -> int:
        return self.skipped - len(self.skipped_preview)

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0


def run_status(ledger: ResultsLedger) -> RunStatus:
    if ledger.failed_overall:
        return RunStatus.FAILED
    if ledger.interrupted:
        return RunStatus.INTERRUPTED
    return RunStatus.SUCCEEDED


def build_summary(ledger: ResultsLedger, *, preview: int = SKIPPED_PREVIEW) -> RunSummary:
    return RunSummary(
        status=run_status(ledger),
        total_duration=ledger.total_duration,
        succeeded=len(ledger.succeeded),
        failed=len(ledger.failed),
        warnings=len(ledger.warnings),
        skipped=len(ledger.skipped),
        skipped_preview=tuple(entry.name for entry in ledger.skipped[:preview]),
    )


__all__ = ["SKIPPED_PREVIEW", "RunStatus", "RunSummary", "build_summary", "run_status"]
