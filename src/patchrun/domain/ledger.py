"""Append-only record of everything that happened to each patch in a run."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class WarningKind(StrEnum):
    INCOMPATIBLE_PACKAGE = "incompatible-package"
    VERSION_MISMATCH = "version-mismatch"
    INSTALLATION = "installation"
    CLEANUP = "cleanup"


class SkipReason(StrEnum):
    DISABLED = "disabled"
    PACKAGE_NOT_LISTED = "package-not-listed"
    NOT_ENABLED = "not-enabled"


@dataclass(frozen=True, slots=True)
class PatchSuccess:
    name: str
    elapsed: float


@dataclass(frozen=True, slots=True)
class PatchFailure:
    name: str
    elapsed: float
    message: str
    trace: str = ""


@dataclass(frozen=True, slots=True)
class LedgerWarning:
    subject: str
    message: str
    kind: WarningKind


@dataclass(frozen=True, slots=True)
class SkippedPatch:
    name: str
    reason: SkipReason


@dataclass(slots=True)
class ResultsLedger:
    """Aggregate of per-patch outcomes and selection-time exclusions.

    The ledger is owned by a single run: it is cleared when the run starts, only
    appended to while it is in progress and read (never mutated) by the summary
    reporter afterwards.
    """

    succeeded: list[PatchSuccess] = field(default_factory=list[PatchSuccess])
    failed: list[PatchFailure] = field(default_factory=list[PatchFailure])
    warnings: list[LedgerWarning] = field(default_factory=list[LedgerWarning])
    skipped: list[SkippedPatch] = field(default_factory=list[SkippedPatch])
    total_duration: float = 0.0
    interrupted: bool = False

    def add_success(self, name: str, elapsed: float) -> None:
        self.succeeded.append(PatchSuccess(name, elapsed))

    def add_failure(self, name: str, elapsed: float, message: str, trace: str = "") -> None:
        self.failed.append(PatchFailure(name, elapsed, message, trace))

    def add_warning(self, subject: str, message: str, kind: WarningKind) -> None:
        self.warnings.append(LedgerWarning(subject, message, kind))

    def add_skipped(self, name: str, reason: SkipReason) -> None:
        self.skipped.append(SkippedPatch(name, reason))

    def clear(self) -> None:
        self.succeeded.clear()
        self.failed.clear()
        self.warnings.clear()
        self.skipped.clear()
        self.total_duration = 0.0
        self.interrupted = False

    @property
    def processed(self) -> int:
        """Number of engine outcomes folded into the ledger."""

        return len(self.succeeded) + len(self.failed)

    @property
    def failed_overall(self) -> bool:
        # warnings and skips never fail a run
        return bool(self.failed)


__all__ = [
    "LedgerWarning",
    "PatchFailure",
    "PatchSuccess",
    "ResultsLedger",
    "SkipReason",
    "SkippedPatch",
    "WarningKind",
]
