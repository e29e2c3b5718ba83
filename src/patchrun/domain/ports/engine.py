"""Ports for the external patch-execution engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping, Sequence
    from pathlib import Path
    from types import TracebackType

    from patchrun.domain.types import (
        OptionValues,
        PackageIdentity,
        Patch,
        PatcherResult,
        PatchOutcome,
    )


@runtime_checkable
class OutcomeStream(Protocol):
    """Lazy, ordered, single-pass sequence of patch outcomes."""

    def __iter__(self) -> Iterator[PatchOutcome]: ...

    def __next__(self) -> PatchOutcome: ...

    def cancel(self) -> Iterable[PatchOutcome]:
        """Stop the engine at a safe point and return outcomes it already emitted."""
        ...


class EngineSession(Protocol):
    """An opened artifact inside the engine. Used as a context manager."""

    @property
    def package(self) -> PackageIdentity: ...

    def apply(
        self,
        patches: Sequence[Patch],
        options: Mapping[str, OptionValues],
    ) -> OutcomeStream: ...

    def result(self) -> PatcherResult: ...

    def __enter__(self) -> EngineSession: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None: ...


class PatchEngine(Protocol):
    """Opens artifacts for patching; raises ``EngineError`` when it cannot."""

    def open(
        self,
        artifact: Path,
        work_dir: Path,
        *,
        aapt2_binary: Path | None = None,
    ) -> EngineSession: ...


__all__ = ["EngineSession", "OutcomeStream", "PatchEngine"]
