from __future__ import annotations

import shutil
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from patchrun.domain.errors import DeviceNotFoundError
from patchrun.domain.ports.installation import InstallResult, InstallStatus
from patchrun.domain.types import (
    PackageIdentity,
    Patch,
    PatcherResult,
    PatchError,
    PatchOption,
    PatchOutcome,
)

if TYPE_CHECKING:
    from types import TracebackType

    from patchrun.domain.ports.artifacts import KeystoreDetails
    from patchrun.domain.types import CompatiblePackages, OptionValues


def make_patch(
    name: str,
    *,
    index: int | None = None,
    use: bool = True,
    compatible: CompatiblePackages | None = None,
    options: Mapping[str, object] | None = None,
) -> Patch:
    return Patch(
        name=name,
        index=index,
        use=use,
        compatible_packages=compatible,
        options=tuple(
            PatchOption(key=key, default=value) for key, value in (options or {}).items()
        ),
    )


def make_catalog(*patches: Patch) -> tuple[Patch, ...]:
    return tuple(
        Patch(
            name=patch.name,
            index=position,
            use=patch.use,
            description=patch.description,
            compatible_packages=patch.compatible_packages,
            options=patch.options,
        )
        for position, patch in enumerate(patches)
    )


@dataclass(slots=True)
class InMemoryOptionStore:
    stored: dict[str, OptionValues] | None = None
    saved: list[dict[str, OptionValues]] = field(default_factory=list)
    loads: int = 0

    def load(self) -> dict[str, OptionValues] | None:
        self.loads += 1
        if self.stored is None:
            return None
        return {name: dict(values) for name, values in self.stored.items()}

    def save(self, values: Mapping[str, OptionValues]) -> None:
        snapshot = {name: dict(options) for name, options in values.items()}
        self.saved.append(snapshot)
        self.stored = snapshot


@dataclass(slots=True)
class FakeOutcomeStream:
    """Stream over canned outcomes; ``interrupt_after`` raises ``KeyboardInterrupt``."""

    outcomes: Sequence[PatchOutcome]
    interrupt_after: int | None = None
    pending_on_cancel: Sequence[PatchOutcome] = ()
    position: int = 0
    cancelled: bool = False

    def __iter__(self) -> Iterator[PatchOutcome]:
        return self

    def __next__(self) -> PatchOutcome:
        if self.interrupt_after is not None and self.position == self.interrupt_after:
            raise KeyboardInterrupt
        if self.position >= len(self.outcomes):
            raise StopIteration
        outcome = self.outcomes[self.position]
        self.position += 1
        return outcome

    def cancel(self) -> list[PatchOutcome]:
        self.cancelled = True
        return list(self.pending_on_cancel)


@dataclass(slots=True)
class FakeEngineSession:
    package: PackageIdentity
    overlay_dir: Path
    failures: Mapping[str, str] = field(default_factory=dict[str, str])
    interrupt_after: int | None = None
    applied: list[str] = field(default_factory=list[str])
    options: dict[str, OptionValues] = field(default_factory=dict)
    stream: FakeOutcomeStream | None = None
    exited: bool = False

    def apply(
        self,
        patches: Sequence[Patch],
        options: Mapping[str, OptionValues],
    ) -> FakeOutcomeStream:
        self.applied = [patch.name for patch in patches]
        self.options = {name: dict(values) for name, values in options.items()}
        outcomes = [
            PatchOutcome(
                patch=patch.name,
                error=PatchError(self.failures[patch.name], "at Fake.apply\nat Fake.run")
                if patch.name in self.failures
                else None,
                elapsed=0.25,
            )
            for patch in patches
        ]
        self.stream = FakeOutcomeStream(outcomes, interrupt_after=self.interrupt_after)
        return self.stream

    def result(self) -> PatcherResult:
        return PatcherResult(overlay_dir=self.overlay_dir)

    def __enter__(self) -> FakeEngineSession:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.exited = True


@dataclass(slots=True)
class FakePatchEngine:
    session: FakeEngineSession
    opened: list[tuple[Path, Path]] = field(default_factory=list[tuple[Path, Path]])
    aapt2_binaries: list[Path | None] = field(default_factory=list[Path | None])

    def open(
        self,
        artifact: Path,
        work_dir: Path,
        *,
        aapt2_binary: Path | None = None,
    ) -> FakeEngineSession:
        self.opened.append((artifact, work_dir))
        self.aapt2_binaries.append(aapt2_binary)
        return self.session


@dataclass(slots=True)
class CopyingFinalizer:
    calls: list[tuple[Path, Path, tuple[str, ...]]] = field(
        default_factory=list[tuple[Path, Path, tuple[str, ...]]]
    )

    def finalize(
        self,
        original: Path,
        result: PatcherResult,
        destination: Path,
        *,
        rip_libs: Sequence[str] = (),
    ) -> Path:
        _ = result
        self.calls.append((original, destination, tuple(rip_libs)))
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(original, destination)
        return destination


@dataclass(slots=True)
class RecordingSigner:
    calls: list[tuple[str, KeystoreDetails]] = field(default_factory=list)

    def sign(
        self,
        artifact: Path,
        destination: Path,
        *,
        signer_name: str,
        keystore: KeystoreDetails,
    ) -> Path:
        self.calls.append((signer_name, keystore))
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(artifact, destination)
        return destination


@dataclass(slots=True)
class FakeInstaller:
    status: InstallStatus = InstallStatus.SUCCESS
    detail: str | None = None
    installed: list[tuple[Path, str]] = field(default_factory=list[tuple[Path, str]])

    def install(self, artifact: Path, package_name: str) -> InstallResult:
        self.installed.append((artifact, package_name))
        return InstallResult(self.status, self.detail)


@dataclass(slots=True)
class FakeInstallerFactory:
    installer: FakeInstaller = field(default_factory=FakeInstaller)
    missing: bool = False
    requests: list[tuple[str | None, bool]] = field(default_factory=list[tuple[str | None, bool]])

    def __call__(self, serial: str | None, mount: bool) -> FakeInstaller:
        self.requests.append((serial, mount))
        if self.missing:
            raise DeviceNotFoundError(serial)
        return self.installer


@dataclass(slots=True)
class StepClock:
    """Monotonic clock advancing by ``step`` seconds on every call."""

    step: float = 1.0
    now: float = 0.0

    def __call__(self) -> float:
        current = self.now
        self.now += self.step
        return current
