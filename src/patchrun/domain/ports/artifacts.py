"""Ports for producing the final artifact: merge, finalize, sign."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from patchrun.domain.types import PatcherResult


@dataclass(frozen=True, slots=True)
class KeystoreDetails:
    path: Path
    password: str | None
    alias: str
    entry_password: str


class BundleMerger(Protocol):
    def merge(self, bundle: Path, work_dir: Path) -> Path: ...


class ArtifactFinalizer(Protocol):
    def finalize(
        self,
        original: Path,
        result: PatcherResult,
        destination: Path,
        *,
        rip_libs: Sequence[str] = (),
    ) -> Path: ...


class Signer(Protocol):
    def sign(
        self,
        artifact: Path,
        destination: Path,
        *,
        signer_name: str,
        keystore: KeystoreDetails,
    ) -> Path: ...


__all__ = ["ArtifactFinalizer", "BundleMerger", "KeystoreDetails", "Signer"]
