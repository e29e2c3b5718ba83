"""Write the patched artifact by rewriting the original zip archive."""

from __future__ import annotations

import os
import zipfile
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from patchrun.domain.errors import FinalizationError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from pathlib import Path

    from patchrun.domain.ports.artifacts import ArtifactFinalizer
    from patchrun.domain.types import PatcherResult

log = getLogger(__name__)


def _overlay_entries(overlay_dir: Path) -> dict[str, Path]:
    if not overlay_dir.is_dir():
        return {}
    return {
        path.relative_to(overlay_dir).as_posix(): path
        for path in sorted(overlay_dir.rglob("*"))
        if path.is_file()
    }


def _is_ripped(entry: str, rip_libs: Iterable[str]) -> bool:
    return any(entry.startswith(f"lib/{abi}/") for abi in rip_libs)


@dataclass(frozen=True, slots=True)
class ZipArtifactFinalizer:
    """Replace, drop and strip archive entries according to the patcher result."""

    compression: int = zipfile.ZIP_DEFLATED

    def finalize(
        self,
        original: Path,
        result: PatcherResult,
        destination: Path,
        *,
        rip_libs: Sequence[str] = (),
    ) -> Path:
        overlay = _overlay_entries(result.overlay_dir)
        destination.parent.mkdir(parents=True, exist_ok=True)
        staging = destination.with_name(f".{destination.name}.partial")
        ripped = 0
        try:
            with zipfile.ZipFile(original) as source, zipfile.ZipFile(
                staging, "w", compression=self.compression
            ) as target:
                for info in source.infolist():
                    name = info.filename
                    if name in result.deleted_entries or name in overlay:
                        continue
                    if _is_ripped(name, rip_libs):
                        ripped += 1
                        continue
                    target.writestr(info, source.read(info))
                for name, path in overlay.items():
                    if _is_ripped(name, rip_libs):
                        ripped += 1
                        continue
                    target.write(path, arcname=name)
        except (OSError, zipfile.BadZipFile) as exc:
            staging.unlink(missing_ok=True)
            raise FinalizationError(f"Cannot write {destination.name}: {exc}") from exc
        os.replace(staging, destination)
        log.info(
            "Finalized %s: %d replaced, %d deleted, %d ripped",
            destination.name,
            len(overlay),
            len(result.deleted_entries),
            ripped,
        )
        return destination


if TYPE_CHECKING:
    _finalizer_check: ArtifactFinalizer = ZipArtifactFinalizer()
