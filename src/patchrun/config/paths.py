"""Derivation of the per-run file locations."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class RunPaths:
    output: Path
    temporary_dir: Path
    options_file: Path
    keystore: Path

    @property
    def patcher_dir(self) -> Path:
        return self.temporary_dir / "patcher"


def resolve_run_paths(
    artifact: Path,
    *,
    output: Path | None = None,
    temporary_dir: Path | None = None,
    options_file: Path | None = None,
    keystore: Path | None = None,
    cwd: Path | None = None,
) -> RunPaths:
    """Fill in every location the user left unset.

    Defaults are siblings of the output file, which itself defaults to
    ``<cwd>/<artifact stem>-patched<suffix>``.
    """

    base = cwd or Path.cwd()
    resolved_output = (output or base / f"{artifact.stem}-patched{artifact.suffix}").absolute()
    parent = resolved_output.parent
    stem = resolved_output.stem
    return RunPaths(
        output=resolved_output,
        temporary_dir=(temporary_dir or parent / f"{stem}-temporary-files").absolute(),
        options_file=(options_file or parent / f"{stem}-options.json").absolute(),
        keystore=(keystore or parent / f"{stem}.keystore").absolute(),
    )
