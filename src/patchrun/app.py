"""Application orchestration entry points."""

from __future__ import annotations

import shutil
import tempfile
import time
from dataclasses import dataclass, field
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, TypeAlias

from patchrun.adapters.archive import ZipArtifactFinalizer
from patchrun.adapters.catalog import load_catalog
from patchrun.adapters.engine import CommandPatchEngine
from patchrun.adapters.options_file import JsonOptionStore
from patchrun.adapters.tools import (
    ApkSignerCommand,
    CommandBundleMerger,
    connect_installer,
    copy_unsigned,
)
from patchrun.config import ConfigurationError, get_tools_config, resolve_run_paths
from patchrun.domain.errors import DeviceNotFoundError
from patchrun.domain.execution import execute_patches
from patchrun.domain.ledger import ResultsLedger, WarningKind
from patchrun.domain.options import bind_options
from patchrun.domain.ports.artifacts import KeystoreDetails
from patchrun.domain.ports.installation import InstallStatus
from patchrun.domain.selection import resolve_selection, validate_rules

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from patchrun.config import RunPaths, ToolsConfig
    from patchrun.domain.execution import ProgressRenderer
    from patchrun.domain.ports.artifacts import ArtifactFinalizer, BundleMerger, Signer
    from patchrun.domain.ports.engine import PatchEngine
    from patchrun.domain.ports.installation import Installer
    from patchrun.domain.ports.options import OptionStore
    from patchrun.domain.selection import SelectionRule
    from patchrun.domain.types import PackageIdentity, Patch

InstallerFactory: TypeAlias = "Callable[[str | None, bool], Installer]"
OptionStoreFactory: TypeAlias = "Callable[[Path], OptionStore]"

INSTALLATION_SUBJECT = "Installation"
CLEANUP_SUBJECT = "Cleanup"
DEFAULT_KEYSTORE_ALIAS = "patchrun key"
DEFAULT_SIGNER_NAME = "patchrun"
LEFTOVER_PREFIXES = ("patcher", "patchrun")

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PatchRequest:
    """Everything the user asked for on the command line."""

    artifact: Path
    bundles: tuple[Path, ...]
    rules: tuple[SelectionRule, ...] = ()
    exclusive: bool = False
    force: bool = False
    output: Path | None = None
    temporary_dir: Path | None = None
    options_file: Path | None = None
    keystore: Path | None = None
    keystore_password: str | None = None
    keystore_alias: str = DEFAULT_KEYSTORE_ALIAS
    keystore_entry_password: str = ""
    signer_name: str = DEFAULT_SIGNER_NAME
    unsigned: bool = False
    rip_libs: tuple[str, ...] = ()
    install: bool = False
    device_serial: str | None = None
    mount: bool = False
    purge: bool = False
    aapt2_binary: Path | None = None


@dataclass(slots=True)
class Collaborators:
    engine: PatchEngine
    finalizer: ArtifactFinalizer
    signer: Signer
    merger: BundleMerger | None = None
    installer_factory: InstallerFactory | None = None
    option_store_factory: OptionStoreFactory = JsonOptionStore
    renderer: ProgressRenderer | None = None
    clock: Callable[[], float] = time.monotonic
    scratch_dir: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))


@dataclass(slots=True)
class PatchRunResult:
    ledger: ResultsLedger
    paths: RunPaths | None = None
    package: PackageIdentity | None = None
    output: Path | None = None
    interrupted: bool = False

    @property
    def exit_code(self) -> int:
        return 1 if self.ledger.failed_overall else 0


def build_collaborators(
    tools: ToolsConfig | None = None,
    *,
    renderer: ProgressRenderer | None = None,
) -> Collaborators:
    """Wire the command-line adapters described by the environment."""

    config = tools or get_tools_config()
    adb = config.adb

    def installer_factory(serial: str | None, mount: bool) -> Installer:
        return connect_installer(serial, mount=mount, adb=adb)

    return Collaborators(
        engine=CommandPatchEngine(command=config.engine_command),
        finalizer=ZipArtifactFinalizer(),
        signer=ApkSignerCommand(executable=config.apksigner),
        merger=CommandBundleMerger(command=config.merge_command) if config.merge_command else None,
        installer_factory=installer_factory,
        renderer=renderer,
    )


def list_patches(bundles: Sequence[Path]) -> tuple[Patch, ...]:
    """Return the combined catalog of ``bundles`` with their selection indices."""

    return load_catalog(bundles)


def _check_inputs(request: PatchRequest) -> None:
    if not request.artifact.is_file():
        raise ConfigurationError(f"Artifact {request.artifact} does not exist")
    if not request.bundles:
        raise ConfigurationError("At least one patch bundle is required")
    if request.aapt2_binary is not None and not request.aapt2_binary.is_file():
        raise ConfigurationError(f"AAPT binary {request.aapt2_binary.name} does not exist")


def _merge_if_needed(request: PatchRequest, collaborators: Collaborators, work_dir: Path) -> Path:
    artifact = request.artifact
    if artifact.suffix == ".apk":
        return artifact
    if collaborators.merger is None:
        raise ConfigurationError(
            f"{artifact.name} is not an .apk and no merge command is configured"
        )
    log.info("Merging split bundle %s", artifact.name)
    return collaborators.merger.merge(artifact, work_dir)


def _connect(
    request: PatchRequest,
    collaborators: Collaborators,
    ledger: ResultsLedger,
) -> tuple[Installer | None, bool]:
    if not request.install:
        return None, True
    if collaborators.installer_factory is None:
        raise ConfigurationError("Installation requested but no installer is available")
    try:
        installer = collaborators.installer_factory(request.device_serial, request.mount)
    except DeviceNotFoundError as exc:
        log.error("%s, ensure the device is connected", exc)
        ledger.add_warning(INSTALLATION_SUBJECT, str(exc), WarningKind.INSTALLATION)
        return None, False
    log.info("Connected to device %s", request.device_serial or "(first available)")
    return installer, True


def _install(
    installer: Installer,
    artifact: Path,
    package: PackageIdentity,
    ledger: ResultsLedger,
) -> None:
    log.info("Installing %s", package.name)
    result = installer.install(artifact, package.name)
    if result.status is InstallStatus.MOUNT_FAILURE:
        log.error("Mount failed")
        ledger.add_warning(
            INSTALLATION_SUBJECT, result.detail or "Mount failed", WarningKind.INSTALLATION
        )
    elif result.status is InstallStatus.INSTALL_FAILURE:
        log.error("Install failed: %s", result.detail)
        ledger.add_warning(
            INSTALLATION_SUBJECT, result.detail or "Install failed", WarningKind.INSTALLATION
        )
    else:
        log.info("Installed successfully")


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def _purge(temporary_dir: Path, scratch_dir: Path, ledger: ResultsLedger) -> None:
    removed = 0
    if temporary_dir.exists():
        try:
            _remove(temporary_dir)
        except OSError as exc:
            log.warning("Failed to purge %s: %s", temporary_dir, exc)
            ledger.add_warning(CLEANUP_SUBJECT, str(exc), WarningKind.CLEANUP)
        else:
            log.info("Removed %s", temporary_dir.name)
            removed += 1

    # leftovers of earlier runs that were killed before their own cleanup
    leftovers = scratch_dir.iterdir() if scratch_dir.is_dir() else ()
    for entry in sorted(leftovers):
        if not entry.name.startswith(LEFTOVER_PREFIXES):
            continue
        try:
            _remove(entry)
        except OSError as exc:
            log.warning("Could not remove leftover %s: %s", entry, exc)
            continue
        log.debug("Removed leftover %s", entry.name)
        removed += 1
    log.info("Cleanup complete (%d items)", removed)


def patch_artifact(
    request: PatchRequest,
    *,
    collaborators: Collaborators,
    ledger: ResultsLedger | None = None,
) -> PatchRunResult:
    """Run the whole pipeline for one artifact.

    Configuration problems raise before anything is written. ``EngineError`` and
    ``ArtifactError`` abort the run without producing an output file. Patch
    failures, installation problems and purge failures end up in the ledger.
    """

    active_ledger = ledger if ledger is not None else ResultsLedger()
    active_ledger.clear()
    started = collaborators.clock()
    run = PatchRunResult(ledger=active_ledger)

    _check_inputs(request)
    catalog = load_catalog(request.bundles)
    log.info("Loaded %d patches from %d bundle(s)", len(catalog), len(request.bundles))
    validate_rules(catalog, request.rules)

    paths = resolve_run_paths(
        request.artifact,
        output=request.output,
        temporary_dir=request.temporary_dir,
        options_file=request.options_file,
        keystore=request.keystore,
    )
    run.paths = paths
    log.info("Output: %s", paths.output)
    if request.unsigned:
        log.warning("Signing disabled")
    if request.rip_libs:
        log.info("Ripping native libraries: %s", ", ".join(request.rip_libs))

    installer, connected = _connect(request, collaborators, active_ledger)
    if not connected:
        active_ledger.total_duration = collaborators.clock() - started
        return run

    artifact = _merge_if_needed(request, collaborators, paths.temporary_dir)

    with collaborators.engine.open(
        artifact, paths.patcher_dir, aapt2_binary=request.aapt2_binary
    ) as session:
        package = session.package
        run.package = package
        log.info("Package: %s, version %s", package.name, package.version)

        selection = resolve_selection(
            catalog,
            request.rules,
            package,
            exclusive=request.exclusive,
            force=request.force,
            ledger=active_ledger,
        )
        options = bind_options(
            catalog, selection, collaborators.option_store_factory(paths.options_file)
        )
        log.info("Patches to apply: %d", len(selection.patches))

        report = execute_patches(
            selection.patches,
            session.apply(selection.patches, options),
            ledger=active_ledger,
            renderer=collaborators.renderer,
            clock=collaborators.clock,
        )
        if report.interrupted:
            run.interrupted = True
            active_ledger.total_duration = collaborators.clock() - started
            return run
        patcher_result = session.result()

    staged = collaborators.finalizer.finalize(
        artifact,
        patcher_result,
        paths.temporary_dir / artifact.name,
        rip_libs=request.rip_libs,
    )
    if request.mount or request.unsigned:
        run.output = copy_unsigned(staged, paths.output)
        if request.unsigned:
            log.warning("Artifact left unsigned")
    else:
        run.output = collaborators.signer.sign(
            staged,
            paths.output,
            signer_name=request.signer_name,
            keystore=KeystoreDetails(
                path=paths.keystore,
                password=request.keystore_password,
                alias=request.keystore_alias,
                entry_password=request.keystore_entry_password,
            ),
        )
        log.info('Signed with "%s"', request.signer_name)
    log.info("Saved %s", run.output)

    if installer is not None:
        _install(installer, run.output, package, active_ledger)

    if request.purge:
        _purge(paths.temporary_dir, collaborators.scratch_dir, active_ledger)

    active_ledger.total_duration = collaborators.clock() - started
    return run


__all__ = [
    "Collaborators",
    "PatchRequest",
    "PatchRunResult",
    "build_collaborators",
    "list_patches",
    "patch_artifact",
]
