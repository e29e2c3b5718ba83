"""Adapters that delegate to external command-line tools: merge, sign, install."""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, TypeAlias

from patchrun.domain.errors import DeviceNotFoundError, MergeError, SigningError
from patchrun.domain.ports.installation import InstallResult, InstallStatus

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from pathlib import Path

    from patchrun.domain.ports.artifacts import BundleMerger, KeystoreDetails, Signer
    from patchrun.domain.ports.installation import Installer

log = getLogger(__name__)

CommandRunner: TypeAlias = "Callable[[Sequence[str]], subprocess.CompletedProcess[str]]"


def run_command(args: Sequence[str]) -> subprocess.CompletedProcess[str]:
    return subprocess.run(list(args), capture_output=True, text=True, check=False)  # noqa: S603


def _describe(completed: subprocess.CompletedProcess[str]) -> str:
    output = (completed.stderr or completed.stdout or "").strip()
    return output or f"exit status {completed.returncode}"


@dataclass(frozen=True, slots=True)
class CommandBundleMerger:
    """Merge a split bundle with ``<command> <bundle> <output>``."""

    command: tuple[str, ...]
    runner: CommandRunner = run_command

    def merge(self, bundle: Path, work_dir: Path) -> Path:
        work_dir.mkdir(parents=True, exist_ok=True)
        merged = work_dir / f"{bundle.stem}.apk"
        try:
            completed = self.runner([*self.command, str(bundle), str(merged)])
        except OSError as exc:
            raise MergeError(f"Cannot run merge command: {exc}") from exc
        if completed.returncode != 0 or not merged.is_file():
            raise MergeError(f"Cannot merge {bundle.name}: {_describe(completed)}")
        return merged


@dataclass(frozen=True, slots=True)
class ApkSignerCommand:
    """Sign with ``apksigner sign``; the keystore must already exist."""

    executable: str = "apksigner"
    runner: CommandRunner = run_command

    def sign(
        self,
        artifact: Path,
        destination: Path,
        *,
        signer_name: str,
        keystore: KeystoreDetails,
    ) -> Path:
        if not keystore.path.is_file():
            raise SigningError(f"Keystore {keystore.path} does not exist")
        args = [
            self.executable,
            "sign",
            "--ks",
            str(keystore.path),
            "--ks-key-alias",
            keystore.alias,
            "--ks-pass",
            f"pass:{keystore.password or ''}",
            "--key-pass",
            f"pass:{keystore.entry_password}",
            "--v1-signer-name",
            signer_name,
            "--out",
            str(destination),
            str(artifact),
        ]
        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            completed = self.runner(args)
        except OSError as exc:
            raise SigningError(f"Cannot run {self.executable}: {exc}") from exc
        if completed.returncode != 0:
            raise SigningError(f"Signing failed: {_describe(completed)}")
        return destination


def copy_unsigned(artifact: Path, destination: Path) -> Path:
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(artifact, destination)
    return destination


def _adb_prefix(adb: str, serial: str | None) -> list[str]:
    return [adb] if serial is None else [adb, "-s", serial]


def ensure_device(adb: str, serial: str | None, runner: CommandRunner = run_command) -> str:
    """Return the serial of the target device or raise ``DeviceNotFoundError``.

    With no serial the first device in ``adb devices`` state is used.
    """

    try:
        completed = runner([adb, "devices"])
    except OSError as exc:
        raise DeviceNotFoundError(serial) from exc
    devices = [
        parts[0]
        for line in completed.stdout.splitlines()[1:]
        if len(parts := line.split()) >= 2 and parts[1] == "device"
    ]
    if serial is None:
        if not devices:
            raise DeviceNotFoundError(None)
        return devices[0]
    if serial not in devices:
        raise DeviceNotFoundError(serial)
    return serial


@dataclass(frozen=True, slots=True)
class AdbInstaller:
    serial: str
    adb: str = "adb"
    runner: CommandRunner = run_command

    def install(self, artifact: Path, package_name: str) -> InstallResult:
        prefix = _adb_prefix(self.adb, self.serial)
        completed = self.runner([*prefix, "install", "-r", str(artifact)])
        if completed.returncode != 0 or "Failure" in completed.stdout:
            return InstallResult(InstallStatus.INSTALL_FAILURE, _describe(completed))
        log.debug("Installed %s on %s", package_name, self.serial)
        return InstallResult(InstallStatus.SUCCESS)


@dataclass(frozen=True, slots=True)
class AdbMountInstaller:
    """Bind-mount the artifact over the installed package (requires root)."""

    serial: str
    adb: str = "adb"
    runner: CommandRunner = run_command
    staging_dir: str = "/data/adb/patchrun"

    def install(self, artifact: Path, package_name: str) -> InstallResult:
        prefix = _adb_prefix(self.adb, self.serial)
        staged = f"{self.staging_dir}/{package_name}.apk"
        uploaded = f"/data/local/tmp/{package_name}.apk"
        pushed = self.runner([*prefix, "push", str(artifact), uploaded])
        if pushed.returncode != 0:
            return InstallResult(InstallStatus.MOUNT_FAILURE, _describe(pushed))
        script = (
            f"mkdir -p {self.staging_dir} && "
            f"mv {uploaded} {staged} && "
            f"base=$(pm path {package_name} | head -n1 | cut -d: -f2) && "
            f'[ -n "$base" ] && mount -o bind {staged} "$base" && '
            f"am force-stop {package_name}"
        )
        mounted = self.runner([*prefix, "shell", "su", "-c", script])
        if mounted.returncode != 0:
            return InstallResult(InstallStatus.MOUNT_FAILURE, _describe(mounted))
        log.debug("Mounted %s on %s", package_name, self.serial)
        return InstallResult(InstallStatus.SUCCESS)


def connect_installer(
    serial: str | None,
    *,
    mount: bool,
    adb: str = "adb",
    runner: CommandRunner = run_command,
) -> AdbInstaller | AdbMountInstaller:
    """Resolve the device now so a missing device is reported before patching."""

    resolved = ensure_device(adb, serial, runner)
    if mount:
        return AdbMountInstaller(serial=resolved, adb=adb, runner=runner)
    return AdbInstaller(serial=resolved, adb=adb, runner=runner)


if TYPE_CHECKING:
    _merger_check: BundleMerger = CommandBundleMerger(command=("merge",))
    _signer_check: Signer = ApkSignerCommand()
    _installer_check: Installer = AdbInstaller(serial="emulator-5554")
    _mount_check: Installer = AdbMountInstaller(serial="emulator-5554")
