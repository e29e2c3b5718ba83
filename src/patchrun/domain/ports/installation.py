"""Port for installing the finished artifact on a device."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from pathlib import Path


class InstallStatus(StrEnum):
    SUCCESS = "success"
    MOUNT_FAILURE = "mount-failure"
    INSTALL_FAILURE = "install-failure"


@dataclass(frozen=True, slots=True)
class InstallResult:
    status: InstallStatus
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is InstallStatus.SUCCESS


class Installer(Protocol):
    def install(self, artifact: Path, package_name: str) -> InstallResult: ...


__all__ = ["InstallResult", "InstallStatus", "Installer"]
