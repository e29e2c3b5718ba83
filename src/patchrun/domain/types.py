"""Core value types shared by the selection and execution code."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeAlias

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

# package name -> accepted versions; ``None`` accepts every version
CompatiblePackages: TypeAlias = "Mapping[str, frozenset[str] | None]"
OptionValues: TypeAlias = "dict[str, Any]"


@dataclass(frozen=True, slots=True)
class PatchOption:
    key: str
    default: Any = None
    title: str | None = None
    description: str | None = None
    required: bool = False


@dataclass(frozen=True, slots=True)
class Patch:
    """A catalog entry. Immutable once loaded."""

    name: str
    index: int | None = None
    use: bool = True
    description: str | None = None
    compatible_packages: CompatiblePackages | None = None
    options: tuple[PatchOption, ...] = ()

    def option(self, key: str) -> PatchOption | None:
        for option in self.options:
            if option.key == key:
                return option
        return None

    def default_options(self) -> OptionValues:
        return {option.key: option.default for option in self.options}


@dataclass(frozen=True, slots=True)
class PackageIdentity:
    name: str
    version: str

    def __str__(self) -> str:
        return f"{self.name} {self.version}"


@dataclass(frozen=True, slots=True)
class PatchError:
    message: str
    trace: str = ""


@dataclass(frozen=True, slots=True)
class PatchOutcome:
    """Result of one patch as reported by the engine.

    ``elapsed`` is in seconds; engines that do not time their patches leave it
    unset and the orchestrator measures the gap between outcomes instead.
    """

    patch: str
    error: PatchError | None = None
    elapsed: float | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(frozen=True, slots=True)
class PatcherResult:
    """Changes produced by the engine once every outcome has been consumed."""

    overlay_dir: Path
    deleted_entries: frozenset[str] = field(default_factory=frozenset[str])


__all__ = [
    "CompatiblePackages",
    "OptionValues",
    "PackageIdentity",
    "Patch",
    "PatchError",
    "PatchOption",
    "PatchOutcome",
    "PatcherResult",
]
