"""Error taxonomy for the patching pipeline.

User-input problems derive from ``ConfigurationError`` and are raised before
the run starts. ``EngineError`` and ``ArtifactError`` are pipeline-wide faults
that unwind the whole run. Anything attributable to a single patch is not an
exception at all: it is recorded in the ``ResultsLedger``.
"""

from __future__ import annotations

from patchrun.config.errors import ConfigurationError


class CatalogError(ConfigurationError):
    """Raised when a patch bundle cannot be read or is malformed."""


class SelectionError(ConfigurationError):
    """Raised when a selection rule cannot be applied to the catalog."""


class OptionError(ConfigurationError):
    """Raised when option overrides or the options file are invalid."""


class EngineError(RuntimeError):
    """Raised when the patch engine fails as a whole (not a single patch)."""


class ArtifactError(RuntimeError):
    """Base class for failures while producing the final artifact."""


class MergeError(ArtifactError):
    """Raised when a split bundle cannot be merged into a single artifact."""


class FinalizationError(ArtifactError):
    """Raised when the patched artifact cannot be written."""


class SigningError(ArtifactError):
    """Raised when the signer rejects the artifact or keystore."""


class DeviceNotFoundError(RuntimeError):
    """Raised when no device matches the requested serial."""

    def __init__(self, serial: str | None) -> None:
        target = serial or "any connected device"
        super().__init__(f"Device not found: {target}")
        self.serial = serial


__all__ = [
    "ArtifactError",
    "CatalogError",
    "DeviceNotFoundError",
    "EngineError",
    "FinalizationError",
    "MergeError",
    "OptionError",
    "SelectionError",
    "SigningError",
]
