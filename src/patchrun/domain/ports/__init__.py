"""Domain port definitions for adapters."""

from __future__ import annotations

from .artifacts import ArtifactFinalizer, BundleMerger, KeystoreDetails, Signer
from .engine import EngineSession, OutcomeStream, PatchEngine
from .installation import InstallResult, InstallStatus, Installer
from .options import OptionStore

__all__ = [
    "ArtifactFinalizer",
    "BundleMerger",
    "EngineSession",
    "InstallResult",
    "InstallStatus",
    "Installer",
    "KeystoreDetails",
    "OptionStore",
    "OutcomeStream",
    "PatchEngine",
    "Signer",
]
