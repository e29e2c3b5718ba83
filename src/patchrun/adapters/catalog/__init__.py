"""Public interface for the patch bundle adapter."""

from __future__ import annotations

from .loader import load_catalog, read_bundle
from .schema import BundlePayload, OptionPayload, PatchPayload

__all__ = ["BundlePayload", "OptionPayload", "PatchPayload", "load_catalog", "read_bundle"]
