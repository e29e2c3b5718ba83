"""Port for persisted per-run option values."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping

    from patchrun.domain.types import OptionValues


class OptionStore(Protocol):
    """Load and save option values keyed by patch name."""

    def load(self) -> dict[str, OptionValues] | None:
        """Return persisted values, or ``None`` when nothing usable is stored."""
        ...

    def save(self, values: Mapping[str, OptionValues]) -> None: ...


__all__ = ["OptionStore"]
