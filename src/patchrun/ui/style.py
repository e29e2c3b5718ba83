"""ANSI styling for terminal output."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TextIO

_RESET = "\033[0m"


@dataclass(frozen=True, slots=True)
class Palette:
    enabled: bool

    def _wrap(self, code: str, text: str) -> str:
        if not self.enabled:
            return text
        return f"\033[{code}m{text}{_RESET}"

    def bold(self, text: str) -> str:
        return self._wrap("1", text)

    def dim(self, text: str) -> str:
        return self._wrap("2", text)

    def green(self, text: str) -> str:
        return self._wrap("92", text)

    def red(self, text: str) -> str:
        return self._wrap("91", text)

    def yellow(self, text: str) -> str:
        return self._wrap("93", text)

    def cyan(self, text: str) -> str:
        return self._wrap("96", text)

    def magenta(self, text: str) -> str:
        return self._wrap("95", text)


def palette_for(stream: TextIO) -> Palette:
    """Colour only interactive streams, and never when ``NO_COLOR`` is set."""

    if os.getenv("NO_COLOR"):
        return Palette(enabled=False)
    isatty = getattr(stream, "isatty", None)
    return Palette(enabled=bool(isatty and isatty()))
