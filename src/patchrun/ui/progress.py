"""Single-line terminal progress bar."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TextIO

from patchrun.domain.progress import format_eta

from .style import Palette, palette_for

if TYPE_CHECKING:
    from patchrun.domain.execution import ProgressRenderer
    from patchrun.domain.progress import ProgressSnapshot

_NAME_WIDTH = 25


def _truncate(name: str, width: int = _NAME_WIDTH) -> str:
    if len(name) <= width:
        return name
    return name[: width - 3] + "..."


@dataclass(slots=True)
class TerminalProgressRenderer:
    """Redraw ``[#####.....]  42% (3/7) ETA: 2s name`` in place."""

    stream: TextIO
    width: int = 35
    palette: Palette | None = None
    _last_length: int = field(default=0, init=False)
    _closed: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        if self.palette is None:
            self.palette = palette_for(self.stream)

    def render_line(self, snapshot: ProgressSnapshot) -> str:
        palette = self.palette or Palette(enabled=False)
        filled = (self.width * snapshot.current) // max(snapshot.total, 1)
        bar = palette.green("█" * filled) + palette.dim("░" * (self.width - filled))
        tail = " ✓" if snapshot.finished else f" ETA: {format_eta(snapshot.eta)}"
        line = (
            f"    [{bar}] {snapshot.percent:>3}% "
            f"({snapshot.current}/{snapshot.total}){palette.yellow(tail)}"
        )
        if snapshot.item:
            line += " " + palette.dim(_truncate(snapshot.item))
        return line

    def _draw(self, snapshot: ProgressSnapshot) -> None:
        line = self.render_line(snapshot)
        padding = max(self._last_length - len(line), 0)
        self.stream.write("\r" + line + " " * padding)
        self.stream.flush()
        self._last_length = len(line)

    def start(self, snapshot: ProgressSnapshot) -> None:
        self._closed = False
        self._draw(snapshot)

    def update(self, snapshot: ProgressSnapshot) -> None:
        self._draw(snapshot)

    def finish(self, snapshot: ProgressSnapshot) -> None:
        if self._closed:
            return
        self._draw(snapshot)
        self.stream.write("\n")
        self.stream.flush()
        self._closed = True


if TYPE_CHECKING:
    import sys

    _renderer_check: ProgressRenderer = TerminalProgressRenderer(stream=sys.stdout)
