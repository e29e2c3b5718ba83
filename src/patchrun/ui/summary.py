"""Text rendering of the results ledger."""

from __future__ import annotations

from typing import TYPE_CHECKING, TextIO

from patchrun.domain.progress import format_duration
from patchrun.domain.reporting import RunStatus, build_summary

from .style import Palette, palette_for

if TYPE_CHECKING:
    from patchrun.domain.ledger import ResultsLedger

_MESSAGE_WIDTH = 40
_TRACE_WIDTH = 45
_TRACE_LINES = 2


def _section(title: str) -> str:
    return f"    ┌─ {title} " + "─" * max(44 - len(title), 3) + "┐"


_FOOTER = "    └" + "─" * 47 + "┘"


def render_summary(ledger: ResultsLedger, *, palette: Palette | None = None) -> list[str]:
    active = palette or Palette(enabled=False)
    summary = build_summary(ledger)
    lines = [
        "",
        active.magenta(active.bold("  ★ PATCHING SUMMARY ★")),
        "",
        f"    ⏱ Total Time: {active.cyan(format_duration(summary.total_duration))}",
        "",
        f"    {active.green('✓ Succeeded:')} {summary.succeeded}",
        f"    {active.red('✗ Failed:')}    {summary.failed}",
        f"    {active.yellow('⚠ Warnings:')}  {summary.warnings}",
        f"    {active.dim('• Skipped:')}   {summary.skipped}",
    ]

    if ledger.succeeded:
        lines += ["", active.green(_section("SUCCEEDED"))]
        lines += [active.green(f"    │ ✓ {entry.name}") for entry in ledger.succeeded]
        lines.append(active.green(_FOOTER))

    if ledger.failed:
        lines += ["", active.red(_section("FAILED"))]
        for failure in ledger.failed:
            lines.append(active.red(f"    │ ✗ {failure.name}"))
            lines.append(active.dim(f"    │   Error: {failure.message[:_MESSAGE_WIDTH]}"))
            trace_lines = [line.strip() for line in failure.trace.splitlines() if line.strip()]
            for line in trace_lines[:_TRACE_LINES]:
                lines.append(active.dim(f"    │   {line[:_TRACE_WIDTH]}"))
            lines.append(active.red("    │"))
        lines.append(active.red(_FOOTER))

    if ledger.warnings:
        lines += ["", active.yellow(_section("WARNINGS"))]
        for warning in ledger.warnings:
            lines.append(active.yellow(f"    │ ⚠ [{warning.subject}]"))
            lines.append(active.dim(f"    │   {warning.message[:42]}"))
        lines.append(active.yellow(_FOOTER))

    if ledger.skipped:
        lines += ["", active.dim(_section(f"SKIPPED ({summary.skipped})"))]
        lines += [active.dim(f"    │ • {name}") for name in summary.skipped_preview]
        if summary.skipped_remainder > 0:
            lines.append(active.dim(f"    │ ... and {summary.skipped_remainder} more"))
        lines.append(active.dim(_FOOTER))

    lines.append("")
    if summary.status is RunStatus.FAILED:
        banner = active.yellow(f"    ⚠ COMPLETED WITH {summary.failed} ERROR(S) ⚠")
    elif summary.status is RunStatus.INTERRUPTED:
        banner = active.yellow("    ⚠ INTERRUPTED, PARTIAL RESULTS ⚠")
    else:
        banner = active.green("      ✨ PATCHING COMPLETED SUCCESSFULLY! ✨")
    lines += [banner, ""]
    return lines


def print_summary(ledger: ResultsLedger, stream: TextIO) -> None:
    for line in render_summary(ledger, palette=palette_for(stream)):
        stream.write(line + "\n")
    stream.flush()
