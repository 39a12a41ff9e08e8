# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Render run summaries to the console and to JSON."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Final

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .filesystem import atomic_write_text
from .orchestration.states import UnitState
from .orchestration.summary import RunSummary

SUMMARY_SCHEMA_VERSION: Final[int] = 1

_STATE_STYLES: Final[dict[UnitState, str]] = {
    UnitState.DONE: "green",
    UnitState.EMPTY: "yellow",
    UnitState.FILTERED_OUT: "dim",
}


def summary_payload(summary: RunSummary) -> dict[str, object]:
    """Return the JSON-serialisable form of ``summary``."""

    return {
        "version": SUMMARY_SCHEMA_VERSION,
        "exit_code": summary.exit_code,
        "cancelled": summary.cancelled,
        "counts": summary.counts(),
        "units": [report.model_dump(mode="json") for report in summary.units],
        "index_issues": [issue.model_dump(mode="json") for issue in summary.index_issues],
        "selection_warnings": list(summary.selection_warnings),
    }


def write_summary_json(summary: RunSummary, path: Path) -> None:
    """Write the run summary to ``path`` atomically."""

    atomic_write_text(path, json.dumps(summary_payload(summary), indent=2) + "\n")


def render_summary(summary: RunSummary, console: Console, *, show_filtered: bool = False) -> None:
    """Print a per-unit table followed by state counts.

    Args:
        summary: Completed run summary.
        console: Console receiving the output.
        show_filtered: Include units the selection filter skipped.
    """

    table = Table(title="Conversion summary", show_lines=False)
    table.add_column("Unit", style="bold")
    table.add_column("Version")
    table.add_column("Packages", justify="right")
    table.add_column("State")
    table.add_column("Detail", overflow="fold")
    for report in summary.units:
        if report.state is UnitState.FILTERED_OUT and not show_filtered:
            continue
        style = "red" if report.failed else _STATE_STYLES.get(report.state, "")
        version = f"{report.version}-{report.release}" if report.version else ""
        detail = report.error or (f"{len(report.warnings)} integrity warning(s)" if report.warnings else "")
        table.add_row(
            Text(report.identifier),
            Text(version),
            str(len(report.packages)),
            Text(report.state.value, style=style),
            Text(detail),
        )
    console.print(table)
    counts = ", ".join(f"{state}: {count}" for state, count in summary.counts().items())
    console.print(f"Units: {len(summary.units)} ({counts or 'none'})")
    if summary.index_issues:
        console.print(f"Index records skipped: {len(summary.index_issues)}")
    for warning in summary.selection_warnings:
        console.print(Text(f"Selection: {warning}", style="yellow"))


__all__ = ["render_summary", "summary_payload", "write_summary_json"]
