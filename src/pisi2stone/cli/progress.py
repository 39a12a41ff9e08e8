# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Progress rendering for conversion runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from ..orchestration.orchestrator import OrchestratorHooks
from ..orchestration.summary import UnitReport


@dataclass(slots=True)
class ConversionProgress:
    """Drive a rich progress bar from orchestrator hooks.

    The bar is only shown on a terminal; otherwise every method is a no-op.
    """

    console: Console
    enabled: bool = True
    progress: Progress | None = field(init=False, default=None)
    task_id: TaskID | None = field(init=False, default=None)
    lock: Lock = field(init=False, default_factory=Lock)

    def __post_init__(self) -> None:
        self.enabled = self.enabled and self.console.is_terminal
        if not self.enabled:
            return
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            TimeElapsedColumn(),
            TextColumn("{task.fields[current]}", justify="right"),
            console=self.console,
            transient=True,
        )

    def hooks(self) -> OrchestratorHooks:
        """Return hooks that feed this progress display."""

        if not self.enabled:
            return OrchestratorHooks()
        return OrchestratorHooks(
            after_plan=self._on_plan,
            before_unit=self._on_start,
            after_unit=self._on_finish,
        )

    def __enter__(self) -> ConversionProgress:
        if self.progress is not None:
            self.progress.start()
        return self

    def __exit__(self, *_exc: object) -> None:
        if self.progress is not None:
            self.progress.stop()

    def _on_plan(self, total: int) -> None:
        if self.progress is None:
            return
        with self.lock:
            self.task_id = self.progress.add_task("Converting", total=total, current="")

    def _on_start(self, identifier: str) -> None:
        if self.progress is None or self.task_id is None:
            return
        with self.lock:
            self.progress.update(self.task_id, current=identifier)

    def _on_finish(self, report: UnitReport) -> None:
        if self.progress is None or self.task_id is None:
            return
        with self.lock:
            self.progress.advance(self.task_id)


__all__ = ["ConversionProgress"]
