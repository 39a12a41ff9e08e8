# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Per-unit reports and the aggregated run summary."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from threading import Lock
from typing import Final

from pydantic import BaseModel, ConfigDict, Field

from ..index.models import IndexParseIssue
from .states import UnitState

EXIT_OK: Final[int] = 0
EXIT_FAILURES: Final[int] = 1
EXIT_PRECONDITION: Final[int] = 2


class UnitReport(BaseModel):
    """Terminal outcome of one source unit."""

    model_config = ConfigDict(frozen=True)

    identifier: str
    state: UnitState
    packages: tuple[str, ...] = Field(default_factory=tuple)
    version: str | None = None
    release: int | None = None
    recipe: str | None = None
    match: str | None = None
    stage: UnitState | None = None
    error: str | None = None
    error_type: str | None = None
    errors: tuple[str, ...] = Field(default_factory=tuple)
    warnings: tuple[str, ...] = Field(default_factory=tuple)
    manifest: str | None = None

    @property
    def failed(self) -> bool:
        return self.state.failed


class RunSummary(BaseModel):
    """Outcome of a whole run, with units sorted by identifier."""

    model_config = ConfigDict(frozen=True)

    units: tuple[UnitReport, ...] = Field(default_factory=tuple)
    index_issues: tuple[IndexParseIssue, ...] = Field(default_factory=tuple)
    selection_warnings: tuple[str, ...] = Field(default_factory=tuple)
    cancelled: bool = False

    @property
    def failed(self) -> tuple[UnitReport, ...]:
        return tuple(report for report in self.units if report.failed)

    @property
    def has_failures(self) -> bool:
        return any(report.failed for report in self.units)

    @property
    def exit_code(self) -> int:
        return EXIT_FAILURES if self.has_failures else EXIT_OK

    def counts(self) -> dict[str, int]:
        """Return the number of units per terminal state, in state order."""

        tally = Counter(report.state for report in self.units)
        return {state.value: tally[state] for state in UnitState if tally[state]}

    def report_for(self, identifier: str) -> UnitReport | None:
        for report in self.units:
            if report.identifier == identifier:
                return report
        return None


class SummaryRecorder:
    """Thread-safe collector of unit reports."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._reports: dict[str, UnitReport] = {}

    def record(self, report: UnitReport) -> None:
        with self._lock:
            self._reports[report.identifier] = report

    def build(
        self,
        *,
        index_issues: Iterable[IndexParseIssue] = (),
        selection_warnings: Iterable[str] = (),
        cancelled: bool = False,
    ) -> RunSummary:
        """Freeze the collected reports into a :class:`RunSummary`."""

        with self._lock:
            units = tuple(self._reports[key] for key in sorted(self._reports))
        return RunSummary(
            units=units,
            index_issues=tuple(index_issues),
            selection_warnings=tuple(selection_warnings),
            cancelled=cancelled,
        )


__all__ = [
    "EXIT_FAILURES",
    "EXIT_OK",
    "EXIT_PRECONDITION",
    "RunSummary",
    "SummaryRecorder",
    "UnitReport",
]
