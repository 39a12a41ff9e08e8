# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Per-unit state machine, worker pools, and run summaries."""

from __future__ import annotations

from .orchestrator import Orchestrator, OrchestratorDeps, OrchestratorHooks, OrchestratorOptions
from .states import FAILED_STATES, TRANSITIONS, UnitState, UnitStateMachine
from .summary import EXIT_FAILURES, EXIT_OK, EXIT_PRECONDITION, RunSummary, SummaryRecorder, UnitReport

__all__ = [
    "EXIT_FAILURES",
    "EXIT_OK",
    "EXIT_PRECONDITION",
    "FAILED_STATES",
    "TRANSITIONS",
    "Orchestrator",
    "OrchestratorDeps",
    "OrchestratorHooks",
    "OrchestratorOptions",
    "RunSummary",
    "SummaryRecorder",
    "UnitReport",
    "UnitState",
    "UnitStateMachine",
]
