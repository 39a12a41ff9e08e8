# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Per-unit lifecycle states and the forward-only transition table."""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Final

from ..errors import InvalidTransition


class UnitState(str, Enum):
    """Lifecycle state of one source unit."""

    PENDING = "pending"
    FILTERED_OUT = "filtered-out"
    RESOLVING = "resolving"
    UNRESOLVED = "unresolved"
    EXTRACTING = "extracting"
    EXTRACT_FAILED = "extract-failed"
    MATERIALIZING = "materializing"
    CONFLICT = "conflict"
    EMITTING = "emitting"
    EMPTY = "empty"
    EMIT_FAILED = "emit-failed"
    DONE = "done"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return not TRANSITIONS[self]

    @property
    def failed(self) -> bool:
        return self in FAILED_STATES


TRANSITIONS: Final = MappingProxyType(
    {
        UnitState.PENDING: frozenset({UnitState.FILTERED_OUT, UnitState.RESOLVING, UnitState.CANCELLED}),
        UnitState.RESOLVING: frozenset({UnitState.UNRESOLVED, UnitState.EXTRACTING, UnitState.CANCELLED}),
        UnitState.EXTRACTING: frozenset(
            {UnitState.EXTRACT_FAILED, UnitState.MATERIALIZING, UnitState.CANCELLED},
        ),
        UnitState.MATERIALIZING: frozenset(
            {UnitState.CONFLICT, UnitState.EMITTING, UnitState.EMIT_FAILED, UnitState.CANCELLED},
        ),
        UnitState.EMITTING: frozenset({UnitState.DONE, UnitState.EMPTY, UnitState.EMIT_FAILED}),
        UnitState.FILTERED_OUT: frozenset(),
        UnitState.UNRESOLVED: frozenset(),
        UnitState.EXTRACT_FAILED: frozenset(),
        UnitState.CONFLICT: frozenset(),
        UnitState.EMPTY: frozenset(),
        UnitState.EMIT_FAILED: frozenset(),
        UnitState.DONE: frozenset(),
        UnitState.CANCELLED: frozenset(),
    },
)

FAILED_STATES: Final[frozenset[UnitState]] = frozenset(
    {
        UnitState.UNRESOLVED,
        UnitState.EXTRACT_FAILED,
        UnitState.CONFLICT,
        UnitState.EMIT_FAILED,
        UnitState.CANCELLED,
    },
)


class UnitStateMachine:
    """Track one unit's state; every move must follow :data:`TRANSITIONS`."""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        self._state = UnitState.PENDING
        self._history: list[UnitState] = [UnitState.PENDING]

    @property
    def state(self) -> UnitState:
        return self._state

    @property
    def history(self) -> tuple[UnitState, ...]:
        return tuple(self._history)

    def advance(self, target: UnitState) -> UnitState:
        """Move to ``target``.

        Raises:
            InvalidTransition: If ``target`` is not reachable from the current
                state in a single forward step.
        """

        if target not in TRANSITIONS[self._state]:
            raise InvalidTransition(f"{self.identifier}: cannot move from {self._state.value} to {target.value}")
        self._state = target
        self._history.append(target)
        return target


__all__ = ["FAILED_STATES", "TRANSITIONS", "UnitState", "UnitStateMachine"]
