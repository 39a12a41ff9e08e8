# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Result types produced by recipe resolution."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class MatchKind(str, Enum):
    """How an identifier was matched against the recipe index."""

    EXACT = "exact"
    CASEFOLD = "casefold"
    NORMALIZED = "normalized"
    UNRESOLVED = "unresolved"


class RecipeLocation(BaseModel):
    """Monorepo path of a source unit's recipe, or the lack of one."""

    model_config = ConfigDict(frozen=True)

    identifier: str
    path: str | None
    match: MatchKind
    cached: bool = False

    @property
    def resolved(self) -> bool:
        """Return ``True`` when a recipe path was found."""

        return self.path is not None


__all__ = ["MatchKind", "RecipeLocation"]
