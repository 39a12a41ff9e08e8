# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Scope decisions and recipe lookups for source units."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from types import MappingProxyType

from ..selection import SelectionFilter
from .cache import ResolutionCache
from .index import RecipeIndex
from .models import MatchKind, RecipeLocation

LOGGER = logging.getLogger(__name__)


def casefold_key(identifier: str) -> str:
    """Return the case-insensitive lookup key for ``identifier``."""

    return identifier.casefold()


def normalized_key(identifier: str) -> str:
    """Return the case- and separator-insensitive lookup key for ``identifier``."""

    return identifier.casefold().replace("_", "-")


def _fallback_table(
    index: RecipeIndex,
    key: Callable[[str], str],
) -> Mapping[str, str]:
    table: dict[str, str] = {}
    for identifier in index.identifiers():
        path = index.lookup(identifier)
        if path is None:
            continue
        folded = key(identifier)
        current = table.get(folded)
        if current is None or path < current:
            table[folded] = path
    return MappingProxyType(table)


class RecipeResolver:
    """Decide whether units are in scope and locate their recipes.

    The fallback tables are built once at construction; afterwards the
    resolver only reads shared state and may be used from worker threads.
    """

    def __init__(
        self,
        index: RecipeIndex,
        selection: SelectionFilter | None = None,
        *,
        cache: ResolutionCache | None = None,
    ) -> None:
        """Bind the resolver to a recipe index snapshot.

        Args:
            index: Lookup collaborator for the monorepo.
            selection: Include/exclude filter; defaults to selecting everything.
            cache: Optional cross-run side table of earlier lookups.
        """

        self._index = index
        self._selection = selection or SelectionFilter()
        self._cache = cache
        self._casefold = _fallback_table(index, casefold_key)
        self._normalized = _fallback_table(index, normalized_key)

    @property
    def selection(self) -> SelectionFilter:
        return self._selection

    def in_scope(self, identifier: str) -> bool:
        """Return whether the selection filter keeps ``identifier``."""

        return self._selection.includes(identifier)

    def resolve(self, identifier: str) -> RecipeLocation:
        """Return the recipe location of ``identifier``.

        The lookup tries an exact match, then a case-insensitive match, then a
        match with hyphens and underscores treated alike. Unmatched
        identifiers yield an ``UNRESOLVED`` location rather than raising.

        Args:
            identifier: Source-unit identifier.

        Returns:
            RecipeLocation: Resolved or unresolved location.
        """

        if self._cache is not None:
            cached = self._cache.get(identifier)
            if cached is not None:
                return cached
        location = self._lookup(identifier)
        if self._cache is not None:
            self._cache.record(location)
        return location

    def _lookup(self, identifier: str) -> RecipeLocation:
        path = self._index.lookup(identifier)
        if path is not None:
            return RecipeLocation(identifier=identifier, path=path, match=MatchKind.EXACT)
        path = self._casefold.get(casefold_key(identifier))
        if path is not None:
            LOGGER.debug("resolved %s case-insensitively to %s", identifier, path)
            return RecipeLocation(identifier=identifier, path=path, match=MatchKind.CASEFOLD)
        path = self._normalized.get(normalized_key(identifier))
        if path is not None:
            LOGGER.debug("resolved %s by separator normalisation to %s", identifier, path)
            return RecipeLocation(identifier=identifier, path=path, match=MatchKind.NORMALIZED)
        return RecipeLocation(identifier=identifier, path=None, match=MatchKind.UNRESOLVED)


__all__ = ["RecipeResolver", "casefold_key", "normalized_key"]
