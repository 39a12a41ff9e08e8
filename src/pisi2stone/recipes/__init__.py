# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Recipe monorepo lookup, resolution, and the cross-run side table."""

from __future__ import annotations

from .cache import CACHE_FILENAME, ResolutionCache, clear_resolution_cache
from .index import MappingRecipeIndex, MonorepoRecipeIndex, RecipeIndex, compute_snapshot_fingerprint
from .models import MatchKind, RecipeLocation
from .resolver import RecipeResolver, casefold_key, normalized_key

__all__ = [
    "CACHE_FILENAME",
    "MappingRecipeIndex",
    "MatchKind",
    "MonorepoRecipeIndex",
    "RecipeIndex",
    "RecipeLocation",
    "RecipeResolver",
    "ResolutionCache",
    "casefold_key",
    "clear_resolution_cache",
    "compute_snapshot_fingerprint",
    "normalized_key",
]
