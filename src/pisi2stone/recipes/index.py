# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Lookup collaborators mapping source identifiers to monorepo recipe paths."""

from __future__ import annotations

import hashlib
import json
import logging
import os
from collections.abc import Mapping, Sequence
from pathlib import Path
from types import MappingProxyType
from typing import Final, Protocol, runtime_checkable

from ..errors import PreconditionError

LOGGER = logging.getLogger(__name__)

DEFAULT_RECIPE_FILENAMES: Final[tuple[str, ...]] = ("package.yml", "stone.yml")


@runtime_checkable
class RecipeIndex(Protocol):
    """Read-only ``identifier -> path`` lookup over a recipe monorepo snapshot."""

    @property
    def fingerprint(self) -> str:
        """Return a digest identifying the snapshot the index was built from."""

        raise NotImplementedError

    def lookup(self, identifier: str) -> str | None:
        """Return the recipe path for ``identifier`` or ``None`` when absent."""

        raise NotImplementedError

    def identifiers(self) -> tuple[str, ...]:
        """Return every identifier known to the index, sorted."""

        raise NotImplementedError


class MappingRecipeIndex:
    """Recipe index backed by an explicit mapping."""

    def __init__(self, entries: Mapping[str, str], *, fingerprint: str | None = None) -> None:
        """Freeze ``entries`` and derive a fingerprint when none is supplied.

        Args:
            entries: Mapping from identifier to monorepo-relative recipe path.
            fingerprint: Optional snapshot digest; defaults to a hash of the
                sorted mapping.
        """

        frozen = {str(key): str(value) for key, value in sorted(entries.items())}
        self._entries: Mapping[str, str] = MappingProxyType(frozen)
        if fingerprint is None:
            payload = json.dumps(frozen, sort_keys=True, separators=(",", ":")).encode("utf-8")
            fingerprint = hashlib.sha256(payload).hexdigest()
        self._fingerprint = fingerprint

    @classmethod
    def from_json(cls, path: Path) -> MappingRecipeIndex:
        """Load a JSON object of ``identifier: path`` pairs from ``path``.

        Raises:
            PreconditionError: If the file is unreadable or not a string mapping.
        """

        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise PreconditionError(f"cannot load recipe map {path}: {exc}") from exc
        if not isinstance(raw, dict) or not all(isinstance(v, str) for v in raw.values()):
            raise PreconditionError(f"recipe map {path} must be an object of string paths")
        return cls(raw)

    @property
    def fingerprint(self) -> str:
        return self._fingerprint

    def lookup(self, identifier: str) -> str | None:
        return self._entries.get(identifier)

    def identifiers(self) -> tuple[str, ...]:
        return tuple(self._entries)


class MonorepoRecipeIndex(MappingRecipeIndex):
    """Recipe index built by scanning a monorepo checkout for recipe files."""

    @classmethod
    def scan(
        cls,
        root: Path,
        *,
        recipe_filenames: Sequence[str] = DEFAULT_RECIPE_FILENAMES,
    ) -> MonorepoRecipeIndex:
        """Walk ``root`` and index every directory holding a recipe file.

        The identifier of a recipe is the name of its directory. When the same
        name appears more than once the lexically smallest path wins so the
        mapping is independent of filesystem iteration order.

        Args:
            root: Monorepo checkout directory.
            recipe_filenames: Filenames that mark a recipe directory.

        Returns:
            MonorepoRecipeIndex: Index whose fingerprint covers every recipe
            path and its contents.

        Raises:
            PreconditionError: If ``root`` is not a directory.
        """

        if not root.is_dir():
            raise PreconditionError(f"recipe monorepo {root} is not a directory")
        wanted = set(recipe_filenames)
        entries: dict[str, str] = {}
        recipe_files: list[Path] = []
        for directory, subdirs, files in os.walk(root):
            subdirs[:] = sorted(name for name in subdirs if not name.startswith("."))
            matches = sorted(name for name in files if name in wanted)
            if not matches:
                continue
            current = Path(directory)
            recipe_files.extend(current / name for name in matches)
            relative = current.relative_to(root).as_posix()
            if relative == ".":
                continue
            identifier = current.name
            existing = entries.get(identifier)
            if existing is not None and existing <= relative:
                LOGGER.debug("ignoring duplicate recipe %s for %s (keeping %s)", relative, identifier, existing)
                continue
            entries[identifier] = relative
        fingerprint = compute_snapshot_fingerprint(root, sorted(recipe_files))
        return cls(entries, fingerprint=fingerprint)


def compute_snapshot_fingerprint(root: Path, paths: Sequence[Path]) -> str:
    """Calculate a checksum over ``paths`` relative to ``root`` and their contents.

    Args:
        root: Directory anchoring the snapshot.
        paths: Files contributing to the checksum, in a stable order.

    Returns:
        str: Hex-encoded SHA-256 checksum.
    """

    hasher = hashlib.sha256()
    for path in paths:
        hasher.update(path.relative_to(root).as_posix().encode("utf-8"))
        hasher.update(b"\0")
        hasher.update(path.read_bytes())
    return hasher.hexdigest()


__all__ = [
    "DEFAULT_RECIPE_FILENAMES",
    "MappingRecipeIndex",
    "MonorepoRecipeIndex",
    "RecipeIndex",
    "compute_snapshot_fingerprint",
]
