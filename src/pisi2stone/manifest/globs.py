# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Collapse import-tree paths into per-package directory globs.

A directory ``/d`` is emitted as the recursive glob ``/d/*`` when every known
file below it belongs to a single owning package and the directory is at
least ``min_depth`` segments deep. Known files are the import tree itself plus
the files other packages of the index declare. A package that declares no files
might install anywhere, so while one exists outside the unit nothing collapses.
Everything else is listed as a literal path.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from pathlib import PurePosixPath
from typing import Final

from ..errors import GlobCoverageError
from ..index.models import PackageRecord

DEFAULT_MIN_GLOB_DEPTH: Final[int] = 2
GLOB_SUFFIX: Final[str] = "/*"
_MIXED: Final[str] = "\0mixed"
_ROOT: Final[PurePosixPath] = PurePosixPath(".")


class DeclaredPaths:
    """Directory index over the files every package of the index declares.

    Each directory maps to the packages declaring files below it. Sets grow no
    larger than ``limit`` names; once a directory exceeds it, every unit with
    fewer than ``limit`` members sees foreign files there. Packages without a
    declared file list are foreign to every directory.
    """

    def __init__(self, records: Iterable[PackageRecord], *, limit: int | None = None) -> None:
        """Index the declared files of ``records``.

        Args:
            records: Every package record of the index.
            limit: Optional cap on the names kept per directory; pass one more
                than the largest unit size to keep answers exact.
        """

        self._limit = limit
        self._saturated: set[PurePosixPath] = set()
        self._packages: dict[PurePosixPath, set[str]] = {}
        self._undeclared: set[str] = set()
        for record in records:
            if not record.files:
                self._undeclared.add(record.name)
            for declared in record.files:
                for parent in declared.path.parents:
                    if parent == _ROOT:
                        continue
                    self._add(parent, record.name)

    def _add(self, directory: PurePosixPath, package: str) -> None:
        if directory in self._saturated:
            return
        names = self._packages.setdefault(directory, set())
        names.add(package)
        if self._limit is not None and len(names) > self._limit:
            self._saturated.add(directory)
            del self._packages[directory]

    def foreign_under(self, directory: PurePosixPath, members: frozenset[str]) -> bool:
        """Return whether a package outside ``members`` may own files below ``directory``."""

        if directory in self._saturated:
            return True
        if any(name not in members for name in self._undeclared):
            return True
        names = self._packages.get(directory)
        if not names:
            return False
        return not names <= members


def compute_globs(
    owners: Mapping[PurePosixPath, str],
    *,
    has_foreign: Callable[[PurePosixPath], bool] | None = None,
    min_depth: int = DEFAULT_MIN_GLOB_DEPTH,
) -> dict[str, tuple[str, ...]]:
    """Return the minimal glob list of every owning package.

    Args:
        owners: Owning package of each installable import-tree path.
        has_foreign: Predicate telling whether files outside the tree live
            below a directory; ``None`` treats the tree as the whole universe.
        min_depth: Shallowest directory depth allowed to collapse.

    Returns:
        dict[str, tuple[str, ...]]: Sorted glob strings keyed by owner, owners
        in ascending order.
    """

    directory_owner: dict[PurePosixPath, str] = {}
    for path, owner in owners.items():
        for parent in path.parents:
            if parent == _ROOT:
                continue
            current = directory_owner.get(parent)
            if current is None:
                directory_owner[parent] = owner
            elif current != owner:
                directory_owner[parent] = _MIXED

    foreign_cache: dict[PurePosixPath, bool] = {}

    def collapsible(directory: PurePosixPath, owner: str) -> bool:
        if len(directory.parts) < min_depth or directory_owner.get(directory) != owner:
            return False
        if has_foreign is None:
            return True
        if directory not in foreign_cache:
            foreign_cache[directory] = has_foreign(directory)
        return not foreign_cache[directory]

    globs: dict[str, set[str]] = {}
    for path in sorted(owners):
        owner = owners[path]
        chosen = None
        # parents run deepest first; the shallowest collapsible one wins
        for parent in reversed(path.parents[:-1]):
            if collapsible(parent, owner):
                chosen = f"/{parent}{GLOB_SUFFIX}"
                break
        globs.setdefault(owner, set()).add(chosen or f"/{path}")
    return {owner: tuple(sorted(globs[owner])) for owner in sorted(globs)}


def expand_globs(globs: Iterable[str], paths: Iterable[PurePosixPath]) -> frozenset[PurePosixPath]:
    """Return the members of ``paths`` matched by ``globs``.

    ``/d/*`` matches every path below ``/d`` recursively; any other entry is a
    literal path.
    """

    directories: set[PurePosixPath] = set()
    literals: set[PurePosixPath] = set()
    for pattern in globs:
        if pattern.endswith(GLOB_SUFFIX):
            directories.add(PurePosixPath(pattern[: -len(GLOB_SUFFIX)].lstrip("/")))
        else:
            literals.add(PurePosixPath(pattern.lstrip("/")))
    matched: set[PurePosixPath] = set()
    for path in paths:
        if path in literals or any(parent in directories for parent in path.parents):
            matched.add(path)
    return frozenset(matched)


def verify_coverage(
    globs: Mapping[str, Sequence[str]],
    owners: Mapping[PurePosixPath, str],
) -> None:
    """Check that each owner's globs expand to exactly the paths it owns.

    Raises:
        GlobCoverageError: If any owner's globs over- or under-match.
    """

    tree = frozenset(owners)
    covered: set[PurePosixPath] = set()
    for owner, patterns in globs.items():
        expected = frozenset(path for path, holder in owners.items() if holder == owner)
        actual = expand_globs(patterns, tree)
        if actual != expected:
            extra = sorted(str(path) for path in actual - expected)[:3]
            missing = sorted(str(path) for path in expected - actual)[:3]
            raise GlobCoverageError(f"globs of {owner} do not match its files (extra={extra}, missing={missing})")
        covered |= actual
    if covered != tree:
        missing = sorted(str(path) for path in tree - covered)[:3]
        raise GlobCoverageError(f"globs leave paths uncovered: {missing}")


__all__ = [
    "DEFAULT_MIN_GLOB_DEPTH",
    "DeclaredPaths",
    "compute_globs",
    "expand_globs",
    "verify_coverage",
]
