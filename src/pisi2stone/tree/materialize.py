# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Merge per-package staging trees into one import tree per source unit."""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from pydantic import BaseModel, ConfigDict, Field

from ..archive.models import EntryKind, StagedEntry, StagingTree
from ..errors import PathConflict
from ..filesystem import remove_tree, scratch_sibling
from ..grouping import SourceUnit

LOGGER = logging.getLogger(__name__)


class TreeEntry(BaseModel):
    """A path of the merged tree together with its ownership."""

    model_config = ConfigDict(frozen=True)

    path: PurePosixPath
    kind: EntryKind
    owner: str
    shared_with: tuple[str, ...] = Field(default_factory=tuple)
    mode: int
    size: int = 0
    sha256: str | None = None
    target: str | None = None


class ImportTree(BaseModel):
    """Canonical merged file tree of one source unit."""

    model_config = ConfigDict(frozen=True)

    identifier: str
    root: Path
    entries: tuple[TreeEntry, ...] = Field(default_factory=tuple)

    @property
    def files(self) -> tuple[TreeEntry, ...]:
        """Return file and symlink entries in sorted path order."""

        return tuple(entry for entry in self.entries if entry.kind is not EntryKind.DIRECTORY)

    @property
    def paths(self) -> frozenset[PurePosixPath]:
        """Return the set of installable (non-directory) paths."""

        return frozenset(entry.path for entry in self.files)

    def is_empty(self) -> bool:
        return not self.files

    def files_by_owner(self) -> Mapping[str, tuple[PurePosixPath, ...]]:
        """Return installable paths grouped by owning package, owners sorted."""

        grouped: dict[str, list[PurePosixPath]] = {}
        for entry in self.files:
            grouped.setdefault(entry.owner, []).append(entry.path)
        return {owner: tuple(grouped[owner]) for owner in sorted(grouped)}

    def discard(self) -> None:
        """Remove the on-disk tree when it will not be published."""

        remove_tree(self.root)


@dataclass(slots=True)
class _Claim:
    entry: StagedEntry
    owner: str
    source: Path
    shared_with: list[str] = field(default_factory=list)


class TreeMaterializer:
    """Copy staged entries into a fresh tree, detecting cross-package conflicts."""

    def materialize(
        self,
        unit: SourceUnit,
        stagings: Sequence[StagingTree],
        destination: Path,
    ) -> ImportTree:
        """Build the import tree of ``unit`` next to ``destination``.

        Packages are merged in ascending name order and paths in sorted order.
        A path already claimed with identical kind and content is recorded as
        shared; any other repeat claim is a conflict.

        Args:
            unit: Source unit being materialised.
            stagings: Staging trees of the unit's extracted members.
            destination: Final location of the tree. The tree is built in a
                scratch sibling and only moved here by the emitter.

        Returns:
            ImportTree: Merged tree rooted in the scratch sibling.

        Raises:
            PathConflict: If two packages disagree about a path.
        """

        claims = self._collect_claims(stagings)
        destination.parent.mkdir(parents=True, exist_ok=True)
        build_root = scratch_sibling(destination, "build")
        build_root.mkdir()
        try:
            entries = self._copy(claims, build_root)
        except BaseException:
            remove_tree(build_root)
            raise
        LOGGER.debug("materialised %s entries for %s in %s", len(entries), unit.identifier, build_root)
        return ImportTree(identifier=unit.identifier, root=build_root, entries=entries)

    def _collect_claims(self, stagings: Sequence[StagingTree]) -> dict[PurePosixPath, _Claim]:
        claims: dict[PurePosixPath, _Claim] = {}
        implied_directories: dict[PurePosixPath, str] = {}
        for tree in sorted(stagings, key=lambda item: item.package):
            for entry in sorted(tree.entries, key=lambda item: item.path):
                for parent in entry.path.parents:
                    if parent == PurePosixPath("."):
                        continue
                    claimed = claims.get(parent)
                    if claimed is not None and claimed.entry.kind is not EntryKind.DIRECTORY:
                        raise PathConflict(parent, claimed.owner, tree.package)
                    implied_directories.setdefault(parent, tree.package)
                existing = claims.get(entry.path)
                if existing is None:
                    if entry.kind is not EntryKind.DIRECTORY and entry.path in implied_directories:
                        raise PathConflict(entry.path, implied_directories[entry.path], tree.package)
                    claims[entry.path] = _Claim(entry=entry, owner=tree.package, source=tree.source_path(entry))
                    continue
                if not existing.entry.same_content(entry):
                    raise PathConflict(entry.path, existing.owner, tree.package)
                if tree.package != existing.owner and tree.package not in existing.shared_with:
                    existing.shared_with.append(tree.package)
        return claims

    def _copy(self, claims: Mapping[PurePosixPath, _Claim], build_root: Path) -> tuple[TreeEntry, ...]:
        entries: list[TreeEntry] = []
        directories: list[TreeEntry] = []
        for path in sorted(claims):
            claim = claims[path]
            staged = claim.entry
            target = build_root.joinpath(*path.parts)
            target.parent.mkdir(parents=True, exist_ok=True)
            if staged.kind is EntryKind.DIRECTORY:
                target.mkdir(exist_ok=True)
            elif staged.kind is EntryKind.SYMLINK:
                os.symlink(staged.target or "", target)
            else:
                shutil.copyfile(claim.source, target)
                os.chmod(target, staged.mode)
            entry = TreeEntry(
                path=path,
                kind=staged.kind,
                owner=claim.owner,
                shared_with=tuple(sorted(claim.shared_with)),
                mode=staged.mode,
                size=staged.size,
                sha256=staged.sha256,
                target=staged.target,
            )
            entries.append(entry)
            if staged.kind is EntryKind.DIRECTORY:
                directories.append(entry)
        for entry in sorted(directories, key=lambda item: len(item.path.parts), reverse=True):
            os.chmod(build_root.joinpath(*entry.path.parts), entry.mode | 0o700)
        return tuple(entries)


__all__ = ["ImportTree", "TreeEntry", "TreeMaterializer"]
