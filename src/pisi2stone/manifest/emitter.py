# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Publish a manifest and its import tree for one source unit."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Final

from ..errors import EmitError, EmptyTree
from ..filesystem import atomic_write_text, remove_tree, replace_directory, safe_relative_path, scratch_sibling
from ..grouping import SourceUnit
from ..recipes.models import RecipeLocation
from ..tree.materialize import ImportTree
from .globs import DEFAULT_MIN_GLOB_DEPTH, DeclaredPaths, compute_globs, verify_coverage
from .render import Manifest, render_manifest

LOGGER = logging.getLogger(__name__)

MANIFEST_FILENAME: Final[str] = "stone.yml"
TREE_DIRECTORY: Final[tuple[str, str]] = ("pkg", "import")
DEFAULT_HOMEPAGE: Final[str] = "no-homepage-set"


@dataclass(frozen=True, slots=True)
class EmitResult:
    """Locations written for one unit."""

    identifier: str
    manifest_path: Path
    tree_path: Path
    manifest: Manifest


class ManifestEmitter:
    """Turn an import tree into ``output_root/<unit>/stone.yml`` plus ``pkg/import``."""

    def __init__(
        self,
        output_root: Path,
        *,
        declared: DeclaredPaths | None = None,
        min_glob_depth: int = DEFAULT_MIN_GLOB_DEPTH,
        strip: bool = False,
        homepage_placeholder: str = DEFAULT_HOMEPAGE,
    ) -> None:
        """Configure the output layout and glob policy.

        Args:
            output_root: Directory receiving one subdirectory per unit.
            declared: Files declared by the whole index, used to keep globs
                from claiming other packages' paths.
            min_glob_depth: Shallowest directory allowed to collapse to a glob.
            strip: Value of the manifest ``strip`` flag.
            homepage_placeholder: Homepage used when the index has none.
        """

        self._output_root = output_root
        self._declared = declared
        self._min_glob_depth = min_glob_depth
        self._strip = strip
        self._homepage_placeholder = homepage_placeholder

    def unit_directory(self, identifier: str) -> Path:
        """Return the output directory of ``identifier``.

        Raises:
            EmitError: If ``identifier`` is not a single safe path segment.
        """

        relative = safe_relative_path(identifier)
        if relative is None or len(relative.parts) != 1 or relative.parts[0] != identifier:
            raise EmitError(f"cannot use {identifier!r} as an output directory name")
        return self._output_root / identifier

    def tree_path(self, identifier: str) -> Path:
        """Return the final location of the unit's import tree."""

        return self.unit_directory(identifier).joinpath(*TREE_DIRECTORY)

    def manifest_path(self, identifier: str) -> Path:
        return self.unit_directory(identifier) / MANIFEST_FILENAME

    def retire(self, identifier: str) -> None:
        """Remove everything an earlier run published for ``identifier``.

        The unit directory is renamed aside before it is deleted, so its name
        never points at a half-removed tree.
        """

        directory = self._existing_directory(identifier)
        if directory is None:
            return
        retired = scratch_sibling(directory, "retired")
        os.replace(directory, retired)
        remove_tree(retired)
        LOGGER.debug("removed previous output of %s", identifier)

    def prune(self, identifier: str) -> None:
        """Drop the unit's directories if nothing was ever published into them."""

        directory = self._existing_directory(identifier)
        if directory is None:
            return
        for candidate in (directory / TREE_DIRECTORY[0], directory):
            if candidate.is_dir() and not candidate.is_symlink() and not any(candidate.iterdir()):
                candidate.rmdir()

    def _existing_directory(self, identifier: str) -> Path | None:
        try:
            directory = self.unit_directory(identifier)
        except EmitError:
            return None
        if directory.exists() or directory.is_symlink():
            return directory
        return None

    def build(self, unit: SourceUnit, tree: ImportTree, location: RecipeLocation | None = None) -> Manifest:
        """Compute the manifest for ``unit`` without touching the disk.

        Args:
            unit: Source unit being emitted.
            tree: Materialised import tree of the unit.
            location: Resolved recipe location, named in the header comment.

        Returns:
            Manifest: Metadata from the lead record plus per-package globs.

        Raises:
            EmptyTree: If the tree holds no installable paths.
            GlobCoverageError: If the globs fail the round-trip check.
        """

        if tree.is_empty():
            raise EmptyTree(unit.identifier)
        owners: dict[PurePosixPath, str] = {entry.path: entry.owner for entry in tree.files}
        members = frozenset(unit.package_names)
        declared = self._declared
        has_foreign = None if declared is None else (lambda directory: declared.foreign_under(directory, members))
        globs = compute_globs(owners, has_foreign=has_foreign, min_depth=self._min_glob_depth)
        verify_coverage(globs, owners)

        lead = unit.lead
        return Manifest(
            name=unit.identifier,
            version=lead.version,
            release=lead.release,
            homepage=lead.homepage or self._homepage_placeholder,
            summary=_single_line(lead.summary) or unit.identifier,
            description=_single_line(lead.description) or _single_line(lead.summary) or unit.identifier,
            license=lead.licenses,
            strip=self._strip,
            packages=globs,
            recipe=location.path if location is not None else None,
        )

    def emit(self, unit: SourceUnit, tree: ImportTree, location: RecipeLocation | None = None) -> EmitResult:
        """Validate, render, and publish the manifest and tree of ``unit``.

        The import tree is moved into ``pkg/import`` first and the manifest is
        then written through a temporary file, so a published manifest always
        describes the tree next to it. The scratch tree, and any unit directory
        left empty by it, is discarded when a step fails.

        Raises:
            EmptyTree: If the tree holds no installable paths.
            GlobCoverageError: If the globs fail the round-trip check.
            EmitError: If the tree or manifest cannot be written.
        """

        try:
            manifest = self.build(unit, tree, location)
            text = render_manifest(manifest)
            tree_path = self.tree_path(unit.identifier)
            manifest_path = self.manifest_path(unit.identifier)
        except BaseException:
            tree.discard()
            self.prune(unit.identifier)
            raise
        try:
            replace_directory(tree.root, tree_path)
        except OSError as exc:
            tree.discard()
            self.prune(unit.identifier)
            raise EmitError(f"{unit.identifier}: cannot publish import tree: {exc}") from exc
        try:
            atomic_write_text(manifest_path, text)
        except OSError as exc:
            raise EmitError(f"{unit.identifier}: cannot write {manifest_path}: {exc}") from exc
        LOGGER.debug("wrote %s (%s packages)", manifest_path, len(manifest.packages))
        return EmitResult(
            identifier=unit.identifier,
            manifest_path=manifest_path,
            tree_path=tree_path,
            manifest=manifest,
        )


def _single_line(text: str) -> str:
    return " ".join(text.split())


__all__ = ["DEFAULT_HOMEPAGE", "MANIFEST_FILENAME", "EmitResult", "ManifestEmitter"]
