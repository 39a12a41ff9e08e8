# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Exception hierarchy for the conversion pipeline.

Two families exist. :class:`PreconditionError` aborts a run before any unit
work starts, while :class:`UnitError` is scoped to a single source unit and is
always converted into a summary entry by the orchestrator.
"""

from __future__ import annotations

from pathlib import PurePosixPath


class ConversionError(Exception):
    """Base class for every error raised by the pipeline."""


class PreconditionError(ConversionError):
    """Raised when the run cannot start (bad index, filter, or configuration)."""


class IndexReadError(PreconditionError):
    """Raised when the package index document cannot be read or parsed."""


class FilterSyntaxError(PreconditionError):
    """Raised when a selection pattern is malformed."""

    def __init__(self, pattern: str, reason: str) -> None:
        """Initialise the error with the offending ``pattern``.

        Args:
            pattern: Glob pattern rejected by validation.
            reason: Human-readable explanation of the rejection.
        """

        super().__init__(f"invalid selection pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason


class ConfigError(PreconditionError):
    """Raised when configuration input is invalid."""


class UnitError(ConversionError):
    """Failure confined to one source unit."""


class UnresolvedRecipe(UnitError):
    """Raised when a unit identifier has no counterpart in the recipe monorepo."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"no recipe found for {identifier!r}")
        self.identifier = identifier


class CorruptArchive(UnitError):
    """Raised when a package archive is unreadable or truncated."""

    def __init__(self, package: str, detail: str) -> None:
        """Initialise the error for ``package``.

        Args:
            package: Name of the package whose archive failed.
            detail: Description of the underlying failure.
        """

        super().__init__(f"{package}: {detail}")
        self.package = package
        self.detail = detail


class MissingPayload(CorruptArchive):
    """Raised when an archive lacks its ``install.tar.xz`` payload."""


class ArchiveTimeout(CorruptArchive):
    """Raised when extraction exceeds the configured deadline."""


class PayloadFetchError(UnitError):
    """Raised when a package payload cannot be downloaded or verified."""

    def __init__(self, package: str, detail: str) -> None:
        super().__init__(f"{package}: {detail}")
        self.package = package
        self.detail = detail


class PathEscape(UnitError):
    """Raised when an archive entry would be written outside the staging root."""

    def __init__(self, package: str, member: str) -> None:
        super().__init__(f"{package}: entry {member!r} escapes the staging root")
        self.package = package
        self.member = member


class PathConflict(UnitError):
    """Raised when two packages of one unit claim a path with differing content."""

    def __init__(self, path: PurePosixPath, owner: str, claimant: str) -> None:
        """Initialise the conflict description.

        Args:
            path: Tree-relative path claimed twice.
            owner: Package that first claimed ``path``.
            claimant: Package whose differing content triggered the conflict.
        """

        super().__init__(f"/{path} provided by both {owner} and {claimant} with different content")
        self.path = path
        self.owner = owner
        self.claimant = claimant


class EmptyTree(UnitError):
    """Raised when a resolved unit produced no files to install."""

    def __init__(self, unit: str) -> None:
        super().__init__(f"{unit}: extraction produced no files")
        self.unit = unit


class GlobCoverageError(UnitError):
    """Raised when computed path globs do not cover the import tree exactly."""


class EmitError(UnitError):
    """Raised when a manifest or import tree cannot be published."""


class ConversionCancelled(UnitError):
    """Raised inside workers once the run has been cancelled."""


class InvalidTransition(RuntimeError):
    """Raised when a unit state machine is driven backwards."""


__all__ = [
    "ArchiveTimeout",
    "ConfigError",
    "ConversionCancelled",
    "ConversionError",
    "CorruptArchive",
    "EmitError",
    "EmptyTree",
    "FilterSyntaxError",
    "GlobCoverageError",
    "IndexReadError",
    "InvalidTransition",
    "MissingPayload",
    "PathConflict",
    "PathEscape",
    "PayloadFetchError",
    "PreconditionError",
    "UnitError",
    "UnresolvedRecipe",
]
