# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Staging-tree records produced by archive extraction."""

from __future__ import annotations

from enum import Enum
from pathlib import Path, PurePosixPath

from pydantic import BaseModel, ConfigDict, Field


class EntryKind(str, Enum):
    """Kinds of filesystem object staged from a payload."""

    FILE = "file"
    SYMLINK = "symlink"
    DIRECTORY = "directory"


class IntegrityProblem(str, Enum):
    """Ways the extracted payload can disagree with the declared file list."""

    MISSING = "missing"
    EXTRA = "extra"
    SIZE = "size-mismatch"
    HASH = "hash-mismatch"
    SKIPPED = "skipped-member"


class IntegrityWarning(BaseModel):
    """Non-fatal mismatch between declared and extracted contents."""

    model_config = ConfigDict(frozen=True)

    package: str
    path: str
    problem: IntegrityProblem
    detail: str = ""

    def render(self) -> str:
        """Return a one-line description for summaries and logs."""

        suffix = f" ({self.detail})" if self.detail else ""
        return f"{self.package}: /{self.path} {self.problem.value}{suffix}"


class StagedEntry(BaseModel):
    """One materialised path inside a staging tree."""

    model_config = ConfigDict(frozen=True)

    path: PurePosixPath
    kind: EntryKind
    mode: int = 0o644
    size: int = 0
    sha256: str | None = None
    sha1: str | None = None
    target: str | None = None

    def same_content(self, other: StagedEntry) -> bool:
        """Return ``True`` when ``other`` has the same kind and content."""

        if self.kind is not other.kind:
            return False
        if self.kind is EntryKind.SYMLINK:
            return self.target == other.target
        if self.kind is EntryKind.FILE:
            return self.sha256 == other.sha256
        return True


class StagingTree(BaseModel):
    """On-disk extraction of one package plus its sorted entry listing."""

    model_config = ConfigDict(frozen=True)

    package: str
    root: Path
    entries: tuple[StagedEntry, ...] = Field(default_factory=tuple)
    warnings: tuple[IntegrityWarning, ...] = Field(default_factory=tuple)

    @property
    def files(self) -> tuple[StagedEntry, ...]:
        """Return the non-directory entries."""

        return tuple(entry for entry in self.entries if entry.kind is not EntryKind.DIRECTORY)

    def source_path(self, entry: StagedEntry) -> Path:
        """Return the on-disk location of ``entry`` inside this tree."""

        return self.root.joinpath(*entry.path.parts)


__all__ = [
    "EntryKind",
    "IntegrityProblem",
    "IntegrityWarning",
    "StagedEntry",
    "StagingTree",
]
