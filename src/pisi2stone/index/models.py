# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Immutable records describing the contents of an eopkg index."""

from __future__ import annotations

from pathlib import PurePosixPath

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DeclaredFile(BaseModel):
    """A file a package claims to install, as listed by the index or archive."""

    model_config = ConfigDict(frozen=True)

    path: PurePosixPath
    size: int | None = None
    checksum: str | None = None
    kind: str = "file"

    @field_validator("path", mode="before")
    @classmethod
    def _strip_root(cls, value: object) -> PurePosixPath:
        """Store paths relative to the install root."""

        text = str(value).lstrip("/")
        return PurePosixPath(text)


class PackageRecord(BaseModel):
    """One ``<Package>`` entry of the index.

    Records are frozen once loaded; the grouper and the orchestrator only ever
    derive new views from them.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    source: str | None = None
    version: str
    release: int
    summary: str = ""
    description: str = ""
    licenses: tuple[str, ...] = Field(default_factory=tuple)
    homepage: str | None = None
    component: str | None = None
    payload: str
    payload_size: int | None = None
    payload_hash: str | None = None
    runtime_deps: tuple[str, ...] = Field(default_factory=tuple)
    files: tuple[DeclaredFile, ...] = Field(default_factory=tuple)

    @property
    def group_key(self) -> str:
        """Return the source-unit identifier, falling back to the package name."""

        return self.source or self.name

    @property
    def payload_filename(self) -> str:
        """Return the final path segment of :attr:`payload`."""

        return PurePosixPath(self.payload).name

    @property
    def label(self) -> str:
        """Return ``name-version-release`` for log and report output."""

        return f"{self.name}-{self.version}-{self.release}"


class IndexParseIssue(BaseModel):
    """A record skipped while loading the index."""

    model_config = ConfigDict(frozen=True)

    position: int
    package: str | None
    message: str


class PackageIndex(BaseModel):
    """The parsed index: distribution metadata plus all valid records."""

    model_config = ConfigDict(frozen=True)

    distribution: str | None = None
    records: tuple[PackageRecord, ...] = Field(default_factory=tuple)
    issues: tuple[IndexParseIssue, ...] = Field(default_factory=tuple)


__all__ = ["DeclaredFile", "IndexParseIssue", "PackageIndex", "PackageRecord"]
