# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Partition package records into source units."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Iterator, Mapping

from pydantic import BaseModel, ConfigDict, model_validator

from .index.models import PackageRecord
from .index.versions import select_lead


class SourceUnit(BaseModel):
    """A source identifier and the binary packages built from it."""

    model_config = ConfigDict(frozen=True)

    identifier: str
    members: tuple[PackageRecord, ...]

    @model_validator(mode="after")
    def _check_members(self) -> SourceUnit:
        if not self.members:
            raise ValueError(f"source unit {self.identifier!r} has no members")
        names = [member.name for member in self.members]
        if names != sorted(names):
            raise ValueError(f"members of {self.identifier!r} must be ordered by package name")
        return self

    @property
    def lead(self) -> PackageRecord:
        """Return the member whose metadata represents the unit."""

        return select_lead(self.members)

    @property
    def version(self) -> str:
        """Return the unit version, taken from :attr:`lead`."""

        return self.lead.version

    @property
    def release(self) -> int:
        """Return the unit release number, taken from :attr:`lead`."""

        return self.lead.release

    @property
    def package_names(self) -> tuple[str, ...]:
        """Return member package names in their canonical order."""

        return tuple(member.name for member in self.members)


class SourceGroups(Mapping[str, SourceUnit]):
    """Read-only mapping of units that always iterates in sorted key order."""

    def __init__(self, units: Mapping[str, SourceUnit]) -> None:
        self._units = {key: units[key] for key in sorted(units)}

    def __getitem__(self, key: str) -> SourceUnit:
        return self._units[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._units)

    def __len__(self) -> int:
        return len(self._units)

    def __repr__(self) -> str:
        return f"SourceGroups({list(self._units)!r})"


def group_by_source(records: Iterable[PackageRecord]) -> SourceGroups:
    """Group ``records`` by their source-unit identifier.

    Records without a declared source become a singleton group keyed by their
    own package name. Such a key may coincide with a declared source name, in
    which case the record joins that group: the package name is the source
    identifier in both cases.

    Args:
        records: Package records to partition.

    Returns:
        SourceGroups: Units keyed and iterated by identifier in ascending order.
    """

    buckets: dict[str, list[PackageRecord]] = defaultdict(list)
    for record in records:
        buckets[record.group_key].append(record)
    units = {
        key: SourceUnit(identifier=key, members=tuple(sorted(bucket, key=lambda item: item.name)))
        for key, bucket in buckets.items()
    }
    return SourceGroups(units)


__all__ = ["SourceGroups", "SourceUnit", "group_by_source"]
