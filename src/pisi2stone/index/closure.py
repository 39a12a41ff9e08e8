# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Runtime-dependency closure used to seed a partial conversion."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from .models import PackageRecord


@dataclass(frozen=True, slots=True)
class SeedSelection:
    """Records reachable from the seeds plus names that could not be found."""

    records: tuple[PackageRecord, ...]
    unknown: tuple[str, ...] = field(default_factory=tuple)


def select_closure(
    records: Sequence[PackageRecord],
    *,
    components: Iterable[str] = (),
    packages: Iterable[str] = (),
) -> SeedSelection:
    """Return the runtime-dependency closure of the configured seeds.

    Seeds are every record whose component is listed in ``components`` plus the
    records named in ``packages``. Dependencies are followed breadth-first;
    names absent from the index are reported rather than raising. When no
    seeds are configured every record is selected.

    Args:
        records: All records of the index.
        components: Component identifiers (``PartOf``) whose packages seed the walk.
        packages: Explicit package names seeding the walk.

    Returns:
        SeedSelection: Selected records in index order and the unknown names.
    """

    component_set = set(components)
    explicit = list(packages)
    if not component_set and not explicit:
        return SeedSelection(records=tuple(records))

    by_name = {record.name: record for record in records}
    pending: deque[str] = deque(
        record.name for record in records if record.component is not None and record.component in component_set
    )
    pending.extend(explicit)

    reached: set[str] = set()
    unknown: set[str] = set()
    while pending:
        name = pending.popleft()
        if name in reached or name in unknown:
            continue
        record = by_name.get(name)
        if record is None:
            unknown.add(name)
            continue
        reached.add(name)
        pending.extend(dep for dep in record.runtime_deps if dep not in reached)

    selected = tuple(record for record in records if record.name in reached)
    return SeedSelection(records=selected, unknown=tuple(sorted(unknown)))


__all__ = ["SeedSelection", "select_closure"]
