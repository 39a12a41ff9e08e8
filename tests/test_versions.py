# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for version ordering and lead record selection."""

from __future__ import annotations

import pytest

from pisi2stone.index import PackageRecord, compare_versions, select_lead


def _record(name: str, version: str, release: int) -> PackageRecord:
    return PackageRecord(name=name, source="unit", version=version, release=release, payload=f"{name}.eopkg")


@pytest.mark.parametrize(
    ("left", "right", "expected"),
    [
        ("1.0", "1.0", 0),
        ("1.10", "1.9", 1),
        ("2.0rc1", "2.0", -1),
        ("2.38_p1", "2.38_p2", -1),
        ("1.0.0b", "1.0.0a", 1),
        ("20230101", "20221231", 1),
        ("1.0", "1.0.0", -1),
    ],
)
def test_compare_versions(left: str, right: str, expected: int) -> None:
    assert compare_versions(left, right) == expected
    assert compare_versions(right, left) == -expected


def test_lead_prefers_version_then_release_then_smallest_name() -> None:
    records = [
        _record("foo-data", "1.2", 1),
        _record("foo", "1.2", 4),
        _record("foo-devel", "1.2", 4),
        _record("foo-docs", "1.1", 9),
    ]

    assert select_lead(records).name == "foo"
    assert select_lead(records[:1] + records[3:]).name == "foo-data"


def test_lead_of_empty_group_is_an_error() -> None:
    with pytest.raises(ValueError):
        select_lead([])
