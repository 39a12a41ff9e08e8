# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for include/exclude selection and seed closures."""

from __future__ import annotations

import pytest

from pisi2stone.errors import FilterSyntaxError
from pisi2stone.index import PackageRecord, select_closure
from pisi2stone.selection import build_filter


def test_empty_filter_selects_everything() -> None:
    selection = build_filter()

    assert selection.includes("anything")


def test_exclude_wins_over_include() -> None:
    selection = build_filter(["python*", "rust"], ["python-docs*"])

    assert selection.includes("python3")
    assert selection.includes("rust")
    assert not selection.includes("python-docs-extra")
    assert not selection.includes("golang")


def test_patterns_match_whole_identifiers() -> None:
    selection = build_filter(["gtk[34]"])

    assert selection.includes("gtk3")
    assert not selection.includes("gtk3-docs")
    assert not selection.includes("gtk2")


@pytest.mark.parametrize("pattern", ["", "  ", "foo[", "bar]", " lead"])
def test_malformed_patterns_are_rejected(pattern: str) -> None:
    with pytest.raises(FilterSyntaxError) as excinfo:
        build_filter([pattern])
    assert excinfo.value.pattern == pattern


def test_build_filter_accepts_generators() -> None:
    selection = build_filter((item for item in ["a*"]), (item for item in ["ab"]))

    assert selection.include == ("a*",)
    assert not selection.includes("ab")


def _record(name: str, component: str | None = None, deps: tuple[str, ...] = ()) -> PackageRecord:
    return PackageRecord(
        name=name,
        version="1",
        release=1,
        payload=f"{name}.eopkg",
        component=component,
        runtime_deps=deps,
    )


def test_closure_without_seeds_keeps_every_record() -> None:
    records = [_record("a"), _record("b")]

    selection = select_closure(records)

    assert selection.records == tuple(records)
    assert selection.unknown == ()


def test_closure_follows_runtime_dependencies_and_reports_unknown_names() -> None:
    records = [
        _record("glibc"),
        _record("bash", "system.base", ("glibc", "readline")),
        _record("readline", deps=("ncurses", "glibc")),
        _record("ncurses"),
        _record("firefox", "network.web", ("gtk3",)),
    ]

    selection = select_closure(records, components=["system.base"], packages=["missing"])

    assert [record.name for record in selection.records] == ["glibc", "bash", "readline", "ncurses"]
    assert selection.unknown == ("missing",)
