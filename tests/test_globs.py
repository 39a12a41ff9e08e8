# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for path glob minimisation."""

from __future__ import annotations

from pathlib import PurePosixPath

import pytest

from pisi2stone.errors import GlobCoverageError
from pisi2stone.index import DeclaredFile, PackageRecord
from pisi2stone.manifest import DeclaredPaths, compute_globs, expand_globs, verify_coverage


def _owners(mapping: dict[str, str]) -> dict[PurePosixPath, str]:
    return {PurePosixPath(path): owner for path, owner in mapping.items()}


def test_single_owner_directories_collapse_to_the_shallowest_allowed_depth() -> None:
    owners = _owners(
        {
            "usr/bin/foo": "foo",
            "usr/share/foo/a.dat": "foo-data",
            "usr/share/foo/sub/b.dat": "foo-data",
            "usr/share/doc/foo/README": "foo-docs",
        },
    )

    globs = compute_globs(owners)

    assert globs == {
        "foo": ("/usr/bin/*",),
        "foo-data": ("/usr/share/foo/*",),
        "foo-docs": ("/usr/share/doc/*",),
    }
    verify_coverage(globs, owners)


def test_shallow_directories_never_collapse() -> None:
    owners = _owners({"etc/foo.conf": "foo", "opt/bar": "foo"})

    assert compute_globs(owners) == {"foo": ("/etc/foo.conf", "/opt/bar")}
    assert compute_globs(owners, min_depth=1) == {"foo": ("/etc/*", "/opt/*")}


def test_mixed_directories_fall_back_to_deeper_globs_and_literals() -> None:
    owners = _owners(
        {
            "usr/lib/libfoo.so.1": "foo",
            "usr/lib/libfoo.so": "foo-devel",
            "usr/lib/pkgconfig/foo.pc": "foo-devel",
        },
    )

    globs = compute_globs(owners)

    assert globs == {
        "foo": ("/usr/lib/libfoo.so.1",),
        "foo-devel": ("/usr/lib/libfoo.so", "/usr/lib/pkgconfig/*"),
    }
    verify_coverage(globs, owners)


def test_foreign_declared_files_block_a_collapse() -> None:
    owners = _owners({"usr/bin/foo": "foo", "usr/bin/foo-helper": "foo"})
    other = PackageRecord(
        name="coreutils",
        version="9",
        release=1,
        payload="c.eopkg",
        files=(DeclaredFile(path="/usr/bin/ls"),),
    )
    mine = PackageRecord(
        name="foo",
        version="1",
        release=1,
        payload="f.eopkg",
        files=(DeclaredFile(path="/usr/bin/foo"),),
    )
    declared = DeclaredPaths([other, mine])
    members = frozenset({"foo"})

    globs = compute_globs(owners, has_foreign=lambda directory: declared.foreign_under(directory, members))

    assert globs == {"foo": ("/usr/bin/foo", "/usr/bin/foo-helper")}
    assert not declared.foreign_under(PurePosixPath("usr/bin"), frozenset({"foo", "coreutils"}))


def test_packages_without_file_lists_are_foreign_everywhere() -> None:
    silent = PackageRecord(name="mystery", version="1", release=1, payload="m.eopkg")
    mine = PackageRecord(
        name="foo",
        version="1",
        release=1,
        payload="f.eopkg",
        files=(DeclaredFile(path="/usr/bin/foo"),),
    )
    declared = DeclaredPaths([silent, mine])

    assert declared.foreign_under(PurePosixPath("usr/bin"), frozenset({"foo"}))
    assert declared.foreign_under(PurePosixPath("opt/foo"), frozenset({"foo"}))
    assert not declared.foreign_under(PurePosixPath("usr/bin"), frozenset({"foo", "mystery"}))


def test_saturated_directories_count_as_foreign() -> None:
    records = [
        PackageRecord(
            name=f"pkg{index}",
            version="1",
            release=1,
            payload=f"{index}.eopkg",
            files=(DeclaredFile(path=f"/usr/lib/file{index}"),),
        )
        for index in range(4)
    ]
    declared = DeclaredPaths(records, limit=2)

    assert declared.foreign_under(PurePosixPath("usr/lib"), frozenset({"pkg0", "pkg1"}))
    assert not declared.foreign_under(PurePosixPath("usr/share"), frozenset({"pkg0"}))


def test_expand_globs_is_recursive_and_literal_otherwise() -> None:
    paths = [PurePosixPath(item) for item in ("usr/share/foo/a", "usr/share/foo/x/y", "usr/share/foobar", "usr/bin/foo")]

    assert expand_globs(["/usr/share/foo/*", "/usr/bin/foo"], paths) == frozenset(
        {PurePosixPath("usr/share/foo/a"), PurePosixPath("usr/share/foo/x/y"), PurePosixPath("usr/bin/foo")},
    )


def test_coverage_check_rejects_overlapping_globs() -> None:
    owners = _owners({"usr/share/foo/a": "foo", "usr/share/foo/b": "foo-data"})

    with pytest.raises(GlobCoverageError):
        verify_coverage({"foo": ("/usr/share/*",), "foo-data": ("/usr/share/foo/b",)}, owners)
    with pytest.raises(GlobCoverageError, match="uncovered"):
        verify_coverage({"foo": ("/usr/share/foo/a",)}, owners)
