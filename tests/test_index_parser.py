# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for package index parsing."""

from __future__ import annotations

import lzma
from pathlib import Path, PurePosixPath

import pytest
from builders import Distro

from pisi2stone.errors import IndexReadError
from pisi2stone.index import load_index, parse_index


def test_load_index_reads_records_in_document_order(distro: Distro) -> None:
    distro.add("zlib", {"usr/lib/libz.so.1": "z"}, homepage="https://zlib.net")
    distro.add("bash", {"usr/bin/bash": "sh"}, source="bash", version="5.2.15", release=3)
    index = load_index(distro.write_index())

    assert index.distribution == "Solus"
    assert [record.name for record in index.records] == ["zlib", "bash"]
    zlib, bash = index.records
    assert zlib.source is None
    assert zlib.group_key == "zlib"
    assert zlib.homepage == "https://zlib.net"
    assert bash.version == "5.2.15"
    assert bash.release == 3
    assert bash.label == "bash-5.2.15-3"
    assert bash.payload_filename == "bash-5.2.15-3-1-x86_64.eopkg"
    assert bash.payload_hash is not None
    assert bash.licenses == ("MIT",)


def test_load_index_detects_xz_by_magic_bytes(distro: Distro, tmp_path: Path) -> None:
    distro.add("nano", {"usr/bin/nano": "n"})
    disguised = tmp_path / "index.xml"
    disguised.write_bytes(lzma.compress(distro.document()))

    index = load_index(disguised)

    assert [record.name for record in index.records] == ["nano"]


def test_compressed_index_round_trips(distro: Distro) -> None:
    distro.add("nano", {"usr/bin/nano": "n"})
    path = distro.write_index(compress=True)

    assert path.name.endswith(".xz")
    assert [record.name for record in load_index(path).records] == ["nano"]


def test_records_missing_required_fields_are_reported_not_fatal(distro: Distro) -> None:
    distro.add("good", {"usr/bin/good": "g"})
    distro.add_raw(
        "<Package><Name>nouri</Name>"
        "<History><Update release='1'><Version>1</Version></Update></History></Package>"
    )
    distro.add_raw(
        "<Package><Name>norelease</Name><History><Update><Version>1</Version></Update></History>"
        "<PackageURI>n/norelease.eopkg</PackageURI></Package>"
    )
    distro.add_raw("<Package><PackageURI>x.eopkg</PackageURI></Package>")

    index = parse_index(distro.document())

    assert [record.name for record in index.records] == ["good"]
    messages = {issue.package: issue.message for issue in index.issues}
    assert messages["nouri"] == "missing PackageURI"
    assert "release" in messages["norelease"]
    assert messages[None] == "missing Name"
    assert [issue.position for issue in index.issues] == [1, 2, 3]


def test_duplicate_package_names_keep_the_first_record(distro: Distro) -> None:
    distro.add("dup", {"usr/bin/a": "a"}, version="1.0")
    distro.add("dup", {"usr/bin/a": "a"}, version="2.0", write_archive=False)

    index = parse_index(distro.document())

    assert len(index.records) == 1
    assert index.records[0].version == "1.0"
    assert index.issues[0].message == "duplicate package name"


def test_declared_files_are_relative_to_the_install_root(distro: Distro) -> None:
    distro.add("foo", {"usr/share/foo/a.txt": "a", "usr/bin/foo": "bin"}, declare_files=True)

    record = parse_index(distro.document()).records[0]

    assert [item.path for item in record.files] == [PurePosixPath("usr/bin/foo"), PurePosixPath("usr/share/foo/a.txt")]
    assert record.files[0].size == 3
    assert record.files[0].checksum is not None


def test_localised_summary_prefers_untagged_then_english() -> None:
    document = (
        b"<PISI><Package><Name>foo</Name>"
        b"<Summary xml:lang='de'>Zusammenfassung</Summary>"
        b"<Summary xml:lang='en'>English summary</Summary>"
        b"<Description xml:lang='de'>Nur Deutsch</Description>"
        b"<History><Update release='2'><Version>1.0</Version></Update></History>"
        b"<PackageURI>f/foo/foo.eopkg</PackageURI></Package></PISI>"
    )

    record = parse_index(document).records[0]

    assert record.summary == "English summary"
    assert record.description == "Nur Deutsch"


@pytest.mark.parametrize(
    "payload",
    [b"<PISI><Package>", b"<Other/>", b"\xfd7zXZ\x00garbage"],
)
def test_unusable_documents_abort(payload: bytes) -> None:
    with pytest.raises(IndexReadError):
        parse_index(payload)


def test_missing_index_file_is_a_precondition_failure(tmp_path: Path) -> None:
    with pytest.raises(IndexReadError, match="cannot read index"):
        load_index(tmp_path / "absent.xml")
