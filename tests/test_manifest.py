# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for manifest rendering and publication."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from builders import file_members, write_eopkg

from pisi2stone.archive import ArchiveReader
from pisi2stone.errors import EmitError, EmptyTree
from pisi2stone.grouping import SourceUnit
from pisi2stone.index import PackageRecord
from pisi2stone.manifest import INSTALL_SCRIPT, Manifest, ManifestEmitter, render_manifest
from pisi2stone.recipes import MatchKind, RecipeLocation
from pisi2stone.tree import ImportTree, TreeMaterializer


def _record(name: str, **overrides: object) -> PackageRecord:
    fields: dict[str, object] = {
        "name": name,
        "source": "foo",
        "version": "1.2.3",
        "release": 7,
        "payload": f"{name}.eopkg",
        "summary": "Foo tool",
        "description": "Foo does\n  many things.",
        "licenses": ("GPL-2.0-or-later", "MIT"),
    }
    fields.update(overrides)
    return PackageRecord.model_validate(fields)


def _tree(tmp_path: Path, unit: SourceUnit, files: dict[str, dict[str, str]], emitter: ManifestEmitter) -> ImportTree:
    stagings = []
    for record in unit.members:
        archive = write_eopkg(tmp_path / "archives" / f"{record.name}.eopkg", file_members(files.get(record.name, {})))
        stagings.append(ArchiveReader().extract(archive, record, tmp_path / "staging" / record.name))
    return TreeMaterializer().materialize(unit, stagings, emitter.tree_path(unit.identifier))


def _location() -> RecipeLocation:
    return RecipeLocation(identifier="foo", path="packages/f/foo", match=MatchKind.EXACT)


def test_render_uses_fixed_key_order_and_literal_install_block() -> None:
    manifest = Manifest(
        name="foo",
        version="1.0",
        release=2,
        homepage="https://foo.example",
        summary="Foo",
        description="Foo tool",
        license=("MIT",),
        packages={"foo": ("/usr/bin/*",), "foo-data": ("/usr/share/foo/*",)},
        recipe="packages/f/foo",
    )

    text = render_manifest(manifest)

    assert text.startswith("# Converted from binary packages; recipe: packages/f/foo\n")
    keys = [line.split(":")[0] for line in text.splitlines() if line and not line.startswith((" ", "#", "-"))]
    assert keys == [
        "name",
        "version",
        "release",
        "homepage",
        "summary",
        "description",
        "strip",
        "license",
        "install",
        "packages",
    ]
    assert "install: |\n" in text
    assert "version: '1.0'" in text
    document = yaml.safe_load(text)
    assert document["install"] == INSTALL_SCRIPT
    assert document["packages"] == [{"foo": {"paths": ["/usr/bin/*"]}}, {"foo-data": {"paths": ["/usr/share/foo/*"]}}]
    assert render_manifest(manifest) == text


def test_emit_publishes_tree_and_manifest(tmp_path: Path) -> None:
    unit = SourceUnit(identifier="foo", members=(_record("foo"), _record("foo-data", release=3)))
    emitter = ManifestEmitter(tmp_path / "out")
    tree = _tree(
        tmp_path,
        unit,
        {"foo": {"usr/bin/foo": "bin"}, "foo-data": {"usr/share/foo/a": "a", "usr/share/foo/b/c": "c"}},
        emitter,
    )

    result = emitter.emit(unit, tree, _location())

    assert result.manifest_path == tmp_path / "out" / "foo" / "stone.yml"
    assert (result.tree_path / "usr/share/foo/b/c").read_text(encoding="utf-8") == "c"
    assert not tree.root.exists()
    document = yaml.safe_load(result.manifest_path.read_text(encoding="utf-8"))
    assert document["name"] == "foo"
    assert document["version"] == "1.2.3"
    assert document["release"] == 7
    assert document["homepage"] == "no-homepage-set"
    assert document["description"] == "Foo does many things."
    assert document["license"] == ["GPL-2.0-or-later", "MIT"]
    assert document["strip"] is False
    assert document["packages"] == [
        {"foo": {"paths": ["/usr/bin/*"]}},
        {"foo-data": {"paths": ["/usr/share/*"]}},
    ]
    assert sorted(path.name for path in (tmp_path / "out" / "foo" / "pkg").iterdir()) == ["import"]


def test_reemit_replaces_the_previous_tree(tmp_path: Path) -> None:
    unit = SourceUnit(identifier="foo", members=(_record("foo"),))
    emitter = ManifestEmitter(tmp_path / "out")
    emitter.emit(unit, _tree(tmp_path, unit, {"foo": {"usr/bin/old": "1"}}, emitter), _location())

    result = emitter.emit(unit, _tree(tmp_path, unit, {"foo": {"usr/bin/new": "2"}}, emitter), _location())

    assert sorted(path.name for path in (result.tree_path / "usr/bin").iterdir()) == ["new"]


def test_empty_tree_is_discarded_without_output(tmp_path: Path) -> None:
    unit = SourceUnit(identifier="foo", members=(_record("foo"),))
    emitter = ManifestEmitter(tmp_path / "out")
    tree = _tree(tmp_path, unit, {}, emitter)

    with pytest.raises(EmptyTree):
        emitter.emit(unit, tree, _location())

    assert not tree.root.exists()
    assert not emitter.manifest_path("foo").exists()
    assert not emitter.unit_directory("foo").exists()


def test_metadata_fallbacks(tmp_path: Path) -> None:
    record = _record("foo", summary="", description="", homepage="https://foo.example", licenses=())
    unit = SourceUnit(identifier="foo", members=(record,))
    emitter = ManifestEmitter(tmp_path / "out", strip=True, homepage_placeholder="unused")
    tree = _tree(tmp_path, unit, {"foo": {"usr/bin/foo": "x"}}, emitter)

    manifest = emitter.build(unit, tree)

    assert manifest.summary == "foo"
    assert manifest.description == "foo"
    assert manifest.homepage == "https://foo.example"
    assert manifest.strip is True
    assert manifest.recipe is None
    tree.discard()


def test_retire_removes_published_output(tmp_path: Path) -> None:
    unit = SourceUnit(identifier="foo", members=(_record("foo"),))
    emitter = ManifestEmitter(tmp_path / "out")
    emitter.emit(unit, _tree(tmp_path, unit, {"foo": {"usr/bin/foo": "1"}}, emitter), _location())

    emitter.prune("foo")
    assert emitter.manifest_path("foo").is_file()
    emitter.retire("foo")
    emitter.retire("foo")
    emitter.retire("../escape")

    assert sorted(path.name for path in (tmp_path / "out").iterdir()) == []


@pytest.mark.parametrize("identifier", ["../escape", "a/b", ".", ""])
def test_unit_identifier_must_be_a_single_path_segment(tmp_path: Path, identifier: str) -> None:
    with pytest.raises(EmitError):
        ManifestEmitter(tmp_path).unit_directory(identifier)
