# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Deterministic ``stone.yml`` rendering."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Final

import yaml
from pydantic import BaseModel, ConfigDict, Field

INSTALL_SCRIPT: Final[str] = "%install_dir %(installroot)\ncp -a %(pkgdir)/import/. %(installroot)/\n"
HEADER_TEMPLATE: Final[str] = "# Converted from binary packages; recipe: {recipe}\n"


class Manifest(BaseModel):
    """Content of one ``stone.yml`` document, in emission order."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    release: int
    homepage: str
    summary: str
    description: str
    license: tuple[str, ...] = Field(default_factory=tuple)
    strip: bool = False
    install: str = INSTALL_SCRIPT
    packages: Mapping[str, tuple[str, ...]] = Field(default_factory=dict)
    recipe: str | None = Field(default=None, exclude=True)

    def document(self) -> dict[str, Any]:
        """Return the ordered mapping that is serialised to YAML."""

        return {
            "name": self.name,
            "version": self.version,
            "release": self.release,
            "homepage": self.homepage,
            "summary": self.summary,
            "description": self.description,
            "strip": self.strip,
            "license": list(self.license),
            "install": self.install,
            "packages": [{owner: {"paths": list(paths)}} for owner, paths in self.packages.items()],
        }


class _ManifestDumper(yaml.SafeDumper):
    """Safe dumper that indents block sequences under their parent key."""

    def increase_indent(self, flow: bool = False, indentless: bool = False) -> None:
        super().increase_indent(flow, False)


def _represent_str(dumper: yaml.SafeDumper, value: str) -> yaml.ScalarNode:
    if "\n" in value:
        return dumper.represent_scalar("tag:yaml.org,2002:str", value, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", value)


_ManifestDumper.add_representer(str, _represent_str)


def render_manifest(manifest: Manifest) -> str:
    """Serialise ``manifest`` with a fixed key order and scalar style.

    Args:
        manifest: Manifest to render.

    Returns:
        str: YAML text, prefixed with a comment naming the monorepo recipe
        when one is known.
    """

    body = yaml.dump(
        manifest.document(),
        Dumper=_ManifestDumper,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
        width=4096,
    )
    if manifest.recipe:
        return HEADER_TEMPLATE.format(recipe=manifest.recipe) + body
    return body


__all__ = ["HEADER_TEMPLATE", "INSTALL_SCRIPT", "Manifest", "render_manifest"]
