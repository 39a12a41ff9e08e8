# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Builders for synthetic eopkg archives, indexes, and run configurations."""

from __future__ import annotations

import hashlib
import io
import json
import lzma
import tarfile
import zipfile
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from xml.sax.saxutils import escape

from pisi2stone.config import ConvertConfig


@dataclass(frozen=True)
class Member:
    """One tar member of a synthetic payload."""

    name: str
    data: bytes = b""
    kind: str = "file"
    target: str = ""
    mode: int = 0o644


def build_payload(members: Sequence[Member]) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:xz") as archive:
        for member in members:
            info = tarfile.TarInfo(member.name)
            info.mtime = 0
            info.mode = member.mode
            payload: io.BytesIO | None = None
            if member.kind == "file":
                info.size = len(member.data)
                payload = io.BytesIO(member.data)
            elif member.kind == "dir":
                info.type = tarfile.DIRTYPE
                info.mode = member.mode if member.mode != 0o644 else 0o755
            elif member.kind == "symlink":
                info.type = tarfile.SYMTYPE
                info.linkname = member.target
            elif member.kind == "hardlink":
                info.type = tarfile.LNKTYPE
                info.linkname = member.target
            elif member.kind == "fifo":
                info.type = tarfile.FIFOTYPE
            else:
                raise ValueError(member.kind)
            archive.addfile(info, payload)
    return buffer.getvalue()


def files_xml(files: Mapping[str, bytes]) -> str:
    entries = "".join(
        f"<File><Path>{escape(path)}</Path><Type>data</Type><Size>{len(data)}</Size>"
        f"<Hash>{hashlib.sha1(data).hexdigest()}</Hash></File>"
        for path, data in sorted(files.items())
    )
    return f"<Files>{entries}</Files>"


def write_eopkg(
    path: Path,
    members: Sequence[Member],
    *,
    payload: bool = True,
    declared: Mapping[str, bytes] | None = None,
    truncate: bool = False,
) -> Path:
    """Write an eopkg zip container at ``path``."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as container:
        container.writestr("metadata.xml", "<PISI><Package><Name>synthetic</Name></Package></PISI>")
        if declared is not None:
            container.writestr("files.xml", files_xml(declared))
        if payload:
            data = build_payload(members)
            if truncate:
                data = data[: len(data) // 2]
            container.writestr("install.tar.xz", data)
    return path


def file_members(files: Mapping[str, bytes | str]) -> list[Member]:
    return [
        Member(name=path, data=data.encode("utf-8") if isinstance(data, str) else data)
        for path, data in sorted(files.items())
    ]


class Distro:
    """Tiny eopkg repository: a package directory plus an index document."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.packages_dir = root / "packages"
        self.index_path = root / "eopkg-index.xml"
        self._fragments: list[str] = []

    def add(
        self,
        name: str,
        files: Mapping[str, bytes | str] | None = None,
        *,
        source: str | None = None,
        version: str = "1.0",
        release: int = 1,
        members: Sequence[Member] | None = None,
        declare_files: bool = False,
        summary: str | None = None,
        description: str | None = None,
        homepage: str | None = None,
        licenses: Iterable[str] = ("MIT",),
        component: str | None = None,
        deps: Iterable[str] = (),
        truncate: bool = False,
        payload: bool = True,
        write_archive: bool = True,
    ) -> str:
        """Create the archive of ``name`` and queue its index entry; return its URI."""

        uri = f"{name[0]}/{name}/{name}-{version}-{release}-1-x86_64.eopkg"
        encoded = {path: (data.encode("utf-8") if isinstance(data, str) else data) for path, data in (files or {}).items()}
        archive_members = list(members) if members is not None else file_members(encoded)
        archive_path = self.packages_dir / uri
        if write_archive:
            write_eopkg(archive_path, archive_members, payload=payload, truncate=truncate)
        parts = [f"<Name>{escape(name)}</Name>"]
        parts.append(f'<Summary xml:lang="en">{escape(summary or f"{name} summary")}</Summary>')
        parts.append(f'<Description xml:lang="en">{escape(description or f"{name} description")}</Description>')
        parts.extend(f"<License>{escape(item)}</License>" for item in licenses)
        if component:
            parts.append(f"<PartOf>{escape(component)}</PartOf>")
        dependencies = "".join(f"<Dependency>{escape(dep)}</Dependency>" for dep in deps)
        if dependencies:
            parts.append(f"<RuntimeDependencies>{dependencies}</RuntimeDependencies>")
        parts.append(
            f'<History><Update release="{release}"><Date>2024-01-01</Date>'
            f"<Version>{escape(version)}</Version></Update></History>"
        )
        if source is not None or homepage is not None:
            source_parts = f"<Name>{escape(source)}</Name>" if source is not None else ""
            if homepage is not None:
                source_parts += f"<Homepage>{escape(homepage)}</Homepage>"
            parts.append(f"<Source>{source_parts}</Source>")
        parts.append(f"<PackageURI>{escape(uri)}</PackageURI>")
        if write_archive:
            digest = hashlib.sha1(archive_path.read_bytes()).hexdigest()
            parts.append(f"<PackageSize>{archive_path.stat().st_size}</PackageSize>")
            parts.append(f"<PackageHash>{digest}</PackageHash>")
        if declare_files:
            parts.append(files_xml(encoded))
        self._fragments.append(f"<Package>{''.join(parts)}</Package>")
        return uri

    def add_raw(self, fragment: str) -> None:
        self._fragments.append(fragment)

    def document(self) -> bytes:
        body = "".join(self._fragments)
        return (
            '<?xml version="1.0" encoding="utf-8"?>'
            f"<PISI><Distribution><SourceName>Solus</SourceName></Distribution>{body}</PISI>"
        ).encode("utf-8")

    def write_index(self, *, compress: bool = False) -> Path:
        data = self.document()
        if compress:
            self.index_path = self.index_path.with_name("eopkg-index.xml.xz")
            data = lzma.compress(data)
        self.index_path.parent.mkdir(parents=True, exist_ok=True)
        self.index_path.write_bytes(data)
        return self.index_path


def write_recipe_map(path: Path, identifiers: Iterable[str]) -> Path:
    path.write_text(
        json.dumps({identifier: f"packages/{identifier[0]}/{identifier}" for identifier in identifiers}),
        encoding="utf-8",
    )
    return path


def make_config(
    tmp_path: Path,
    distro: Distro,
    *,
    recipes: Iterable[str],
    include: Sequence[str] = (),
    exclude: Sequence[str] = (),
    jobs: int = 2,
    use_cache: bool = False,
) -> ConvertConfig:
    """Return a configuration converting ``distro`` into ``tmp_path / 'out'``."""

    recipe_map = write_recipe_map(tmp_path / "recipes.json", recipes)
    return ConvertConfig.model_validate(
        {
            "paths": {
                "index": str(distro.index_path),
                "packages_dir": str(distro.packages_dir),
                "recipe_map": str(recipe_map),
                "output_root": str(tmp_path / "out"),
                "staging_root": str(tmp_path / "staging"),
                "cache_dir": str(tmp_path / "cache"),
            },
            "selection": {"include": list(include), "exclude": list(exclude)},
            "execution": {
                "jobs": jobs,
                "extract_jobs": jobs,
                "use_resolution_cache": use_cache,
            },
        },
    )
