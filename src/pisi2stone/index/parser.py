# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Parse ``eopkg-index.xml`` documents into :class:`PackageIndex` values.

The index may be stored raw or xz-compressed; compression is detected from the
magic bytes rather than the filename. Malformed documents abort the run, while
individual records missing required fields are skipped and reported.
"""

from __future__ import annotations

import logging
import lzma
import xml.etree.ElementTree as ET
from collections.abc import Iterable
from pathlib import Path
from typing import Final

from pydantic import ValidationError

from ..errors import IndexReadError
from .models import DeclaredFile, IndexParseIssue, PackageIndex, PackageRecord

LOGGER = logging.getLogger(__name__)

XZ_MAGIC: Final[bytes] = b"\xfd7zXZ\x00"
XML_LANG: Final[str] = "{http://www.w3.org/XML/1998/namespace}lang"
PREFERRED_LANGS: Final[tuple[str | None, ...]] = (None, "en")


class _MissingField(Exception):
    """Raised internally when a required element is absent."""


def load_index(path: Path) -> PackageIndex:
    """Read and parse the index document at ``path``.

    Args:
        path: Location of ``eopkg-index.xml`` or ``eopkg-index.xml.xz``.

    Returns:
        PackageIndex: Parsed records plus the issues raised by skipped entries.

    Raises:
        IndexReadError: If the file cannot be read, decompressed, or parsed.
    """

    try:
        data = path.read_bytes()
    except OSError as exc:
        raise IndexReadError(f"cannot read index {path}: {exc}") from exc
    return parse_index(data, origin=str(path))


def parse_index(data: bytes, *, origin: str = "<index>") -> PackageIndex:
    """Parse raw (optionally xz-compressed) index bytes."""

    if data.startswith(XZ_MAGIC):
        try:
            data = lzma.decompress(data)
        except lzma.LZMAError as exc:
            raise IndexReadError(f"cannot decompress index {origin}: {exc}") from exc
    try:
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        raise IndexReadError(f"malformed index {origin}: {exc}") from exc
    if root.tag != "PISI":
        raise IndexReadError(f"unexpected index root <{root.tag}> in {origin}")

    records: list[PackageRecord] = []
    issues: list[IndexParseIssue] = []
    seen: set[str] = set()
    for position, element in enumerate(root.findall("Package")):
        name = _text(element, "Name")
        try:
            record = _parse_package(element)
        except _MissingField as exc:
            issues.append(IndexParseIssue(position=position, package=name, message=str(exc)))
            continue
        except (ValidationError, ValueError) as exc:
            issues.append(IndexParseIssue(position=position, package=name, message=_first_line(str(exc))))
            continue
        if record.name in seen:
            issues.append(IndexParseIssue(position=position, package=record.name, message="duplicate package name"))
            continue
        seen.add(record.name)
        records.append(record)

    for issue in issues:
        LOGGER.debug("skipped index record %s (%s): %s", issue.position, issue.package, issue.message)
    distribution = _text(root.find("Distribution"), "SourceName")
    return PackageIndex(distribution=distribution, records=tuple(records), issues=tuple(issues))


def _parse_package(element: ET.Element) -> PackageRecord:
    name = _required(element, "Name")
    payload = _required(element, "PackageURI")
    update = element.find("History/Update")
    if update is None:
        raise _MissingField("missing History/Update")
    version = _text(update, "Version")
    if not version:
        raise _MissingField("missing History/Update/Version")
    release_raw = update.get("release")
    if release_raw is None:
        raise _MissingField("missing release attribute on History/Update")
    try:
        release = int(release_raw.strip())
    except ValueError as exc:
        raise _MissingField(f"non-numeric release {release_raw!r}") from exc

    source = element.find("Source")
    return PackageRecord(
        name=name,
        source=_text(source, "Name"),
        version=version,
        release=release,
        summary=_localized(element, "Summary"),
        description=_localized(element, "Description"),
        licenses=tuple(_texts(element.findall("License"))),
        homepage=_text(source, "Homepage"),
        component=_text(element, "PartOf"),
        payload=payload,
        payload_size=_optional_int(_text(element, "PackageSize")),
        payload_hash=_text(element, "PackageHash"),
        runtime_deps=tuple(_texts(element.findall("RuntimeDependencies/Dependency"))),
        files=tuple(_parse_files(element.findall("Files/File"))),
    )


def parse_file_entries(elements: Iterable[ET.Element]) -> list[DeclaredFile]:
    """Return declared files for ``<File>`` elements (index or ``files.xml``)."""

    return _parse_files(elements)


def _parse_files(elements: Iterable[ET.Element]) -> list[DeclaredFile]:
    files: list[DeclaredFile] = []
    for item in elements:
        path = _text(item, "Path")
        if not path:
            continue
        files.append(
            DeclaredFile(
                path=path,
                size=_optional_int(_text(item, "Size")),
                checksum=_text(item, "Hash"),
                kind=_text(item, "Type") or "file",
            )
        )
    return files


def _text(element: ET.Element | None, tag: str) -> str | None:
    if element is None:
        return None
    child = element.find(tag)
    if child is None or child.text is None:
        return None
    value = child.text.strip()
    return value or None


def _required(element: ET.Element, tag: str) -> str:
    value = _text(element, tag)
    if value is None:
        raise _MissingField(f"missing {tag}")
    return value


def _texts(elements: Iterable[ET.Element]) -> list[str]:
    return [item.text.strip() for item in elements if item.text and item.text.strip()]


def _localized(element: ET.Element, tag: str) -> str:
    """Return the unlocalised or English variant of a translated element."""

    candidates = {child.get(XML_LANG): (child.text or "").strip() for child in element.findall(tag)}
    for lang in PREFERRED_LANGS:
        if candidates.get(lang):
            return candidates[lang]
    for lang in sorted(key for key in candidates if key is not None):
        if candidates[lang]:
            return candidates[lang]
    return ""


def _optional_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _first_line(message: str) -> str:
    return message.splitlines()[0] if message else message


__all__ = ["load_index", "parse_file_entries", "parse_index"]
