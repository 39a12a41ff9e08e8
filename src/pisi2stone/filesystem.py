# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Helpers for reasoning about filesystem paths and publishing files atomically."""

from __future__ import annotations

import os
import shutil
import tempfile
import uuid
from pathlib import Path, PurePosixPath


def safe_relative_path(name: str) -> PurePosixPath | None:
    """Return ``name`` as a normalised relative path, or ``None`` if it escapes.

    Archive member names are POSIX strings. Leading ``./`` segments are
    dropped; absolute names and names whose ``..`` segments climb above the
    root are rejected.

    Args:
        name: Raw member name taken from an archive.

    Returns:
        PurePosixPath | None: Normalised path, or ``None`` when the name is
        absolute or climbs out of the root.
    """

    if not name or name.startswith("/") or "\\" in name:
        return None
    parts: list[str] = []
    for part in name.split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            if not parts:
                return None
            parts.pop()
            continue
        parts.append(part)
    if not parts:
        return PurePosixPath(".")
    return PurePosixPath(*parts)


def atomic_write_text(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` through a temporary sibling and rename.

    Args:
        path: Final destination of the document.
        content: UTF-8 text to persist.
    """

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
            handle.write(content)
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def scratch_sibling(destination: Path, label: str) -> Path:
    """Return a unique, not-yet-existing sibling path of ``destination``."""

    return destination.parent / f".{destination.name}.{label}-{uuid.uuid4().hex[:12]}"


def replace_directory(source: Path, destination: Path) -> None:
    """Move the directory ``source`` into place at ``destination``.

    Any previous directory at ``destination`` is renamed aside first and
    removed only after the new tree is in place, so readers never observe a
    half-populated destination.

    Args:
        source: Fully populated directory on the same filesystem.
        destination: Final location of the directory.
    """

    destination.parent.mkdir(parents=True, exist_ok=True)
    retired: Path | None = None
    if destination.exists() or destination.is_symlink():
        retired = scratch_sibling(destination, "old")
        os.replace(destination, retired)
    os.replace(source, destination)
    if retired is not None:
        remove_tree(retired)


def remove_tree(path: Path) -> None:
    """Remove ``path`` recursively, tolerating read-only entries."""

    if not path.exists() and not path.is_symlink():
        return
    if path.is_symlink() or path.is_file():
        path.unlink()
        return

    for directory, _subdirs, _files in os.walk(path):
        os.chmod(directory, 0o700)
    shutil.rmtree(path)


__all__ = [
    "atomic_write_text",
    "remove_tree",
    "replace_directory",
    "safe_relative_path",
    "scratch_sibling",
]
