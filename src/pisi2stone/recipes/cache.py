# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""File-backed side table of recipe lookups keyed by monorepo fingerprint."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from threading import Lock
from typing import Final, Literal, TypedDict, cast

from ..filesystem import atomic_write_text
from .models import MatchKind, RecipeLocation

LOGGER = logging.getLogger(__name__)

CACHE_FILENAME: Final[str] = "recipe-locations.json"
CACHE_VERSION: Final[int] = 1
FINGERPRINT_FIELD: Final[Literal["fingerprint"]] = "fingerprint"
ENTRIES_FIELD: Final[Literal["entries"]] = "entries"
VERSION_FIELD: Final[Literal["version"]] = "version"


class EntryPayload(TypedDict):
    """Serialized form of one cached lookup."""

    path: str | None
    match: str


class _CacheMiss(Exception):
    """Raised when the persisted table cannot be used."""


class ResolutionCache:
    """Persist recipe lookups between runs.

    Entries are only valid for the monorepo snapshot whose fingerprint they
    were recorded against; loading with a different fingerprint starts from an
    empty table. Lookups and records are served from memory under a lock and
    written back by :meth:`flush`.
    """

    def __init__(self, directory: Path, *, fingerprint: str) -> None:
        """Initialise the table rooted at ``directory`` for ``fingerprint``.

        Args:
            directory: Cache directory holding the JSON table.
            fingerprint: Digest of the monorepo snapshot in use.
        """

        self._path = directory / CACHE_FILENAME
        self._fingerprint = fingerprint
        self._lock = Lock()
        self._dirty = False
        self._entries: dict[str, EntryPayload] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, identifier: str) -> RecipeLocation | None:
        """Return the cached location for ``identifier`` when one is recorded."""

        with self._lock:
            payload = self._entries.get(identifier)
        if payload is None:
            return None
        try:
            match = MatchKind(payload["match"])
        except ValueError:
            return None
        return RecipeLocation(identifier=identifier, path=payload["path"], match=match, cached=True)

    def record(self, location: RecipeLocation) -> None:
        """Remember ``location`` for later runs against the same snapshot."""

        payload = EntryPayload(path=location.path, match=location.match.value)
        with self._lock:
            if self._entries.get(location.identifier) == payload:
                return
            self._entries[location.identifier] = payload
            self._dirty = True

    def invalidate(self, identifier: str | None = None) -> None:
        """Drop the entry for ``identifier``, or every entry when ``None``."""

        with self._lock:
            if identifier is None:
                self._dirty = self._dirty or bool(self._entries)
                self._entries.clear()
            elif self._entries.pop(identifier, None) is not None:
                self._dirty = True

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def flush(self) -> None:
        """Write pending changes to disk, ignoring disk errors."""

        with self._lock:
            if not self._dirty:
                return
            document = {
                VERSION_FIELD: CACHE_VERSION,
                FINGERPRINT_FIELD: self._fingerprint,
                ENTRIES_FIELD: {key: self._entries[key] for key in sorted(self._entries)},
            }
            try:
                atomic_write_text(self._path, json.dumps(document, indent=2, sort_keys=True) + "\n")
            except OSError as exc:
                # Cache writes are best-effort; the next run simply rescans.
                LOGGER.debug("could not persist resolution cache %s: %s", self._path, exc)
                return
            self._dirty = False

    def _load(self) -> dict[str, EntryPayload]:
        try:
            return self._read()
        except _CacheMiss:
            return {}

    def _read(self) -> dict[str, EntryPayload]:
        if not self._path.is_file():
            raise _CacheMiss
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            raise _CacheMiss from exc
        if not isinstance(raw, dict) or raw.get(VERSION_FIELD) != CACHE_VERSION:
            raise _CacheMiss
        if raw.get(FINGERPRINT_FIELD) != self._fingerprint:
            LOGGER.debug("resolution cache %s is stale; ignoring it", self._path)
            self._dirty = True
            raise _CacheMiss
        entries = raw.get(ENTRIES_FIELD)
        if not isinstance(entries, dict):
            raise _CacheMiss
        loaded: dict[str, EntryPayload] = {}
        for key, value in entries.items():
            if not isinstance(value, dict):
                continue
            path = value.get("path")
            match = value.get("match")
            if (path is None or isinstance(path, str)) and isinstance(match, str):
                loaded[str(key)] = cast(EntryPayload, {"path": path, "match": match})
        return loaded


def clear_resolution_cache(directory: Path) -> bool:
    """Delete the persisted table under ``directory``; return whether it existed."""

    path = directory / CACHE_FILENAME
    if not path.exists():
        return False
    path.unlink()
    return True


__all__ = ["CACHE_FILENAME", "ResolutionCache", "clear_resolution_cache"]
