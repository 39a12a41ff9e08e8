# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Extract eopkg payloads into per-package staging directories.

An eopkg is a zip container holding ``metadata.xml``, ``files.xml`` and the
``install.tar.xz`` payload. The payload is decoded as a stream so extraction
can stop at any chunk boundary when the run is cancelled or the per-archive
deadline passes.
"""

from __future__ import annotations

import hashlib
import logging
import lzma
import os
import shutil
import tarfile
import time
import xml.etree.ElementTree as ET
import zipfile
import zlib
from collections.abc import Callable, Iterable
from pathlib import Path, PurePosixPath
from threading import Event
from typing import IO, Final

from ..errors import ArchiveTimeout, ConversionCancelled, CorruptArchive, MissingPayload, PathEscape
from ..filesystem import remove_tree, safe_relative_path
from ..index.models import DeclaredFile, PackageRecord
from ..index.parser import parse_file_entries
from .models import EntryKind, IntegrityProblem, IntegrityWarning, StagedEntry, StagingTree

LOGGER = logging.getLogger(__name__)

PAYLOAD_MEMBER: Final[str] = "install.tar.xz"
FILES_MEMBER: Final[str] = "files.xml"
CHUNK_SIZE: Final[int] = 1 << 16
_SHA1_LENGTH: Final[int] = 40
_SHA256_LENGTH: Final[int] = 64

_ARCHIVE_ERRORS: Final[tuple[type[BaseException], ...]] = (
    tarfile.TarError,
    lzma.LZMAError,
    zipfile.BadZipFile,
    zlib.error,
    EOFError,
)


class ArchiveReader:
    """Stage the payload of one package archive at a time.

    A reader holds no per-archive state and may be shared between worker
    threads; each :meth:`extract` call works on its own staging directory.
    """

    def __init__(
        self,
        *,
        cancel_event: Event | None = None,
        timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Configure cancellation and the per-archive deadline.

        Args:
            cancel_event: Event that aborts extraction at the next chunk.
            timeout: Seconds allowed for one extraction, or ``None``.
            clock: Monotonic clock used to enforce ``timeout``.
        """

        self._cancel = cancel_event or Event()
        self._timeout = timeout
        self._clock = clock

    def extract(self, archive: Path, record: PackageRecord, destination: Path) -> StagingTree:
        """Extract the payload of ``archive`` into ``destination``.

        Args:
            archive: Path of the ``.eopkg`` file on disk.
            record: Index record describing the package.
            destination: Staging directory owned by this extraction. Any
                previous content is removed first.

        Returns:
            StagingTree: Staged entries plus integrity warnings.

        Raises:
            CorruptArchive: If the container or payload stream is unreadable.
            MissingPayload: If the container lacks ``install.tar.xz``.
            ArchiveTimeout: If the deadline passes before extraction finishes.
            PathEscape: If an entry would land outside ``destination``.
            ConversionCancelled: If the run is cancelled mid-extraction.
        """

        if not archive.is_file():
            raise CorruptArchive(record.name, f"archive {archive} does not exist")
        remove_tree(destination)
        destination.mkdir(parents=True)
        session = _Extraction(
            package=record.name,
            root=destination,
            checkpoint=self._checkpoint_for(record.name),
        )
        try:
            with zipfile.ZipFile(archive) as container:
                names = set(container.namelist())
                if PAYLOAD_MEMBER not in names:
                    raise MissingPayload(record.name, f"{archive.name} has no {PAYLOAD_MEMBER}")
                declared = record.files or _read_declared_files(container, names, record.name)
                with container.open(PAYLOAD_MEMBER) as stream:
                    session.run(stream)
        except _ARCHIVE_ERRORS as exc:
            raise CorruptArchive(record.name, f"unreadable archive {archive.name}: {exc}") from exc

        entries = session.entries()
        warnings = session.warnings + _integrity_warnings(record.name, declared, entries)
        LOGGER.debug("staged %s entries for %s in %s", len(entries), record.label, destination)
        return StagingTree(
            package=record.name,
            root=destination,
            entries=entries,
            warnings=tuple(sorted(warnings, key=lambda item: (item.path, item.problem.value))),
        )

    def _checkpoint_for(self, package: str) -> Callable[[], None]:
        deadline = None if self._timeout is None else self._clock() + self._timeout

        def checkpoint() -> None:
            if self._cancel.is_set():
                raise ConversionCancelled(f"{package}: extraction cancelled")
            if deadline is not None and self._clock() > deadline:
                raise ArchiveTimeout(package, f"extraction exceeded {self._timeout:g}s")

        return checkpoint


class _Extraction:
    """Streaming tar walk for a single payload."""

    def __init__(self, *, package: str, root: Path, checkpoint: Callable[[], None]) -> None:
        self.package = package
        self.root = root
        self.checkpoint = checkpoint
        self.warnings: list[IntegrityWarning] = []
        self._entries: dict[PurePosixPath, StagedEntry] = {}
        self._symlinks: set[PurePosixPath] = set()

    def run(self, stream: IO[bytes]) -> None:
        with tarfile.open(fileobj=stream, mode="r|xz") as payload:
            for member in payload:
                self.checkpoint()
                try:
                    self._stage(payload, member)
                except ValueError as exc:
                    # undecodable names and NUL bytes surface as ValueError
                    raise CorruptArchive(self.package, f"cannot stage member {member.name!r}: {exc}") from exc
        self._apply_directory_modes()

    def entries(self) -> tuple[StagedEntry, ...]:
        return tuple(self._entries[path] for path in sorted(self._entries))

    def _stage(self, payload: tarfile.TarFile, member: tarfile.TarInfo) -> None:
        relative = safe_relative_path(member.name)
        if relative is None:
            raise PathEscape(self.package, member.name)
        if relative == PurePosixPath("."):
            return
        for parent in relative.parents:
            if parent in self._symlinks:
                raise PathEscape(self.package, member.name)
        target = self.root.joinpath(*relative.parts)
        mode = member.mode & 0o7777

        if member.isdir():
            self._replace_non_directory(relative)
            target.mkdir(parents=True, exist_ok=True)
            self._entries[relative] = StagedEntry(path=relative, kind=EntryKind.DIRECTORY, mode=mode)
            return
        if member.issym():
            self._prepare(target, relative)
            os.symlink(member.linkname, target)
            self._symlinks.add(relative)
            raw_target = os.fsencode(member.linkname)
            self._entries[relative] = StagedEntry(
                path=relative,
                kind=EntryKind.SYMLINK,
                mode=0o777,
                size=len(raw_target),
                sha256=hashlib.sha256(raw_target).hexdigest(),
                sha1=hashlib.sha1(raw_target, usedforsecurity=False).hexdigest(),
                target=member.linkname,
            )
            return
        if member.islnk():
            self._stage_hardlink(member, relative, target, mode)
            return
        if member.isreg():
            source = payload.extractfile(member)
            if source is None:
                raise CorruptArchive(self.package, f"cannot read payload member {member.name}")
            self._prepare(target, relative)
            self._entries[relative] = self._write_file(source, relative, target, mode)
            return
        LOGGER.debug("skipping special member %s in %s", member.name, self.package)
        self.warnings.append(
            IntegrityWarning(
                package=self.package,
                path=str(relative),
                problem=IntegrityProblem.SKIPPED,
                detail="device, fifo, or unsupported member type",
            )
        )

    def _stage_hardlink(
        self,
        member: tarfile.TarInfo,
        relative: PurePosixPath,
        target: Path,
        mode: int,
    ) -> None:
        link = safe_relative_path(member.linkname)
        if link is None:
            raise PathEscape(self.package, member.linkname)
        origin = self._entries.get(link)
        if origin is None or origin.kind is not EntryKind.FILE:
            raise CorruptArchive(self.package, f"hard link {member.name} points at unknown file {member.linkname}")
        self._prepare(target, relative)
        shutil.copyfile(self.root.joinpath(*link.parts), target)
        os.chmod(target, mode)
        self._entries[relative] = origin.model_copy(update={"path": relative, "mode": mode})

    def _write_file(self, source: IO[bytes], relative: PurePosixPath, target: Path, mode: int) -> StagedEntry:
        sha256 = hashlib.sha256()
        sha1 = hashlib.sha1(usedforsecurity=False)
        size = 0
        with target.open("wb") as handle:
            while True:
                self.checkpoint()
                chunk = source.read(CHUNK_SIZE)
                if not chunk:
                    break
                sha256.update(chunk)
                sha1.update(chunk)
                size += len(chunk)
                handle.write(chunk)
        os.chmod(target, mode)
        return StagedEntry(
            path=relative,
            kind=EntryKind.FILE,
            mode=mode,
            size=size,
            sha256=sha256.hexdigest(),
            sha1=sha1.hexdigest(),
        )

    def _prepare(self, target: Path, relative: PurePosixPath) -> None:
        """Create parent directories and clear any earlier entry at ``target``."""

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except (FileExistsError, NotADirectoryError) as exc:
            raise CorruptArchive(self.package, f"parent of /{relative} is not a directory") from exc
        previous = self._entries.pop(relative, None)
        self._symlinks.discard(relative)
        if previous is not None and previous.kind is EntryKind.DIRECTORY:
            raise CorruptArchive(self.package, f"payload replaces directory /{relative} with a file")
        if target.is_symlink() or target.is_file():
            target.unlink()
        elif target.exists():
            raise CorruptArchive(self.package, f"payload replaces directory /{relative} with a file")

    def _replace_non_directory(self, relative: PurePosixPath) -> None:
        previous = self._entries.get(relative)
        if previous is not None and previous.kind is not EntryKind.DIRECTORY:
            raise CorruptArchive(self.package, f"payload replaces /{relative} with a directory")

    def _apply_directory_modes(self) -> None:
        directories = [entry for entry in self._entries.values() if entry.kind is EntryKind.DIRECTORY]
        for entry in sorted(directories, key=lambda item: len(item.path.parts), reverse=True):
            os.chmod(self.root.joinpath(*entry.path.parts), entry.mode | 0o700)


def _read_declared_files(container: zipfile.ZipFile, names: set[str], package: str) -> tuple[DeclaredFile, ...]:
    if FILES_MEMBER not in names:
        return ()
    try:
        root = ET.fromstring(container.read(FILES_MEMBER))
    except ET.ParseError as exc:
        LOGGER.debug("ignoring malformed %s in %s: %s", FILES_MEMBER, package, exc)
        return ()
    return tuple(parse_file_entries(root.iter("File")))


def _integrity_warnings(
    package: str,
    declared: Iterable[DeclaredFile],
    entries: tuple[StagedEntry, ...],
) -> list[IntegrityWarning]:
    """Compare the declared file list with what was actually staged."""

    staged = {entry.path: entry for entry in entries}
    expected = {item.path: item for item in declared}
    if not expected:
        return []
    warnings: list[IntegrityWarning] = []
    for path in sorted(expected):
        item = expected[path]
        entry = staged.get(path)
        if entry is None:
            warnings.append(IntegrityWarning(package=package, path=str(path), problem=IntegrityProblem.MISSING))
            continue
        if entry.kind is EntryKind.DIRECTORY:
            continue
        if entry.kind is EntryKind.FILE and item.size is not None and item.size != entry.size:
            warnings.append(
                IntegrityWarning(
                    package=package,
                    path=str(path),
                    problem=IntegrityProblem.SIZE,
                    detail=f"declared {item.size}, staged {entry.size}",
                )
            )
            continue
        if item.checksum and not _checksum_matches(item.checksum, entry):
            warnings.append(IntegrityWarning(package=package, path=str(path), problem=IntegrityProblem.HASH))
    for path, entry in staged.items():
        if entry.kind is not EntryKind.DIRECTORY and path not in expected:
            warnings.append(IntegrityWarning(package=package, path=str(path), problem=IntegrityProblem.EXTRA))
    return warnings


def _checksum_matches(checksum: str, entry: StagedEntry) -> bool:
    value = checksum.strip().lower()
    if len(value) == _SHA1_LENGTH:
        return value == entry.sha1
    if len(value) == _SHA256_LENGTH:
        return value == entry.sha256
    # Unknown digest families cannot be compared.
    return True


__all__ = ["ArchiveReader", "CHUNK_SIZE", "FILES_MEMBER", "PAYLOAD_MEMBER"]
