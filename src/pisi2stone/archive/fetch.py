# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Locate package archives on disk and download missing ones."""

from __future__ import annotations

import hashlib
import logging
import os
import tempfile
from pathlib import Path
from typing import Final
from urllib.parse import urljoin

import requests

from ..errors import PayloadFetchError
from ..filesystem import safe_relative_path
from ..index.models import PackageRecord

LOGGER = logging.getLogger(__name__)

DOWNLOAD_CHUNK: Final[int] = 1 << 16


class PayloadFetcher:
    """Resolve ``PackageURI`` values against a local package directory.

    When an origin URL is configured, archives missing from the local
    directory are downloaded with :mod:`requests` and verified against the
    SHA-1 ``PackageHash`` recorded in the index.
    """

    def __init__(
        self,
        packages_dir: Path,
        *,
        origin: str | None = None,
        timeout: float = 60.0,
        verify_hash: bool = True,
    ) -> None:
        self._packages_dir = packages_dir
        self._origin = origin.rstrip("/") + "/" if origin else None
        self._timeout = timeout
        self._verify_hash = verify_hash

    def local_path(self, record: PackageRecord) -> Path:
        """Return where ``record``'s archive lives inside the package directory.

        Raises:
            PayloadFetchError: If ``PackageURI`` would leave the directory.
        """

        relative = safe_relative_path(record.payload)
        if relative is None or relative.parts == ():
            raise PayloadFetchError(record.name, f"unsafe PackageURI {record.payload!r}")
        return self._packages_dir.joinpath(*relative.parts)

    def ensure(self, record: PackageRecord) -> Path:
        """Return a local archive path for ``record``, downloading it if needed.

        Args:
            record: Package whose archive is required.

        Returns:
            Path: Archive location. When no origin is configured the path is
            returned even if it does not exist; the reader reports that case.

        Raises:
            PayloadFetchError: If the download fails or the hash does not match.
        """

        destination = self.local_path(record)
        if destination.is_file() or self._origin is None:
            return destination
        url = urljoin(self._origin, record.payload)
        LOGGER.debug("downloading %s from %s", record.label, url)
        self._download(record, url, destination)
        return destination

    def _download(self, record: PackageRecord, url: str, destination: Path) -> None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        digest = hashlib.sha1(usedforsecurity=False)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{destination.name}.", suffix=".part", dir=destination.parent)
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as handle:
                try:
                    response = requests.get(url, timeout=self._timeout, stream=True)
                    try:
                        response.raise_for_status()
                        for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK):
                            digest.update(chunk)
                            handle.write(chunk)
                    finally:
                        response.close()
                except requests.RequestException as exc:
                    raise PayloadFetchError(record.name, f"download of {url} failed: {exc}") from exc
            expected = (record.payload_hash or "").strip().lower()
            if self._verify_hash and expected and digest.hexdigest() != expected:
                raise PayloadFetchError(
                    record.name,
                    f"hash mismatch for {url}: expected {expected}, got {digest.hexdigest()}",
                )
            os.replace(tmp_path, destination)
        finally:
            tmp_path.unlink(missing_ok=True)


__all__ = ["PayloadFetcher"]
