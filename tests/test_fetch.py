# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for locating and downloading package archives."""

from __future__ import annotations

import hashlib
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
import requests

from pisi2stone.archive import PayloadFetcher
from pisi2stone.errors import PayloadFetchError
from pisi2stone.index import PackageRecord


class _FakeResponse:
    def __init__(self, body: bytes, status: int = 200) -> None:
        self._body = body
        self._status = status
        self.closed = False

    def raise_for_status(self) -> None:
        if self._status >= 400:
            raise requests.HTTPError(f"{self._status} error")

    def iter_content(self, chunk_size: int = 1) -> Iterator[bytes]:
        for offset in range(0, len(self._body), chunk_size):
            yield self._body[offset : offset + chunk_size]

    def close(self) -> None:
        self.closed = True


def _record(payload: str = "f/foo/foo-1-1-1-x86_64.eopkg", digest: str | None = None) -> PackageRecord:
    return PackageRecord(name="foo", version="1", release=1, payload=payload, payload_hash=digest)


def _patch_get(monkeypatch: pytest.MonkeyPatch, response: _FakeResponse) -> list[str]:
    calls: list[str] = []

    def fake_get(url: str, **kwargs: Any) -> _FakeResponse:
        assert kwargs["stream"] is True
        calls.append(url)
        return response

    monkeypatch.setattr(requests, "get", fake_get)
    return calls


def test_local_archive_is_used_without_network(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    record = _record()
    archive = tmp_path / record.payload
    archive.parent.mkdir(parents=True)
    archive.write_bytes(b"zip")
    calls = _patch_get(monkeypatch, _FakeResponse(b""))

    fetcher = PayloadFetcher(tmp_path, origin="https://mirror.example/packages")

    assert fetcher.ensure(record) == archive
    assert calls == []


def test_missing_archive_without_origin_returns_the_expected_path(tmp_path: Path) -> None:
    record = _record()

    assert PayloadFetcher(tmp_path).ensure(record) == tmp_path / "f/foo/foo-1-1-1-x86_64.eopkg"


def test_download_verifies_hash_and_publishes(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    body = b"archive-bytes" * 1000
    record = _record(digest=hashlib.sha1(body).hexdigest())
    response = _FakeResponse(body)
    calls = _patch_get(monkeypatch, response)

    path = PayloadFetcher(tmp_path, origin="https://mirror.example/packages").ensure(record)

    assert calls == ["https://mirror.example/packages/f/foo/foo-1-1-1-x86_64.eopkg"]
    assert path.read_bytes() == body
    assert response.closed
    assert [item.name for item in path.parent.iterdir()] == [path.name]


def test_hash_mismatch_leaves_nothing_behind(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    record = _record(digest="0" * 40)
    _patch_get(monkeypatch, _FakeResponse(b"tampered"))

    with pytest.raises(PayloadFetchError, match="hash mismatch"):
        PayloadFetcher(tmp_path, origin="https://mirror.example").ensure(record)
    assert list((tmp_path / "f/foo").iterdir()) == []


def test_hash_check_can_be_disabled(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_get(monkeypatch, _FakeResponse(b"tampered"))

    path = PayloadFetcher(tmp_path, origin="https://mirror.example", verify_hash=False).ensure(_record(digest="0" * 40))

    assert path.read_bytes() == b"tampered"


def test_http_errors_become_fetch_errors(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_get(monkeypatch, _FakeResponse(b"", status=404))

    with pytest.raises(PayloadFetchError, match="download of"):
        PayloadFetcher(tmp_path, origin="https://mirror.example").ensure(_record())


@pytest.mark.parametrize("payload", ["../outside.eopkg", "/abs/foo.eopkg", ""])
def test_unsafe_package_uri_is_rejected(tmp_path: Path, payload: str) -> None:
    with pytest.raises(PayloadFetchError, match="unsafe PackageURI"):
        PayloadFetcher(tmp_path).local_path(_record(payload=payload))
