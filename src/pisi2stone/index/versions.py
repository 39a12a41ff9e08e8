# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Ordering helpers for upstream version strings.

Index versions are not guaranteed to be PEP 440 compliant (``2.38_p1``,
``1.0.0b``, ``20230101``). When both sides parse with :mod:`packaging` the
standard semantics apply; otherwise the strings are compared segment by
segment, numeric runs numerically and alphabetic runs lexically.
"""

from __future__ import annotations

import re
from functools import cmp_to_key
from typing import Final

from packaging.version import InvalidVersion, Version

from .models import PackageRecord

_SEGMENT_RE: Final[re.Pattern[str]] = re.compile(r"(\d+|[A-Za-z]+)")


def _parse(raw: str) -> Version | None:
    try:
        return Version(raw)
    except InvalidVersion:
        return None


def _segments(raw: str) -> list[int | str]:
    return [int(token) if token.isdigit() else token for token in _SEGMENT_RE.findall(raw)]


def _compare_segments(left: str, right: str) -> int:
    lhs = _segments(left)
    rhs = _segments(right)
    for a, b in zip(lhs, rhs):
        if a == b:
            continue
        if isinstance(a, int) and isinstance(b, int):
            return -1 if a < b else 1
        # numeric segments sort after alphabetic ones (1.0 > 1.0rc)
        if isinstance(a, int):
            return 1
        if isinstance(b, int):
            return -1
        return -1 if a < b else 1
    if len(lhs) != len(rhs):
        longer_is_left = len(lhs) > len(rhs)
        tail = lhs[len(rhs)] if longer_is_left else rhs[len(lhs)]
        # a trailing alphabetic segment marks a pre-release
        if isinstance(tail, str):
            return -1 if longer_is_left else 1
        return 1 if longer_is_left else -1
    return (left > right) - (left < right)


def compare_versions(left: str, right: str) -> int:
    """Return ``-1``, ``0`` or ``1`` comparing two version strings.

    Args:
        left: First version string.
        right: Second version string.

    Returns:
        int: Negative when ``left`` sorts before ``right``, positive when after,
        and ``0`` only for textually identical versions.
    """

    if left == right:
        return 0
    parsed_left = _parse(left)
    parsed_right = _parse(right)
    if parsed_left is not None and parsed_right is not None and parsed_left != parsed_right:
        return -1 if parsed_left < parsed_right else 1
    return _compare_segments(left, right)


def _compare_records(left: PackageRecord, right: PackageRecord) -> int:
    outcome = compare_versions(left.version, right.version)
    if outcome:
        return outcome
    if left.release != right.release:
        return -1 if left.release < right.release else 1
    # the lexically smallest name ranks highest on a full tie
    if left.name != right.name:
        return 1 if left.name < right.name else -1
    return 0


record_sort_key = cmp_to_key(_compare_records)


def select_lead(records: tuple[PackageRecord, ...] | list[PackageRecord]) -> PackageRecord:
    """Return the record with the highest version, release, then smallest name.

    Args:
        records: Non-empty collection of records sharing a source unit.

    Returns:
        PackageRecord: Record whose metadata represents the whole unit.

    Raises:
        ValueError: If ``records`` is empty.
    """

    if not records:
        raise ValueError("cannot select a lead record from an empty group")
    return max(records, key=record_sort_key)


__all__ = ["compare_versions", "record_sort_key", "select_lead"]
