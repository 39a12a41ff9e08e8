# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Package archive download and payload extraction."""

from __future__ import annotations

from .fetch import PayloadFetcher
from .models import EntryKind, IntegrityProblem, IntegrityWarning, StagedEntry, StagingTree
from .reader import PAYLOAD_MEMBER, ArchiveReader

__all__ = [
    "PAYLOAD_MEMBER",
    "ArchiveReader",
    "EntryKind",
    "IntegrityProblem",
    "IntegrityWarning",
    "PayloadFetcher",
    "StagedEntry",
    "StagingTree",
]
