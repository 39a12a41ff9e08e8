# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Index loading, record models, and version ordering."""

from __future__ import annotations

from .closure import SeedSelection, select_closure
from .models import DeclaredFile, IndexParseIssue, PackageIndex, PackageRecord
from .parser import load_index, parse_file_entries, parse_index
from .versions import compare_versions, record_sort_key, select_lead

__all__ = [
    "DeclaredFile",
    "IndexParseIssue",
    "PackageIndex",
    "PackageRecord",
    "SeedSelection",
    "compare_versions",
    "load_index",
    "parse_file_entries",
    "parse_index",
    "record_sort_key",
    "select_closure",
    "select_lead",
]
