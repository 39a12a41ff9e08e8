# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Import-tree materialisation."""

from __future__ import annotations

from .materialize import ImportTree, TreeEntry, TreeMaterializer

__all__ = ["ImportTree", "TreeEntry", "TreeMaterializer"]
