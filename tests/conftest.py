# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest
from builders import Distro


@pytest.fixture
def distro(tmp_path: Path) -> Distro:
    return Distro(tmp_path / "repo")
