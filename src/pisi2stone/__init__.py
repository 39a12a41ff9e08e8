# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Convert eopkg binary package repositories into stone.yml recipes."""

from __future__ import annotations

from .config import ConvertConfig, load_config
from .errors import ConversionError, PreconditionError, UnitError
from .pipeline import convert, prepare_run

__version__ = "0.1.0"

__all__ = [
    "ConversionError",
    "ConvertConfig",
    "PreconditionError",
    "UnitError",
    "__version__",
    "convert",
    "load_config",
    "prepare_run",
]
