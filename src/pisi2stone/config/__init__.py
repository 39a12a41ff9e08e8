# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Run configuration models and layered loading."""

from __future__ import annotations

from .loader import ConfigLoader, ConfigLoadResult, load_config
from .models import (
    ConvertConfig,
    ExecutionConfig,
    FetchConfig,
    ManifestConfig,
    PathsConfig,
    SelectionConfig,
    default_parallel_jobs,
)
from .sources import (
    PROJECT_CONFIG_FILENAME,
    DefaultConfigSource,
    MappingConfigSource,
    PyProjectConfigSource,
    TomlConfigSource,
)

__all__ = [
    "PROJECT_CONFIG_FILENAME",
    "ConfigLoadResult",
    "ConfigLoader",
    "ConvertConfig",
    "DefaultConfigSource",
    "ExecutionConfig",
    "FetchConfig",
    "ManifestConfig",
    "MappingConfigSource",
    "PathsConfig",
    "PyProjectConfigSource",
    "SelectionConfig",
    "TomlConfigSource",
    "default_parallel_jobs",
    "load_config",
]
