# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Layered configuration loading with predictable precedence."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import ConfigError
from .models import ConvertConfig
from .sources import (
    PROJECT_CONFIG_FILENAME,
    ConfigSource,
    DefaultConfigSource,
    MappingConfigSource,
    PyProjectConfigSource,
    TomlConfigSource,
    deep_merge,
)


class ConfigLoadResult(BaseModel):
    """Resolved configuration plus the sources that contributed to it."""

    model_config = ConfigDict(validate_assignment=True)

    config: ConvertConfig
    sources: list[str] = Field(default_factory=list)


class ConfigLoader:
    """Apply configuration sources in order; later sources win."""

    def __init__(self, *, project_root: Path, sources: Sequence[ConfigSource]) -> None:
        if not sources:
            raise ValueError("at least one configuration source is required")
        self._project_root = project_root.resolve()
        self._sources = list(sources)

    @classmethod
    def for_root(
        cls,
        project_root: Path,
        *,
        config_file: Path | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> ConfigLoader:
        """Build a loader using defaults, ``pyproject.toml``, the project file, and overrides.

        Args:
            project_root: Directory anchoring discovery and relative paths.
            config_file: Explicit configuration file; it must exist when given.
            overrides: Highest-precedence fragment, usually from the CLI.

        Returns:
            ConfigLoader: Loader configured with the default precedence.
        """

        sources: list[ConfigSource] = [
            DefaultConfigSource(),
            PyProjectConfigSource(project_root / "pyproject.toml"),
        ]
        if config_file is not None:
            sources.append(TomlConfigSource(config_file, required=True))
        else:
            sources.append(TomlConfigSource(project_root / PROJECT_CONFIG_FILENAME))
        if overrides:
            sources.append(MappingConfigSource(overrides))
        return cls(project_root=project_root, sources=sources)

    def load(self) -> ConvertConfig:
        return self.load_with_trace().config

    def load_with_trace(self) -> ConfigLoadResult:
        """Merge every source and validate the result.

        Raises:
            ConfigError: If a source is unreadable or the merged data is invalid.
        """

        merged: dict[str, Any] = {}
        applied: list[str] = []
        for source in self._sources:
            fragment = source.load()
            if not fragment:
                continue
            if not isinstance(fragment, Mapping):
                raise ConfigError(f"{source.describe()} did not produce a table")
            merged = deep_merge(merged, fragment)
            applied.append(source.describe())
        try:
            config = ConvertConfig.model_validate(merged)
        except ValidationError as exc:
            raise ConfigError(f"invalid configuration: {exc}") from exc
        return ConfigLoadResult(config=config.anchored(self._project_root), sources=applied)


def load_config(
    project_root: Path,
    *,
    config_file: Path | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> ConvertConfig:
    """Return the effective configuration for ``project_root``."""

    return ConfigLoader.for_root(project_root, config_file=config_file, overrides=overrides).load()


__all__ = ["ConfigLoadResult", "ConfigLoader", "load_config"]
