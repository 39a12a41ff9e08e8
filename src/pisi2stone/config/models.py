# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Pydantic models describing a conversion run."""

from __future__ import annotations

import math
import os
from pathlib import Path
from typing import Final

from pydantic import BaseModel, ConfigDict, Field

from ..manifest.emitter import DEFAULT_HOMEPAGE
from ..manifest.globs import DEFAULT_MIN_GLOB_DEPTH

DEFAULT_STATE_DIR: Final[Path] = Path(".pisi2stone")
SUMMARY_FILENAME: Final[str] = "summary.json"


def default_parallel_jobs() -> int:
    """Return a CPU count scaled down for concurrent conversion.

    Returns:
        int: Rounded-down count representing roughly 75% of available CPU
        cores while guaranteeing a minimum of one worker.
    """

    cores = os.cpu_count() or 1
    return max(1, math.floor(cores * 0.75))


class PathsConfig(BaseModel):
    """Input and output locations; relative paths are anchored at the project root."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    index: Path = Path("eopkg-index.xml")
    packages_dir: Path = Path("packages")
    monorepo: Path | None = None
    recipe_map: Path | None = None
    output_root: Path = Path("output")
    staging_root: Path = DEFAULT_STATE_DIR / "staging"
    cache_dir: Path = DEFAULT_STATE_DIR / "cache"
    summary_path: Path | None = None


class SelectionConfig(BaseModel):
    """Which source units and packages take part in the run."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    include: list[str] = Field(default_factory=list)
    exclude: list[str] = Field(default_factory=list)
    seed_components: list[str] = Field(default_factory=list)
    seed_packages: list[str] = Field(default_factory=list)


class ExecutionConfig(BaseModel):
    """Parallelism, timeouts, and staging behaviour."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    jobs: int = Field(default_factory=default_parallel_jobs, ge=1)
    extract_jobs: int = Field(default_factory=default_parallel_jobs, ge=1)
    archive_timeout: float | None = Field(default=600.0, gt=0)
    keep_staging: bool = False
    use_resolution_cache: bool = True


class FetchConfig(BaseModel):
    """Download settings for archives missing from ``packages_dir``."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    origin: str | None = None
    timeout: float = Field(default=60.0, gt=0)
    verify_hash: bool = True


class ManifestConfig(BaseModel):
    """Glob collapsing depth and fixed fields written into every ``stone.yml``."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    min_glob_depth: int = Field(default=DEFAULT_MIN_GLOB_DEPTH, ge=1)
    strip: bool = False
    homepage_placeholder: str = DEFAULT_HOMEPAGE


class ConvertConfig(BaseModel):
    """Complete configuration of one conversion run."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    paths: PathsConfig = Field(default_factory=PathsConfig)
    selection: SelectionConfig = Field(default_factory=SelectionConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    manifest: ManifestConfig = Field(default_factory=ManifestConfig)

    @property
    def summary_file(self) -> Path:
        """Return where the JSON run summary is written."""

        return self.paths.summary_path or self.paths.output_root / SUMMARY_FILENAME

    def anchored(self, root: Path) -> ConvertConfig:
        """Return a copy whose relative paths are resolved against ``root``."""

        def anchor(path: Path | None) -> Path | None:
            if path is None:
                return None
            expanded = path.expanduser()
            return expanded if expanded.is_absolute() else root / expanded

        paths = self.paths.model_copy(
            update={
                "index": anchor(self.paths.index),
                "packages_dir": anchor(self.paths.packages_dir),
                "monorepo": anchor(self.paths.monorepo),
                "recipe_map": anchor(self.paths.recipe_map),
                "output_root": anchor(self.paths.output_root),
                "staging_root": anchor(self.paths.staging_root),
                "cache_dir": anchor(self.paths.cache_dir),
                "summary_path": anchor(self.paths.summary_path),
            },
        )
        return self.model_copy(update={"paths": paths})


__all__ = [
    "ConvertConfig",
    "ExecutionConfig",
    "FetchConfig",
    "ManifestConfig",
    "PathsConfig",
    "SelectionConfig",
    "default_parallel_jobs",
]
