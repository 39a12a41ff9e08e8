# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Assemble the conversion pipeline from a :class:`ConvertConfig`.

Everything that can abort a run (configuration, filter syntax, the index
document, the recipe lookup) is checked here before any unit work starts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .archive.fetch import PayloadFetcher
from .config.models import ConvertConfig
from .errors import PreconditionError
from .grouping import group_by_source
from .index.models import PackageIndex
from .index.parser import load_index
from .manifest.emitter import ManifestEmitter
from .manifest.globs import DeclaredPaths
from .orchestration.orchestrator import Orchestrator, OrchestratorDeps, OrchestratorHooks, OrchestratorOptions
from .orchestration.summary import RunSummary
from .recipes.cache import ResolutionCache
from .recipes.index import MappingRecipeIndex, MonorepoRecipeIndex, RecipeIndex
from .recipes.resolver import RecipeResolver
from .reporting import write_summary_json
from .selection import build_filter

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreparedRun:
    """Validated inputs plus an orchestrator ready to run."""

    config: ConvertConfig
    index: PackageIndex
    orchestrator: Orchestrator

    def execute(self) -> RunSummary:
        """Run the orchestrator and persist the JSON summary."""

        summary = self.orchestrator.run(self.index)
        write_summary_json(summary, self.config.summary_file)
        return summary


def load_recipe_index(config: ConvertConfig) -> RecipeIndex:
    """Return the recipe lookup named by the configuration.

    Raises:
        PreconditionError: If neither a recipe map nor a monorepo is configured.
    """

    if config.paths.recipe_map is not None:
        return MappingRecipeIndex.from_json(config.paths.recipe_map)
    if config.paths.monorepo is not None:
        return MonorepoRecipeIndex.scan(config.paths.monorepo)
    raise PreconditionError("either paths.monorepo or paths.recipe_map must be configured")


def prepare_run(config: ConvertConfig, *, hooks: OrchestratorHooks | None = None) -> PreparedRun:
    """Validate preconditions and build the collaborators of a run.

    Args:
        config: Effective configuration with anchored paths.
        hooks: Optional progress callbacks.

    Returns:
        PreparedRun: Index and orchestrator for :meth:`PreparedRun.execute`.

    Raises:
        PreconditionError: If the filter, index, or recipe lookup is unusable.
    """

    selection = build_filter(config.selection.include, config.selection.exclude)
    index = load_index(config.paths.index)
    recipe_index = load_recipe_index(config)
    LOGGER.debug(
        "loaded %s records (%s skipped) and recipe snapshot %s",
        len(index.records),
        len(index.issues),
        recipe_index.fingerprint[:12],
    )

    cache = None
    if config.execution.use_resolution_cache:
        cache = ResolutionCache(config.paths.cache_dir, fingerprint=recipe_index.fingerprint)
    largest_unit = max((len(unit.members) for unit in group_by_source(index.records).values()), default=0)
    emitter = ManifestEmitter(
        config.paths.output_root,
        declared=DeclaredPaths(index.records, limit=largest_unit + 1),
        min_glob_depth=config.manifest.min_glob_depth,
        strip=config.manifest.strip,
        homepage_placeholder=config.manifest.homepage_placeholder,
    )
    fetcher = PayloadFetcher(
        config.paths.packages_dir,
        origin=config.fetch.origin,
        timeout=config.fetch.timeout,
        verify_hash=config.fetch.verify_hash,
    )
    deps = OrchestratorDeps(
        resolver=RecipeResolver(recipe_index, selection, cache=cache),
        fetcher=fetcher,
        emitter=emitter,
        cache=cache,
        hooks=hooks,
    )
    options = OrchestratorOptions(
        staging_root=config.paths.staging_root,
        jobs=config.execution.jobs,
        extract_jobs=config.execution.extract_jobs,
        archive_timeout=config.execution.archive_timeout,
        keep_staging=config.execution.keep_staging,
        seed_components=tuple(config.selection.seed_components),
        seed_packages=tuple(config.selection.seed_packages),
    )
    return PreparedRun(config=config, index=index, orchestrator=Orchestrator(deps, options))


def convert(config: ConvertConfig, *, hooks: OrchestratorHooks | None = None) -> RunSummary:
    """Run a full conversion and return its summary."""

    return prepare_run(config, hooks=hooks).execute()


__all__ = ["PreparedRun", "convert", "load_recipe_index", "prepare_run"]
