# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Drive every source unit through resolution, extraction, merge, and emit."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from threading import Event
from types import MappingProxyType
from typing import Final

from ..archive.fetch import PayloadFetcher
from ..archive.models import StagingTree
from ..archive.reader import ArchiveReader
from ..errors import (
    ConversionCancelled,
    EmptyTree,
    PathConflict,
    UnitError,
    UnresolvedRecipe,
)
from ..filesystem import remove_tree
from ..grouping import SourceUnit, group_by_source
from ..index.closure import select_closure
from ..index.models import PackageIndex, PackageRecord
from ..manifest.emitter import EmitResult, ManifestEmitter
from ..recipes.cache import ResolutionCache
from ..recipes.models import RecipeLocation
from ..recipes.resolver import RecipeResolver
from ..tree.materialize import ImportTree, TreeMaterializer
from .states import UnitState, UnitStateMachine
from .summary import RunSummary, SummaryRecorder, UnitReport

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class OrchestratorHooks:
    """Optional callbacks fired as the run progresses."""

    after_plan: Callable[[int], None] | None = None
    before_unit: Callable[[str], None] | None = None
    after_unit: Callable[[UnitReport], None] | None = None


@dataclass(frozen=True)
class OrchestratorDeps:
    """Collaborators required to construct an :class:`Orchestrator`."""

    resolver: RecipeResolver
    fetcher: PayloadFetcher
    emitter: ManifestEmitter
    materializer: TreeMaterializer = field(default_factory=TreeMaterializer)
    cache: ResolutionCache | None = None
    hooks: OrchestratorHooks | None = None


@dataclass(frozen=True)
class OrchestratorOptions:
    """Execution settings for one run."""

    staging_root: Path
    jobs: int = 1
    extract_jobs: int = 1
    archive_timeout: float | None = None
    keep_staging: bool = False
    seed_components: tuple[str, ...] = ()
    seed_packages: tuple[str, ...] = ()


_STAGE_FAILURES: Final = MappingProxyType(
    {
        UnitState.RESOLVING: UnitState.UNRESOLVED,
        UnitState.EXTRACTING: UnitState.EXTRACT_FAILED,
        UnitState.MATERIALIZING: UnitState.EMIT_FAILED,
        UnitState.EMITTING: UnitState.EMIT_FAILED,
    },
)

# In-scope outcomes whose earlier published output no longer describes the unit.
_RETIRES_OUTPUT: Final = frozenset(
    {
        UnitState.UNRESOLVED,
        UnitState.EXTRACT_FAILED,
        UnitState.CONFLICT,
        UnitState.EMPTY,
        UnitState.EMIT_FAILED,
    },
)


class _UnitFailure(Exception):
    """Carries the terminal state chosen for a failing stage."""

    def __init__(self, state: UnitState, errors: Sequence[BaseException]) -> None:
        super().__init__(state.value)
        self.state = state
        self.errors = tuple(errors)


class Orchestrator:
    """Run the conversion pipeline over a package index.

    Units are processed on a pool of ``jobs`` workers; the member extractions
    of each unit run on a separate shared pool of ``extract_jobs`` workers.
    Every unit is an independent failure domain: its errors end up in the run
    summary and never stop sibling units.
    """

    def __init__(self, deps: OrchestratorDeps, options: OrchestratorOptions) -> None:
        self._deps = deps
        self._options = options
        self._hooks = deps.hooks or OrchestratorHooks()
        self._cancel = Event()
        self._reader = ArchiveReader(cancel_event=self._cancel, timeout=options.archive_timeout)

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        """Stop starting new work and abort in-flight extractions."""

        LOGGER.debug("cancellation requested")
        self._cancel.set()

    def run(self, index: PackageIndex) -> RunSummary:
        """Convert every in-scope unit of ``index``.

        Args:
            index: Parsed package index.

        Returns:
            RunSummary: Outcome of every unit plus index and selection issues.
        """

        selection = select_closure(
            index.records,
            components=self._options.seed_components,
            packages=self._options.seed_packages,
        )
        warnings = [f"unknown package {name!r} in seeds or dependencies" for name in selection.unknown]
        groups = group_by_source(selection.records)
        recorder = SummaryRecorder()
        pending: list[SourceUnit] = []
        for identifier, unit in groups.items():
            if self._deps.resolver.in_scope(identifier):
                pending.append(unit)
                continue
            machine = UnitStateMachine(identifier)
            machine.advance(UnitState.FILTERED_OUT)
            self._finish(recorder, _report(unit, machine))
        if self._deps.resolver.selection.include and not pending:
            warnings.append("include patterns matched no source unit")
        if self._hooks.after_plan is not None:
            self._hooks.after_plan(len(pending))

        try:
            self._execute(pending, recorder)
        finally:
            if self._deps.cache is not None:
                self._deps.cache.flush()
            self._cleanup_staging_root()
        return recorder.build(
            index_issues=index.issues,
            selection_warnings=warnings,
            cancelled=self.cancelled,
        )

    def _execute(self, units: Sequence[SourceUnit], recorder: SummaryRecorder) -> None:
        if not units:
            return
        with (
            ThreadPoolExecutor(max_workers=max(1, self._options.extract_jobs)) as extract_pool,
            ThreadPoolExecutor(max_workers=max(1, self._options.jobs)) as unit_pool,
        ):
            future_map = {unit_pool.submit(self._process, unit, extract_pool): unit for unit in units}
            pending = set(future_map)
            while pending:
                try:
                    for future in as_completed(pending):
                        pending.discard(future)
                        self._finish(recorder, future.result())
                except KeyboardInterrupt:
                    self.cancel()

    def _finish(self, recorder: SummaryRecorder, report: UnitReport) -> None:
        recorder.record(report)
        if self._hooks.after_unit is not None:
            self._hooks.after_unit(report)

    def _process(self, unit: SourceUnit, extract_pool: ThreadPoolExecutor) -> UnitReport:
        report = self._convert(unit, extract_pool)
        cleanups: list[tuple[str, Callable[[], None]]] = []
        if not self._options.keep_staging:
            cleanups.append(("staging", partial(remove_tree, self._unit_staging(unit))))
        if report.state in _RETIRES_OUTPUT:
            cleanups.append(("previous output", partial(self._deps.emitter.retire, unit.identifier)))
        elif report.state is UnitState.CANCELLED:
            cleanups.append(("partial output", partial(self._deps.emitter.prune, unit.identifier)))
        for label, cleanup in cleanups:
            try:
                cleanup()
            except OSError as exc:
                message = f"{unit.identifier}: cannot remove {label}: {exc}"
                report = report.model_copy(update={"warnings": (*report.warnings, message)})
        return report

    def _convert(self, unit: SourceUnit, extract_pool: ThreadPoolExecutor) -> UnitReport:
        machine = UnitStateMachine(unit.identifier)
        if self.cancelled:
            machine.advance(UnitState.CANCELLED)
            return _report(unit, machine, errors=[ConversionCancelled(f"{unit.identifier}: run cancelled")])
        if self._hooks.before_unit is not None:
            self._hooks.before_unit(unit.identifier)
        location: RecipeLocation | None = None
        warnings: list[str] = []
        stage = UnitState.PENDING
        try:
            stage = machine.advance(UnitState.RESOLVING)
            location = self._deps.resolver.resolve(unit.identifier)
            if not location.resolved:
                raise _UnitFailure(UnitState.UNRESOLVED, [UnresolvedRecipe(unit.identifier)])
            self._check_cancel(unit)

            stage = machine.advance(UnitState.EXTRACTING)
            stagings = self._extract_members(unit, extract_pool)
            for staging in stagings:
                warnings.extend(warning.render() for warning in staging.warnings)
            self._check_cancel(unit)

            stage = machine.advance(UnitState.MATERIALIZING)
            tree = self._materialize(unit, stagings)
            if self.cancelled:
                tree.discard()
                self._check_cancel(unit)

            stage = machine.advance(UnitState.EMITTING)
            result = self._emit(unit, tree, location)
            machine.advance(UnitState.DONE)
            return _report(unit, machine, location=location, warnings=warnings, manifest=str(result.manifest_path))
        except _UnitFailure as failure:
            machine.advance(failure.state)
            return _report(
                unit,
                machine,
                location=location,
                stage=stage,
                errors=failure.errors,
                warnings=warnings,
            )
        except Exception as exc:
            if not isinstance(exc, (UnitError, OSError)):
                LOGGER.debug("unexpected failure converting %s", unit.identifier, exc_info=True)
            machine.advance(_STAGE_FAILURES[stage])
            return _report(unit, machine, location=location, stage=stage, errors=[exc], warnings=warnings)

    def _check_cancel(self, unit: SourceUnit) -> None:
        if self.cancelled:
            raise _UnitFailure(UnitState.CANCELLED, [ConversionCancelled(f"{unit.identifier}: run cancelled")])

    def _extract_members(self, unit: SourceUnit, extract_pool: ThreadPoolExecutor) -> list[StagingTree]:
        """Extract every member; fail the unit once all have been attempted."""

        futures: list[tuple[PackageRecord, Future[StagingTree]]] = [
            (record, extract_pool.submit(self._extract_one, unit, record)) for record in unit.members
        ]
        stagings: list[StagingTree] = []
        errors: list[BaseException] = []
        for record, future in futures:
            try:
                stagings.append(future.result())
            except Exception as exc:
                LOGGER.debug("extraction of %s failed: %s", record.label, exc)
                errors.append(exc)
        if errors:
            if all(isinstance(error, ConversionCancelled) for error in errors):
                raise _UnitFailure(UnitState.CANCELLED, errors)
            raise _UnitFailure(UnitState.EXTRACT_FAILED, errors)
        return stagings

    def _extract_one(self, unit: SourceUnit, record: PackageRecord) -> StagingTree:
        if self.cancelled:
            raise ConversionCancelled(f"{record.name}: run cancelled")
        archive = self._deps.fetcher.ensure(record)
        destination = self._unit_staging(unit) / record.name
        return self._reader.extract(archive, record, destination)

    def _materialize(self, unit: SourceUnit, stagings: Sequence[StagingTree]) -> ImportTree:
        try:
            destination = self._deps.emitter.tree_path(unit.identifier)
            return self._deps.materializer.materialize(unit, stagings, destination)
        except PathConflict as exc:
            raise _UnitFailure(UnitState.CONFLICT, [exc]) from exc
        except (UnitError, OSError) as exc:
            raise _UnitFailure(UnitState.EMIT_FAILED, [exc]) from exc

    def _emit(self, unit: SourceUnit, tree: ImportTree, location: RecipeLocation) -> EmitResult:
        try:
            return self._deps.emitter.emit(unit, tree, location)
        except EmptyTree as exc:
            raise _UnitFailure(UnitState.EMPTY, [exc]) from exc
        except (UnitError, OSError) as exc:
            raise _UnitFailure(UnitState.EMIT_FAILED, [exc]) from exc

    def _unit_staging(self, unit: SourceUnit) -> Path:
        return self._options.staging_root / unit.identifier

    def _cleanup_staging_root(self) -> None:
        root = self._options.staging_root
        if self._options.keep_staging or not root.is_dir():
            return
        if not any(root.iterdir()):
            root.rmdir()


def _report(
    unit: SourceUnit,
    machine: UnitStateMachine,
    *,
    location: RecipeLocation | None = None,
    stage: UnitState | None = None,
    errors: Sequence[BaseException] = (),
    warnings: Sequence[str] = (),
    manifest: str | None = None,
) -> UnitReport:
    lead = unit.lead
    messages = tuple(str(error) for error in errors)
    return UnitReport(
        identifier=unit.identifier,
        state=machine.state,
        packages=unit.package_names,
        version=lead.version,
        release=lead.release,
        recipe=location.path if location is not None else None,
        match=location.match.value if location is not None else None,
        stage=stage,
        error=messages[0] if messages else None,
        error_type=type(errors[0]).__name__ if errors else None,
        errors=messages,
        warnings=tuple(warnings),
        manifest=manifest,
    )


__all__ = ["Orchestrator", "OrchestratorDeps", "OrchestratorHooks", "OrchestratorOptions"]
