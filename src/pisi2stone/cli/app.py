# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Command-line entry point for conversion runs."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

import typer

from ..config.loader import load_config
from ..config.models import ConvertConfig
from ..console import detect_tty, get_console
from ..errors import PreconditionError
from ..logging import enable_debug_logging, fail, info, ok, section, warn
from ..orchestration.summary import EXIT_FAILURES, EXIT_OK, EXIT_PRECONDITION
from ..pipeline import prepare_run
from ..recipes.cache import clear_resolution_cache
from ..reporting import render_summary
from .progress import ConversionProgress

app = typer.Typer(
    name="pisi2stone",
    help="Convert eopkg binary packages into stone.yml recipes.",
    no_args_is_help=True,
    add_completion=False,
)
cache_app = typer.Typer(name="cache", help="Manage the recipe resolution side table.", no_args_is_help=True)
app.add_typer(cache_app, name="cache")

RootOption = Annotated[
    Path,
    typer.Option("--root", "-r", help="Project root anchoring relative paths.", file_okay=False),
]
ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Configuration file (defaults to pisi2stone.toml).", dir_okay=False),
]
EmojiOption = Annotated[bool, typer.Option("--no-emoji", help="Disable emoji output.")]
ColorOption = Annotated[bool, typer.Option("--no-color", help="Disable coloured output.")]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Log debug details to stderr.")]


def _overrides(
    *,
    index: Path | None,
    output: Path | None,
    include: list[str] | None,
    exclude: list[str] | None,
    jobs: int | None,
    keep_staging: bool,
    no_cache: bool,
) -> dict[str, Any]:
    """Translate command-line flags into a configuration fragment."""

    paths: dict[str, Any] = {}
    selection: dict[str, Any] = {}
    execution: dict[str, Any] = {}
    if index is not None:
        paths["index"] = str(index)
    if output is not None:
        paths["output_root"] = str(output)
    if include:
        selection["include"] = list(include)
    if exclude:
        selection["exclude"] = list(exclude)
    if jobs is not None:
        execution["jobs"] = jobs
    if keep_staging:
        execution["keep_staging"] = True
    if no_cache:
        execution["use_resolution_cache"] = False
    fragment = {"paths": paths, "selection": selection, "execution": execution}
    return {key: value for key, value in fragment.items() if value}


@app.command("convert")
def convert_command(
    root: RootOption = Path("."),
    config_file: ConfigOption = None,
    index: Annotated[Path | None, typer.Option("--index", help="Package index document.")] = None,
    output: Annotated[Path | None, typer.Option("--output", "-o", help="Output root directory.")] = None,
    include: Annotated[
        list[str] | None,
        typer.Option("--include", "-i", help="Glob selecting source units (repeatable)."),
    ] = None,
    exclude: Annotated[
        list[str] | None,
        typer.Option("--exclude", "-x", help="Glob excluding source units (repeatable)."),
    ] = None,
    jobs: Annotated[int | None, typer.Option("--jobs", "-j", min=1, help="Parallel unit workers.")] = None,
    keep_staging: Annotated[bool, typer.Option("--keep-staging", help="Keep staging directories.")] = False,
    no_cache: Annotated[bool, typer.Option("--no-cache", help="Ignore the resolution side table.")] = False,
    no_emoji: EmojiOption = False,
    no_color: ColorOption = False,
    verbose: VerboseOption = False,
) -> None:
    """Convert every selected source unit and print a summary."""

    use_emoji = not no_emoji
    use_color = not no_color and detect_tty()
    if verbose:
        enable_debug_logging()
    overrides = _overrides(
        index=index,
        output=output,
        include=include,
        exclude=exclude,
        jobs=jobs,
        keep_staging=keep_staging,
        no_cache=no_cache,
    )
    try:
        config = load_config(root, config_file=config_file, overrides=overrides)
        console = get_console(color=use_color, emoji=use_emoji)
        progress = ConversionProgress(console=console, enabled=use_color)
        prepared = prepare_run(config, hooks=progress.hooks())
    except PreconditionError as exc:
        fail(str(exc), use_emoji=use_emoji, use_color=use_color)
        raise typer.Exit(code=EXIT_PRECONDITION) from exc

    section("Converting", use_color=use_color)
    info(
        f"{len(prepared.index.records)} packages from {config.paths.index}",
        use_emoji=use_emoji,
        use_color=use_color,
    )
    with progress:
        summary = prepared.execute()
    render_summary(summary, console)
    _report_outcome(config, summary.exit_code, cancelled=summary.cancelled, use_emoji=use_emoji, use_color=use_color)
    raise typer.Exit(code=summary.exit_code)


def _report_outcome(
    config: ConvertConfig,
    exit_code: int,
    *,
    cancelled: bool,
    use_emoji: bool,
    use_color: bool,
) -> None:
    if cancelled:
        warn("Run cancelled; unstarted units were skipped", use_emoji=use_emoji, use_color=use_color)
    if exit_code == EXIT_OK:
        ok(f"Summary written to {config.summary_file}", use_emoji=use_emoji, use_color=use_color)
    elif exit_code == EXIT_FAILURES:
        fail(f"Some units failed; see {config.summary_file}", use_emoji=use_emoji, use_color=use_color)


@cache_app.command("clear")
def cache_clear_command(
    root: RootOption = Path("."),
    config_file: ConfigOption = None,
    no_emoji: EmojiOption = False,
) -> None:
    """Invalidate every recorded recipe lookup."""

    use_emoji = not no_emoji
    try:
        config = load_config(root, config_file=config_file)
    except PreconditionError as exc:
        fail(str(exc), use_emoji=use_emoji)
        raise typer.Exit(code=EXIT_PRECONDITION) from exc
    if clear_resolution_cache(config.paths.cache_dir):
        ok(f"Cleared resolution cache in {config.paths.cache_dir}", use_emoji=use_emoji)
    else:
        info("Resolution cache already empty", use_emoji=use_emoji)
    raise typer.Exit(code=EXIT_OK)


def main() -> None:
    """Console-script entry point."""

    app()


__all__ = ["app", "cache_app", "main"]
