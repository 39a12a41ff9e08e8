# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Shared Rich consoles for status lines, the progress bar and the summary table."""

from __future__ import annotations

import sys
from functools import lru_cache

from rich.console import Console


def detect_tty() -> bool:
    """Return ``True`` when stdout appears to be backed by a terminal.

    Returns:
        bool: ``True`` when ``sys.stdout`` reports TTY support, ``False`` otherwise.
    """

    try:
        return sys.stdout.isatty()
    except (AttributeError, ValueError):
        return False


@lru_cache(maxsize=8)
def _build_console(color: bool, emoji: bool, tty: bool) -> Console:
    styled = color and tty
    return Console(
        color_system="auto" if styled else None,
        force_terminal=tty,
        no_color=not styled,
        emoji=emoji,
        soft_wrap=True,
    )


def get_console(*, color: bool, emoji: bool = True) -> Console:
    """Return the console matching the requested presentation flags.

    One console exists per ``(color, emoji, tty)`` combination, so the status
    lines and the live progress bar of a run write through the same object.

    Args:
        color: ``True`` when ANSI colour output should be enabled.
        emoji: ``True`` when Rich should render emoji glyphs.

    Returns:
        Console: Cached console configured for the flags and the current stdout.
    """

    return _build_console(color, emoji, detect_tty())


__all__ = ["detect_tty", "get_console"]
