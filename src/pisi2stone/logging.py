# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Status lines printed by the CLI and the ``--verbose`` debug stream.

Status lines are for the person running a conversion; module loggers under
the ``pisi2stone`` namespace carry per-unit debug detail and stay silent
unless :func:`enable_debug_logging` is called.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from types import MappingProxyType
from typing import Final, Literal

from rich.rule import Rule
from rich.text import Text

from .console import detect_tty, get_console

PACKAGE_LOGGER: Final[str] = "pisi2stone"
_DEBUG_FORMAT: Final[str] = "%(threadName)s %(name)s: %(message)s"

Tone = Literal["info", "ok", "warn", "fail"]


@dataclass(frozen=True, slots=True)
class _Marker:
    symbol: str
    style: str


_MARKERS: Final = MappingProxyType(
    {
        "info": _Marker("ℹ️ ", "cyan"),
        "ok": _Marker("✅ ", "green"),
        "warn": _Marker("⚠️ ", "yellow"),
        "fail": _Marker("❌ ", "red"),
    },
)


def status(tone: Tone, msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    """Print one status line in the colour and symbol of ``tone``.

    Args:
        tone: Kind of line; selects the emoji prefix and the Rich style.
        msg: Message text to display.
        use_emoji: Flag indicating whether the emoji prefix is printed.
        use_color: Optional explicit colour flag overriding TTY detection.
    """

    marker = _MARKERS[tone]
    color_enabled = detect_tty() if use_color is None else use_color
    text = Text(f"{marker.symbol if use_emoji else ''}{msg}")
    if color_enabled:
        text.stylize(marker.style)
    get_console(color=color_enabled, emoji=use_emoji).print(text)


def section(title: str, *, use_color: bool) -> None:
    """Print a header separating the phases of a run.

    Args:
        title: Section title displayed to the user.
        use_color: Flag indicating whether a Rich rule replaces the plain marker.
    """

    console = get_console(color=use_color)
    if use_color:
        console.print()
        console.print(Rule(title))
    else:
        console.print(f"\n--- {title} ---")


def info(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    """Print an informational line.

    Args:
        msg: Message text to display.
        use_emoji: Flag indicating whether emoji output is desired.
        use_color: Optional explicit colour flag overriding TTY detection.
    """

    status("info", msg, use_emoji=use_emoji, use_color=use_color)


def ok(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    """Print a success line, used once a run or command completes cleanly.

    Args:
        msg: Message text to display.
        use_emoji: Flag indicating whether emoji output is desired.
        use_color: Optional explicit colour flag overriding TTY detection.
    """

    status("ok", msg, use_emoji=use_emoji, use_color=use_color)


def warn(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    """Print a warning line, such as a cancelled run.

    Args:
        msg: Message text to display.
        use_emoji: Flag indicating whether emoji output is desired.
        use_color: Optional explicit colour flag overriding TTY detection.
    """

    status("warn", msg, use_emoji=use_emoji, use_color=use_color)


def fail(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    """Print an error line for precondition failures and failed units.

    Args:
        msg: Message text to display.
        use_emoji: Flag indicating whether emoji output is desired.
        use_color: Optional explicit colour flag overriding TTY detection.
    """

    status("fail", msg, use_emoji=use_emoji, use_color=use_color)


def enable_debug_logging() -> None:
    """Stream debug records of the package loggers to stderr.

    Worker threads log concurrently, so each record names its thread.
    Repeated calls keep a single handler.
    """

    logger = logging.getLogger(PACKAGE_LOGGER)
    if any(getattr(handler, "name", None) == PACKAGE_LOGGER for handler in logger.handlers):
        return
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.set_name(PACKAGE_LOGGER)
    handler.setFormatter(logging.Formatter(_DEBUG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False


__all__ = ["PACKAGE_LOGGER", "enable_debug_logging", "fail", "info", "ok", "section", "status", "warn"]
