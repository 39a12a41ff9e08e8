# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for console status lines and the debug log stream."""

from __future__ import annotations

import logging

import pytest

from pisi2stone.logging import PACKAGE_LOGGER, enable_debug_logging, fail, ok, section, status


def test_status_lines_honour_the_emoji_flag(capsys: pytest.CaptureFixture[str]) -> None:
    ok("converted 3 units", use_emoji=True, use_color=False)
    fail("index unreadable", use_emoji=False, use_color=False)
    status("warn", "run cancelled", use_emoji=False, use_color=False)

    lines = capsys.readouterr().out.splitlines()

    assert lines == ["✅ converted 3 units", "index unreadable", "run cancelled"]


def test_plain_section_header(capsys: pytest.CaptureFixture[str]) -> None:
    section("Converting", use_color=False)

    assert "--- Converting ---" in capsys.readouterr().out


def test_debug_logging_installs_a_single_handler() -> None:
    logger = logging.getLogger(PACKAGE_LOGGER)
    before = list(logger.handlers)
    try:
        enable_debug_logging()
        enable_debug_logging()

        added = [handler for handler in logger.handlers if handler not in before]
        assert len(added) == 1
        assert logger.level == logging.DEBUG
        assert not logger.propagate
    finally:
        for handler in logger.handlers[:]:
            if handler not in before:
                logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)
        logger.propagate = True
