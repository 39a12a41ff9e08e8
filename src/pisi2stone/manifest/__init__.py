# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Glob minimisation, manifest rendering, and publication."""

from __future__ import annotations

from .emitter import DEFAULT_HOMEPAGE, MANIFEST_FILENAME, EmitResult, ManifestEmitter
from .globs import DEFAULT_MIN_GLOB_DEPTH, DeclaredPaths, compute_globs, expand_globs, verify_coverage
from .render import INSTALL_SCRIPT, Manifest, render_manifest

__all__ = [
    "DEFAULT_HOMEPAGE",
    "DEFAULT_MIN_GLOB_DEPTH",
    "INSTALL_SCRIPT",
    "MANIFEST_FILENAME",
    "DeclaredPaths",
    "EmitResult",
    "Manifest",
    "ManifestEmitter",
    "compute_globs",
    "expand_globs",
    "render_manifest",
    "verify_coverage",
]
