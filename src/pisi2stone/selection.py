# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Include/exclude filtering of source-unit identifiers."""

from __future__ import annotations

import re
from collections.abc import Iterable
from fnmatch import translate
from typing import Final

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator, model_validator

from .errors import FilterSyntaxError

_WILDCARD_CLASS_RE: Final[re.Pattern[str]] = re.compile(r"\[!?\]?[^\]]*\]")


def validate_pattern(pattern: str) -> str:
    """Return ``pattern`` unchanged when it is a well-formed glob.

    Args:
        pattern: Candidate ``fnmatch`` pattern.

    Returns:
        str: The validated pattern.

    Raises:
        FilterSyntaxError: If the pattern is blank, has unbalanced character
            classes, or does not compile.
    """

    if not pattern or not pattern.strip():
        raise FilterSyntaxError(pattern, "pattern is empty")
    if pattern != pattern.strip():
        raise FilterSyntaxError(pattern, "pattern has surrounding whitespace")
    remainder = _WILDCARD_CLASS_RE.sub("", pattern)
    if "[" in remainder or "]" in remainder:
        raise FilterSyntaxError(pattern, "unbalanced character class")
    try:
        re.compile(translate(pattern))
    except re.error as exc:
        raise FilterSyntaxError(pattern, str(exc)) from exc
    return pattern


class SelectionFilter(BaseModel):
    """Glob patterns that decide which source units a run converts.

    A unit is in scope when it matches at least one include pattern (an empty
    include list matches everything) and no exclude pattern. Exclusion always
    wins.
    """

    model_config = ConfigDict(frozen=True)

    include: tuple[str, ...] = Field(default_factory=tuple)
    exclude: tuple[str, ...] = Field(default_factory=tuple)
    _include_re: tuple[re.Pattern[str], ...] = PrivateAttr(default_factory=tuple)
    _exclude_re: tuple[re.Pattern[str], ...] = PrivateAttr(default_factory=tuple)

    @field_validator("include", "exclude", mode="before")
    @classmethod
    def _coerce(cls, value: object) -> tuple[str, ...]:
        if value is None:
            return ()
        if isinstance(value, str):
            return (value,)
        if isinstance(value, Iterable):
            return tuple(str(item) for item in value)
        raise TypeError("selection patterns must be a string or a sequence of strings")

    @model_validator(mode="after")
    def _compile(self) -> SelectionFilter:
        self._include_re = tuple(re.compile(translate(validate_pattern(item))) for item in self.include)
        self._exclude_re = tuple(re.compile(translate(validate_pattern(item))) for item in self.exclude)
        return self

    def includes(self, identifier: str) -> bool:
        """Return whether ``identifier`` is in scope."""

        if any(pattern.match(identifier) for pattern in self._exclude_re):
            return False
        if not self._include_re:
            return True
        return any(pattern.match(identifier) for pattern in self._include_re)


def build_filter(include: Iterable[str] = (), exclude: Iterable[str] = ()) -> SelectionFilter:
    """Build a :class:`SelectionFilter`, surfacing syntax problems directly.

    Pydantic wraps validator exceptions in ``ValidationError``; callers of this
    helper receive the underlying :class:`FilterSyntaxError` instead.
    """

    include_patterns = tuple(include)
    exclude_patterns = tuple(exclude)
    for pattern in (*include_patterns, *exclude_patterns):
        validate_pattern(pattern)
    return SelectionFilter(include=include_patterns, exclude=exclude_patterns)


__all__ = ["SelectionFilter", "build_filter", "validate_pattern"]
