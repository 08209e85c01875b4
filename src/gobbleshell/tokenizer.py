# GobbleShell — Interactive Pipeline Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Pipeline tokenizer.

A line is split into segments on the pipe delimiter, then each segment
is split on runs of whitespace into a command name and its arguments.
No quoting, escaping or expansion is performed.

Delimiter modes:
- ``strict`` (default): only the exact three characters ``" | "``.
  ``a|b`` or ``a  |b`` are a single segment.
- ``loose``: any whitespace (including none) around ``|``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

STRICT_DELIMITER = " | "
LOOSE_DELIMITER = re.compile(r"\s*\|\s*")

BUILTIN_NAMES: frozenset[str] = frozenset({"cd", "exit", "ai"})


@dataclass(frozen=True)
class BuiltinStage:
    """A stage handled in-process by the built-in dispatcher."""

    name: str
    args: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ProcessStage:
    """A stage run as an external process."""

    name: str
    args: tuple[str, ...] = field(default_factory=tuple)

    @property
    def argv(self) -> list[str]:
        return [self.name, *self.args]


Stage = BuiltinStage | ProcessStage


def split_segments(line: str, delimiter: str = "strict") -> list[str]:
    """Split a raw line into pipeline segments (empty segments kept)."""
    if delimiter == "loose":
        return LOOSE_DELIMITER.split(line)
    if delimiter != "strict":
        raise ValueError(f"Unknown pipeline delimiter mode: {delimiter!r}")
    return line.split(STRICT_DELIMITER)


def tokenize(
    line: str,
    delimiter: str = "strict",
    builtins: Iterable[str] = BUILTIN_NAMES,
) -> tuple[Stage, ...]:
    """Turn a raw input line into an ordered tuple of stages.

    Segments without any token are dropped.
    """
    reserved = frozenset(builtins)
    stages: list[Stage] = []
    for segment in split_segments(line.strip(), delimiter):
        tokens = segment.split()
        if not tokens:
            continue
        name, args = tokens[0], tuple(tokens[1:])
        if name in reserved:
            stages.append(BuiltinStage(name, args))
        else:
            stages.append(ProcessStage(name, args))
    return tuple(stages)
