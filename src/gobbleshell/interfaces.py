# GobbleShell — Interactive Pipeline Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Protocol definitions for dependency injection.

These interfaces keep the kernel, the pipeline executor and the built-ins
independent of the real terminal, filesystem, process table and network,
so each can be exercised with fakes.
"""

from __future__ import annotations

import subprocess
from typing import IO, Any, Protocol


class LineSource(Protocol):
    """Supplies one input line per call.

    ``read`` raises KeyboardInterrupt on cancellation and EOFError on
    end-of-input.
    """

    def read(self, prompt: str) -> str:
        """Block until the next line is entered and return it."""
        ...

    def write(self, text: str) -> None:
        """Write text exactly as given (no newline added)."""
        ...


class HistoryStore(Protocol):
    """Protocol for the persisted, append-only input history."""

    @property
    def entries(self) -> list[str]:
        """Stored lines, oldest first."""
        ...

    def load(self) -> None:
        """Load the persisted history, creating an empty store if needed."""
        ...

    def append(self, line: str) -> None:
        """Append one line to the in-memory history."""
        ...

    def save(self) -> None:
        """Rewrite the persisted history. Raises OSError on failure."""
        ...


class WorkingDirectory(Protocol):
    """Session working directory (single writer: ``cd``)."""

    @property
    def path(self) -> str:
        """Current directory as an absolute path."""
        ...

    def change(self, target: str) -> str:
        """Change to target and return the new absolute path.

        Raises OSError (FileNotFoundError, NotADirectoryError,
        PermissionError) and leaves the directory unchanged on failure.
        """
        ...


class ProcessSpawner(Protocol):
    """Protocol for launching one pipeline stage as an OS process."""

    def spawn(
        self,
        argv: list[str],
        stdin: IO[bytes] | int | None,
        stdout: int | None,
        cwd: str,
    ) -> subprocess.Popen:
        """Start argv and return its handle. Raises OSError on failure."""
        ...


class TextGenerator(Protocol):
    """Protocol for the external text-generation service."""

    def generate(self, message: str) -> str:
        """Send one user message and return the response text.

        Raises AIQueryError (or a subclass) on any failure.
        """
        ...


class ConfigModel(Protocol):
    """Protocol for configuration access."""

    @property
    def system(self) -> dict[str, Any]:
        """System configuration."""
        ...

    def get_path(self, path: str, default: Any = None) -> Any:
        """Dotted lookup into the configuration tree."""
        ...
