# GobbleShell — Interactive Pipeline Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
File-backed history store for GobbleShell.

Format: one input line per record, oldest first, newest appended at the
end. The file is read once at startup and rewritten on exit.
"""

from __future__ import annotations

from pathlib import Path


class FileHistoryStore:
    """Plain-text implementation of the HistoryStore protocol."""

    def __init__(self, path: Path, max_entries: int = 1000):
        """
        Args:
            path: History file location
            max_entries: Oldest lines beyond this count are dropped on
                append (0 or less keeps everything)
        """
        self.path = path
        self.max_entries = max_entries
        self._entries: list[str] = []

    @property
    def entries(self) -> list[str]:
        return list(self._entries)

    def load(self) -> None:
        """Load history; an absent or unreadable file becomes an empty one.

        Creating the empty file is best-effort: a read-only location only
        surfaces later, when save() fails.
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            self._entries = []
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self.path.write_text("", encoding="utf-8")
            except OSError:
                pass
            return

        self._entries = [line for line in text.splitlines() if line.strip()]
        self._trim()

    def append(self, line: str) -> None:
        # one record per file line; continued lines are joined
        line = " ".join(line.strip().splitlines())
        if not line:
            return
        self._entries.append(line)
        self._trim()

    def save(self) -> None:
        """Rewrite the history file. OSError propagates to the caller."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        body = "".join(f"{line}\n" for line in self._entries)
        self.path.write_text(body, encoding="utf-8")

    def _trim(self) -> None:
        if self.max_entries > 0 and len(self._entries) > self.max_entries:
            del self._entries[: len(self._entries) - self.max_entries]
