# GobbleShell — Interactive Pipeline Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Working directory implementations.

The session directory is read by every spawned stage (passed as the
child's ``cwd``) and written only by the ``cd`` built-in.
"""

from __future__ import annotations

import os


def _resolve(base: str, target: str) -> str:
    target = os.path.expanduser(target)
    if not os.path.isabs(target):
        target = os.path.join(base, target)
    return os.path.normpath(target)


class SessionWorkingDirectory:
    """Tracks the directory without touching the process-wide cwd."""

    def __init__(self, path: str | None = None) -> None:
        self._path = os.path.abspath(path or os.getcwd())

    @property
    def path(self) -> str:
        return self._path

    def change(self, target: str) -> str:
        resolved = _resolve(self._path, target)
        if not os.path.exists(resolved):
            raise FileNotFoundError(
                2, "No such file or directory", target
            )
        if not os.path.isdir(resolved):
            raise NotADirectoryError(20, "Not a directory", target)
        if not os.access(resolved, os.X_OK):
            raise PermissionError(13, "Permission denied", target)
        self._path = resolved
        return resolved


class ProcessWorkingDirectory(SessionWorkingDirectory):
    """Also moves the real process cwd, so completions and relative
    paths used by the shell itself follow ``cd``."""

    def change(self, target: str) -> str:
        resolved = _resolve(self._path, target)
        os.chdir(resolved)
        self._path = os.getcwd()
        return self._path
