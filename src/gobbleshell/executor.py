# GobbleShell — Interactive Pipeline Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Subprocess-backed pipeline execution for GobbleShell.

This module provides:
- SubprocessSpawner: launches a single stage with subprocess.Popen
- PipelineExecutor: wires stages together, dispatches built-ins and
  waits for every spawned process

Stream wiring follows the classic shell model: each process stage reads
the previous process stage's stdout pipe, the last stage writes to the
terminal directly, stderr is always inherited. The shell's copy of a
pipe read end is closed as soon as the next child owns it.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import IO

from .interfaces import ProcessSpawner, WorkingDirectory
from .tokenizer import BuiltinStage, Stage

# Conventional status for "command could not be run".
SPAWN_FAILED_STATUS = 127


@dataclass(frozen=True)
class PipelineResult:
    """Outcome of one pipeline run."""

    argvs: tuple[tuple[str, ...], ...] = ()
    exit_codes: tuple[int | None, ...] = ()
    spawn_error: str | None = None
    stopped: bool = False

    @property
    def spawned(self) -> int:
        return len(self.argvs)

    @property
    def exit_code(self) -> int:
        if self.spawn_error is not None:
            return SPAWN_FAILED_STATUS
        if not self.exit_codes:
            return 0
        last = self.exit_codes[-1]
        return 1 if last is None else last


class SubprocessSpawner:
    """subprocess implementation of the ProcessSpawner protocol."""

    def __init__(self, force_color: bool = False):
        """
        Args:
            force_color: If True, set color-forcing env variables so
                tools keep colors when writing into a pipe
        """
        self.force_color = force_color

    def _build_env(self) -> dict:
        env = os.environ.copy()
        if self.force_color:
            env["PY_COLORS"] = "1"
            env["FORCE_COLOR"] = "1"
            env["CLICOLOR_FORCE"] = "1"
        return env

    def spawn(
        self,
        argv: list[str],
        stdin: IO[bytes] | int | None,
        stdout: int | None,
        cwd: str,
    ) -> subprocess.Popen:
        return subprocess.Popen(
            argv,
            stdin=stdin,  # None -> inherit from the shell
            stdout=stdout,  # None -> inherit, PIPE -> next stage
            stderr=None,
            env=self._build_env(),
            cwd=cwd,
        )


def _describe_spawn_error(name: str, error: OSError) -> str:
    if isinstance(error, FileNotFoundError):
        return f"{name}: command not found"
    if isinstance(error, PermissionError):
        return f"{name}: permission denied"
    reason = error.strerror or str(error)
    return f"{name}: {reason}"


def _close_quietly(stream: IO[bytes] | None) -> None:
    if stream is None:
        return
    try:
        stream.close()
    except OSError:
        pass


@dataclass
class PipelineExecutor:
    """Runs the stages of one input line as a connected pipeline."""

    spawner: ProcessSpawner
    workdir: WorkingDirectory

    # Returns False when the session should stop processing stages (exit).
    dispatch_builtin: Callable[[BuiltinStage], bool] = field(
        default=lambda stage: True
    )
    error_fn: Callable[[str], None] | None = None

    def _report(self, message: str) -> None:
        if self.error_fn is not None:
            self.error_fn(message)

    def run(self, stages: tuple[Stage, ...]) -> PipelineResult:
        """Execute stages in order and wait for every spawned process.

        A built-in stage resets the stream chain: the next process stage
        reads the shell's own stdin. A spawn failure stops the remaining
        stages, processes already started are still waited on.
        """
        procs: list[subprocess.Popen] = []
        argvs: list[tuple[str, ...]] = []
        pending: IO[bytes] | None = None
        spawn_error: str | None = None
        stopped = False
        last_index = len(stages) - 1

        try:
            for idx, stage in enumerate(stages):
                if isinstance(stage, BuiltinStage):
                    # Built-ins neither read nor forward the piped stream.
                    _close_quietly(pending)
                    pending = None
                    if not self.dispatch_builtin(stage):
                        stopped = True
                        break
                    continue

                stdout = subprocess.PIPE if idx < last_index else None
                try:
                    proc = self.spawner.spawn(
                        stage.argv,
                        stdin=pending,
                        stdout=stdout,
                        cwd=self.workdir.path,
                    )
                except OSError as e:
                    spawn_error = _describe_spawn_error(stage.name, e)
                    self._report(spawn_error)
                    break

                # The child owns the read end now.
                _close_quietly(pending)
                pending = proc.stdout if stdout is not None else None
                procs.append(proc)
                argvs.append(tuple(stage.argv))
        finally:
            _close_quietly(pending)

        exit_codes = tuple(self._wait(p) for p in procs)
        return PipelineResult(
            argvs=tuple(argvs),
            exit_codes=exit_codes,
            spawn_error=spawn_error,
            stopped=stopped,
        )

    @staticmethod
    def _wait(proc: subprocess.Popen) -> int | None:
        """Reap proc. Ctrl-C reaches the children through the terminal,
        so an interrupt here only means: keep waiting."""
        while True:
            try:
                return proc.wait()
            except KeyboardInterrupt:
                continue
            except OSError:
                return None
