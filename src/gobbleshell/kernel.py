# GobbleShell — Interactive Pipeline Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
GobbleShell kernel.

The session engine:
- owns session state (working directory, history, running flag)
- tokenizes each input line and runs it through the pipeline executor
- hosts the built-in dispatcher (cd, exit, ai)

Important boundary:
- Kernel does not load YAML, read the terminal or talk to the network
  directly. Configuration, history, working directory, process spawning
  and text generation are all injected.
- Output goes through output_fn / error_fn (wired by the CLI/UI); when
  unset, plain print() is used.
"""

from __future__ import annotations

import sys
import traceback
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from . import config as cfg_module
from .banner import collect_info, render_banner
from .commands import BuiltinDispatcher
from .config import colorize, tagged
from .executor import PipelineExecutor, PipelineResult
from .interfaces import (
    ConfigModel,
    HistoryStore,
    ProcessSpawner,
    TextGenerator,
    WorkingDirectory,
)
from .tokenizer import BUILTIN_NAMES, tokenize


def write_crash_log(
    error: Exception,
    raw_command: str = "",
    cwd: str = "",
    log_path: Path | None = None,
) -> None:
    """Append an entry for an unhandled exception to the crash log.

    Only creates the log directory when actually needed. Never raises.
    """
    try:
        if log_path is None:
            log_path = cfg_module.crash_log_path(cfg_module.get_data_root())
        log_path.parent.mkdir(parents=True, exist_ok=True)

        lines = [f"{datetime.now().isoformat()}"]
        if raw_command:
            lines.append(f"raw={raw_command}")
        if cwd:
            lines.append(f"cwd={cwd}")
        lines.append(f"error={type(error).__name__}: {error}")
        lines.append("traceback:")
        lines.append(
            "".join(
                traceback.format_exception(
                    type(error), error, error.__traceback__
                )
            )
        )
        lines.append("----")

        with log_path.open("a", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")
    except Exception:
        # Already reporting a failure; nothing more to do.
        pass


@dataclass
class Kernel:
    """GobbleShell session engine."""

    config: ConfigModel
    history: HistoryStore
    workdir: WorkingDirectory
    spawner: ProcessSpawner
    generator: TextGenerator | None = None

    running: bool = False
    last_status: int = 0

    # ---- Output hooks (wired by UI/CLI) ----
    output_fn: Callable[[str], None] | None = None
    error_fn: Callable[[str], None] | None = None

    delimiter: str = field(init=False, default="strict")
    dispatcher: BuiltinDispatcher = field(init=False)
    executor: PipelineExecutor = field(init=False)

    def __post_init__(self) -> None:
        self.delimiter = str(
            self.config.get_path("pipeline.delimiter", "strict")
        )
        if self.delimiter not in ("strict", "loose"):
            raise ValueError(
                f"pipeline.delimiter must be strict or loose, got {self.delimiter!r}"
            )
        self.dispatcher = BuiltinDispatcher(
            workdir=self.workdir,
            generator=self.generator,
            cd_fallback=str(
                self.config.get_path("builtins.cd_fallback", "/home")
            ),
            goodbye=self.goodbye_message(),
            output_fn=self._out,
            error_fn=self._err,
            request_exit=self.request_exit,
        )
        self.executor = PipelineExecutor(
            spawner=self.spawner,
            workdir=self.workdir,
            dispatch_builtin=self.dispatcher.dispatch,
            error_fn=self._err,
        )

    # -----------------------
    # Output
    # -----------------------

    def _out(self, text: str) -> None:
        if self.output_fn is not None:
            self.output_fn(text + "\n")
        else:
            print(text)

    def _err(self, text: str) -> None:
        if self.error_fn is not None:
            self.error_fn(text + "\n")
        else:
            print(text, file=sys.stderr)

    # -----------------------
    # Session
    # -----------------------

    def start(self) -> str:
        """Start a session: load history and build the startup text."""
        self.running = True
        self.history.load()

        if not self.config.get_path("banner.enabled", True):
            return ""

        sys_cfg = self.config.system
        welcome = (sys_cfg.get("welcome") or {}).get(
            "message", "Welcome to Gobble Shell!"
        )
        info = collect_info(
            cwd=self.workdir.path,
            shell_name=sys_cfg.get("name", "GobbleShell"),
        )
        return render_banner(info, welcome=welcome)

    def prompt(self) -> str:
        """Return the prompt string with ANSI colors."""
        text = str(self.config.get_path("prompt.text", "> "))
        color = str(self.config.get_path("prompt.color", "cyan"))
        return colorize(text, color)

    def goodbye_message(self) -> str:
        return str(self.config.system.get("goodbye", "Goodbye!"))

    def interrupt_hint(self) -> str:
        hint = self.config.system.get("interrupt_hint", "Use 'exit' to quit")
        return tagged("HINT", f"\n{hint}")

    def request_exit(self) -> None:
        self.running = False

    def shutdown(self) -> bool:
        """Flush history. Returns False (after reporting) on failure."""
        self.running = False
        try:
            self.history.save()
        except OSError as e:
            self._err(tagged("ERR", f"gobbleshell: could not save history: {e}"))
            return False
        return True

    # -----------------------
    # Command handling
    # -----------------------

    def handle_line(self, line: str) -> PipelineResult | None:
        """Record and execute one input line.

        Blank lines are ignored entirely (no history, no stage).
        """
        stripped = line.strip()
        if not stripped:
            return None

        self.history.append(stripped)
        stages = tokenize(stripped, self.delimiter, BUILTIN_NAMES)
        result = self.executor.run(stages)
        if result.spawned or result.spawn_error is not None:
            self.last_status = result.exit_code
        return result
