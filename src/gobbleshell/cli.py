# GobbleShell — Interactive Pipeline Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
GobbleShell CLI entry point and REPL loop.

Design:
- CLI owns process startup: configuration, history store and process
  spawner are built here and injected into the Kernel.
- Kernel is the session engine.
- UI is a terminal-friendly PromptSession (keeps scrollback + copy/select).
"""

from __future__ import annotations

import os
import sys
from collections.abc import Callable

import yaml

from . import config
from .ai import GeminiClient
from .config import tagged
from .executor import SubprocessSpawner
from .kernel import Kernel, write_crash_log
from .store import FileHistoryStore
from .ui import PromptToolkitUI
from .workdir import ProcessWorkingDirectory


def run_repl(
    kernel: Kernel,
    ui: PromptToolkitUI | None = None,
    input_fn: Callable[[str], str] = input,
    output_fn: Callable[[str], None] = print,
) -> None:
    """Run the GobbleShell REPL loop until exit or end-of-input."""

    def emit(text: str) -> None:
        if ui is not None:
            ui.write(text + "\n")
        else:
            output_fn(text)

    try:
        while kernel.running:
            try:
                prompt = kernel.prompt()
                if ui is not None:
                    line = ui.read(prompt)
                else:
                    line = input_fn(prompt)
            except KeyboardInterrupt:
                emit(kernel.interrupt_hint())
                continue
            except EOFError:
                emit(tagged("BYE", "\n" + kernel.goodbye_message()))
                break

            line = (line or "").strip()
            if not line:
                continue

            try:
                kernel.handle_line(line)
            except KeyboardInterrupt:
                # e.g. Ctrl-C while `ai` waits on the network
                emit(kernel.interrupt_hint())
            except Exception as e:
                # Unhandled exception - write crash log, keep the session
                write_crash_log(e, raw_command=line, cwd=kernel.workdir.path)
                emit(
                    tagged(
                        "ERR",
                        f"[ERROR] Unhandled exception: {type(e).__name__}: {e}",
                    )
                )
    finally:
        kernel.shutdown()


def build_kernel(cfg: config.YAMLConfig) -> Kernel:
    """Explicit wiring: config + history + spawner + AI client."""
    store = FileHistoryStore(
        config.history_path(cfg),
        max_entries=int(cfg.get_path("history.max_entries", 1000)),
    )
    spawner = SubprocessSpawner(
        force_color=bool(cfg.get_path("pipeline.force_color", False))
    )
    generator = GeminiClient(
        model=str(cfg.get_path("ai.model", "gemini-2.5-flash")),
        api_key_env=str(cfg.get_path("ai.api_key_env", "GEMINI_API_KEY")),
        endpoint=str(
            cfg.get_path(
                "ai.endpoint",
                "https://generativelanguage.googleapis.com/v1beta",
            )
        ),
        timeout=float(cfg.get_path("ai.timeout", 60)),
    )
    return Kernel(
        config=cfg,
        history=store,
        workdir=ProcessWorkingDirectory(),
        spawner=spawner,
        generator=generator,
    )


def main() -> int:
    """Main entry point for GobbleShell. Returns the process exit status."""
    try:
        cfg = config.load_system_config()
        kernel = build_kernel(cfg)
        start_output = kernel.start()
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"gobbleshell: startup failed: {e}", file=sys.stderr)
        return 1

    # If user explicitly disables prompt_toolkit UI:
    if os.environ.get("GOBBLE_LEGACY_UI") == "1":
        if start_output:
            print(start_output)
        run_repl(kernel)
        return 0

    # Default: PromptToolkitUI (keeps terminal scrollback/copy/select)
    ui = PromptToolkitUI(kernel)

    # Route kernel output through the UI
    kernel.output_fn = ui.write
    kernel.error_fn = ui.write

    if start_output:
        ui.write(start_output)
        if not start_output.endswith("\n"):
            ui.write("\n")

    run_repl(kernel, ui=ui)
    return 0
