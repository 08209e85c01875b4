# GobbleShell — Interactive Pipeline Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
In-process built-in commands: ``cd``, ``exit`` and ``ai``.

Built-ins write to the shell's own output (never to a pipe) and report
their failures on the error stream without ending the session.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from .ai import AIQueryError
from .config import tagged
from .interfaces import TextGenerator, WorkingDirectory
from .tokenizer import BuiltinStage


def _noop() -> None:
    return None


@dataclass
class BuiltinDispatcher:
    """Executes BuiltinStage objects for the pipeline executor."""

    workdir: WorkingDirectory
    generator: TextGenerator | None = None
    cd_fallback: str = "/home"
    goodbye: str = "Goodbye!"

    output_fn: Callable[[str], None] = print
    error_fn: Callable[[str], None] = print
    request_exit: Callable[[], None] = field(default=_noop)

    def dispatch(self, stage: BuiltinStage) -> bool:
        """Run one built-in. Returns False when the session must end."""
        handler = getattr(self, f"_handle_{stage.name}", None)
        if handler is None:
            self.error_fn(tagged("ERR", f"{stage.name}: not a built-in"))
            return True
        return handler(stage.args)

    # -----------------------
    # cd
    # -----------------------

    def _handle_cd(self, args: tuple[str, ...]) -> bool:
        target = args[0] if args else self.cd_fallback
        try:
            self.workdir.change(target)
        except OSError as e:
            reason = e.strerror or str(e)
            self.error_fn(tagged("ERR", f"cd: {target}: {reason}"))
        return True

    # -----------------------
    # exit
    # -----------------------

    def _handle_exit(self, args: tuple[str, ...]) -> bool:
        self.output_fn(tagged("BYE", self.goodbye))
        self.request_exit()
        return False

    # -----------------------
    # ai
    # -----------------------

    def _handle_ai(self, args: tuple[str, ...]) -> bool:
        message = " ".join(args)
        if not message:
            self.error_fn(tagged("ERR", "usage: ai <text...>"))
            return True
        if self.generator is None:
            self.error_fn(tagged("ERR", "ai: no text-generation service configured"))
            return True

        try:
            text = self.generator.generate(message)
        except AIQueryError as e:
            self.error_fn(tagged("ERR", f"ai: {e.message}"))
            return True

        self.output_fn(text)
        return True
