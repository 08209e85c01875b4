# GobbleShell — Interactive Pipeline Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

from __future__ import annotations

import os
from collections.abc import Iterable
from typing import TYPE_CHECKING

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.formatted_text import ANSI
from prompt_toolkit.history import History
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.lexers import Lexer
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.shortcuts import print_formatted_text
from prompt_toolkit.styles import Style
from prompt_toolkit.validation import ValidationError, Validator

from .interfaces import HistoryStore
from .tokenizer import STRICT_DELIMITER, split_segments

if TYPE_CHECKING:
    from .kernel import Kernel  # pragma: no cover


# ----------------------------
# Config helpers (MUST come from config.py facade via kernel.config.get_path)
# ----------------------------


def _cfg_get_path(kernel: Kernel | None, path: str, default):
    if kernel is None:
        return default
    cfg = getattr(kernel, "config", None)
    if cfg is None or not hasattr(cfg, "get_path"):
        return default
    try:
        return cfg.get_path(path, default)
    except Exception:
        return default


def _cfg_bool(kernel: Kernel | None, path: str, default: bool) -> bool:
    return bool(_cfg_get_path(kernel, path, default))


def _cfg_dict(kernel: Kernel | None, path: str, default: dict) -> dict:
    val = _cfg_get_path(kernel, path, default)
    return val if isinstance(val, dict) else default


def _delimiter(kernel: Kernel | None) -> str:
    return str(getattr(kernel, "delimiter", "strict") or "strict")


# ----------------------------
# Theme / Style
# ----------------------------


def _default_style_dict() -> dict[str, str]:
    return {
        # completion menu
        "completion-menu": "bg:#111111 #d0d0d0",
        "completion-menu.completion": "bg:#111111 #d0d0d0",
        "completion-menu.completion.current": "bg:#303030 #ffffff bold",
        "completion-menu.meta.completion": "bg:#111111 #808080",
        "completion-menu.meta.completion.current": "bg:#303030 #a0a0a0",
        # history hint
        "auto-suggestion": "#666666",
        # input highlighting
        "gobble.builtin.cd": "ansiblue",
        "gobble.path": "ansigreen",
        "gobble.exit": "ansired",
        "gobble.command": "ansiyellow",
        "gobble.pipe": "ansimagenta",
    }


def _build_style(kernel: Kernel | None) -> Style:
    base = _default_style_dict()
    overrides = _cfg_dict(kernel, "ui.theme.style", {})
    # only keep string->string
    for k, v in list(overrides.items()):
        if isinstance(k, str) and isinstance(v, str):
            base[k] = v
    return Style.from_dict(base)


# ----------------------------
# Input highlighting
# ----------------------------


def highlight_line(line: str) -> list[tuple[str, str]]:
    """Split one line into (style, text) fragments.

    - ``cd <path>``: command blue, path green
    - ``exit...``: red
    - anything containing " | ": stages yellow, delimiters magenta
    - otherwise: yellow
    """
    if not line.strip():
        return [("", line)]
    if line.startswith("cd "):
        return [("class:gobble.builtin.cd", line[:3]), ("class:gobble.path", line[3:])]
    if line.startswith("exit"):
        return [("class:gobble.exit", line)]
    if STRICT_DELIMITER in line:
        fragments: list[tuple[str, str]] = []
        for i, part in enumerate(line.split(STRICT_DELIMITER)):
            if i:
                fragments.append(("class:gobble.pipe", STRICT_DELIMITER))
            fragments.append(("class:gobble.command", part))
        return fragments
    return [("class:gobble.command", line)]


class ShellLexer(Lexer):
    def lex_document(self, document):
        lines = document.lines

        def get_line(lineno: int) -> list[tuple[str, str]]:
            try:
                return highlight_line(lines[lineno])
            except IndexError:
                return []

        return get_line


# ----------------------------
# Completions
# ----------------------------


class ExecutableCompleter(Completer):
    """Completes executable names available on PATH (first token of a stage)."""

    def __init__(self) -> None:
        self._cache: set[str] | None = None
        self._cache_path: str | None = None

    def _load(self) -> set[str]:
        path_val = os.environ.get("PATH", "")
        if self._cache is not None and self._cache_path == path_val:
            return self._cache

        exes: set[str] = set()
        for p in path_val.split(os.pathsep):
            if not p:
                continue
            try:
                for name in os.listdir(p):
                    full = os.path.join(p, name)
                    if os.path.isfile(full) and os.access(full, os.X_OK):
                        exes.add(name)
            except OSError:
                continue

        self._cache = exes
        self._cache_path = path_val
        return exes

    def complete_token(self, token: str) -> Iterable[Completion]:
        for exe in sorted(self._load()):
            if exe.startswith(token):
                yield Completion(
                    exe, start_position=-len(token), display_meta="exe"
                )


class PathCompleter(Completer):
    """Filesystem path completion for the argument under the cursor."""

    def _list_dir(self, directory: str) -> list[str]:
        try:
            return sorted(os.listdir(directory))
        except OSError:
            return []

    def complete_token(self, token: str) -> Iterable[Completion]:
        expanded = os.path.expanduser(token)

        if token == "":
            base_dir = "."
            prefix = ""
            insert_prefix = ""
        elif expanded.endswith("/") or expanded.endswith(os.sep):
            base_dir = expanded
            prefix = ""
            insert_prefix = token
        else:
            base_dir = os.path.dirname(expanded) or "."
            prefix = os.path.basename(expanded)
            insert_prefix = os.path.dirname(token)
            if insert_prefix and not insert_prefix.endswith("/"):
                insert_prefix += "/"

        for name in self._list_dir(base_dir):
            if not name.startswith(prefix):
                continue
            full = os.path.join(base_dir, name)
            is_dir = os.path.isdir(full)
            ins = f"{insert_prefix}{name}" + ("/" if is_dir else "")
            meta = "dir" if is_dir else "file"
            yield Completion(
                ins, start_position=-len(token), display_meta=meta
            )


class ShellCompleter(Completer):
    """Executables for a stage's first token, paths for its arguments."""

    def __init__(self, kernel: Kernel | None) -> None:
        self.kernel = kernel
        self._exe = ExecutableCompleter()
        self._path = PathCompleter()

    def _current_segment(self, text_before_cursor: str) -> str:
        try:
            segments = split_segments(
                text_before_cursor, _delimiter(self.kernel)
            )
        except ValueError:
            segments = [text_before_cursor]
        return segments[-1] if segments else ""

    def get_completions(
        self, document, complete_event
    ) -> Iterable[Completion]:
        segment = self._current_segment(
            document.text_before_cursor or ""
        ).lstrip()

        # still on the command token
        if not any(ch.isspace() for ch in segment):
            if segment:
                yield from self._exe.complete_token(segment)
            return

        token = "" if segment[-1].isspace() else segment.split()[-1]
        yield from self._path.complete_token(token)


# ----------------------------
# Bracket matching
# ----------------------------

BRACKET_PAIRS = {")": "(", "]": "[", "}": "{"}


def bracket_state(text: str) -> str:
    """Classify bracket nesting: ``complete``, ``incomplete`` or ``mismatched``."""
    stack: list[str] = []
    for ch in text:
        if ch in "([{":
            stack.append(ch)
        elif ch in BRACKET_PAIRS:
            if not stack or stack.pop() != BRACKET_PAIRS[ch]:
                return "mismatched"
    return "incomplete" if stack else "complete"


class BracketValidator(Validator):
    """Refuses to accept a line whose brackets close in the wrong order."""

    def validate(self, document) -> None:
        if bracket_state(document.text) == "mismatched":
            raise ValidationError(
                cursor_position=len(document.text),
                message="mismatched brackets",
            )


# ----------------------------
# History adapter
# ----------------------------


class StoreHistory(History):
    """Exposes a HistoryStore to prompt_toolkit for up/down recall.

    The kernel appends accepted lines itself, so store_string() only
    keeps prompt_toolkit's in-memory list in sync.
    """

    def __init__(self, store: HistoryStore) -> None:
        super().__init__()
        self.store = store

    def load_history_strings(self) -> Iterable[str]:
        # newest first
        yield from reversed(self.store.entries)

    def store_string(self, string: str) -> None:
        pass


# ----------------------------
# PromptSession UI
# ----------------------------


class PromptToolkitUI:
    """
    Terminal-friendly line source:
      - keeps normal terminal scrollback
      - history recall + history-based hints
      - executable/path completion per pipeline stage
      - syntax highlighting of the line being typed
      - Ctrl+L clears the screen
      - Enter with an unclosed bracket continues on a new line
    """

    def __init__(self, kernel: Kernel | None = None) -> None:
        self.kernel = kernel
        self.session: PromptSession[str] | None = None
        self._completer: ShellCompleter | None = None
        self._style = _build_style(kernel)

        # Track whether we ended on a newline (to prevent prompt mangling)
        self._needs_newline_before_prompt = False

    # ---------- session ----------

    def _ensure_session(self) -> None:
        if self.session is not None:
            return

        key_bindings = self.build_key_bindings()
        self._completer = ShellCompleter(self.kernel)

        history = None
        store = getattr(self.kernel, "history", None)
        if store is not None:
            history = StoreHistory(store)

        lexer = (
            ShellLexer()
            if _cfg_bool(self.kernel, "ui.highlight", True)
            else None
        )

        self.session = PromptSession(
            key_bindings=key_bindings,
            completer=self._completer,
            complete_while_typing=False,
            history=history,
            auto_suggest=AutoSuggestFromHistory(),
            lexer=lexer,
            validator=BracketValidator(),
            validate_while_typing=False,
            style=self._style,
        )

    # ---------- public API ----------

    def read(self, prompt: str) -> str:
        self._ensure_session()
        assert self.session is not None

        # If last output didn't end with newline, insert one
        # before prompt redraw
        if self._needs_newline_before_prompt:
            print_formatted_text(
                ANSI("\n"), style=self._style, end=""
            )
            self._needs_newline_before_prompt = False

        with patch_stdout():
            # prompt contains ANSI from kernel.prompt(), so preserve it
            return self.session.prompt(ANSI(prompt))

    def write(self, text: str) -> None:
        """Write EXACTLY what we receive (no extra newline).

        Track prompt safety.
        """
        if not text:
            return
        print_formatted_text(ANSI(text), style=self._style, end="")
        self._needs_newline_before_prompt = not text.endswith("\n")

    # ---------- keybindings ----------

    def build_key_bindings(self) -> KeyBindings:
        kb = KeyBindings()

        @kb.add("c-l")
        def _(event):
            event.app.renderer.clear()
            event.app.invalidate()

        @kb.add("enter")
        def _(event):
            buf = event.current_buffer
            if bracket_state(buf.text) == "incomplete":
                buf.insert_text("\n")
            else:
                buf.validate_and_handle()

        return kb
