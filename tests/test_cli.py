# tests/test_cli.py
from __future__ import annotations

import inspect
import io
from dataclasses import dataclass, field
from pathlib import Path

import pytest

import gobbleshell.cli as cli
from gobbleshell.config import YAMLConfig
from gobbleshell.executor import SubprocessSpawner
from gobbleshell.kernel import Kernel
from gobbleshell.store import FileHistoryStore
from gobbleshell.workdir import SessionWorkingDirectory


@dataclass
class FakeUI:
    """
    Line source used by the CLI:
      - read(prompt) -> str (EOFError once inputs run out)
      - write(text) -> None
    """

    inputs: list[str]
    outputs: list[str] = field(default_factory=list)
    prompts: list[str] = field(default_factory=list)

    def read(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.inputs:
            raise EOFError
        item = self.inputs.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def write(self, text: str) -> None:
        self.outputs.append(text)


class CountingSpawner:
    def __init__(self) -> None:
        self.inner = SubprocessSpawner()
        self.count = 0

    def spawn(self, argv, stdin, stdout, cwd):
        self.count += 1
        return self.inner.spawn(argv, stdin=stdin, stdout=stdout, cwd=cwd)


def make_kernel(tmp_path: Path, spawner=None, generator=None) -> Kernel:
    cfg = YAMLConfig(
        {
            "system": {"goodbye": "Goodbye!", "interrupt_hint": "Use 'exit' to quit"},
            "builtins": {"cd_fallback": "/"},
            "banner": {"enabled": False},
        }
    )
    k = Kernel(
        config=cfg,
        history=FileHistoryStore(tmp_path / "history"),
        workdir=SessionWorkingDirectory(str(tmp_path)),
        spawner=spawner or CountingSpawner(),
        generator=generator,
    )
    k.start()
    return k


# -------------------------------------------------------------------
# REPL loop
# -------------------------------------------------------------------


def test_cli_requires_ui_wiring_api() -> None:
    sig = inspect.signature(cli.run_repl)
    assert "ui" in sig.parameters


def test_exit_ends_loop_and_persists_history(tmp_path: Path) -> None:
    k = make_kernel(tmp_path)
    ui = FakeUI(inputs=["cd /", "   ", "cd /tmp", "exit", "cd /never"])
    k.output_fn = ui.write
    k.error_fn = ui.write

    cli.run_repl(k, ui=ui)

    assert k.running is False
    # nothing after exit is read
    assert ui.inputs == ["cd /never"]
    saved = (tmp_path / "history").read_text(encoding="utf-8").splitlines()
    assert saved == ["cd /", "cd /tmp", "exit"]
    assert any("Goodbye!" in o for o in ui.outputs)


def test_blank_input_is_skipped_and_prompt_shown_again(tmp_path: Path) -> None:
    spawner = CountingSpawner()
    k = make_kernel(tmp_path, spawner)
    ui = FakeUI(inputs=["", "   ", "\t"])

    cli.run_repl(k, ui=ui)

    # three blanks + the final EOF read
    assert len(ui.prompts) == 4
    assert spawner.count == 0
    assert (tmp_path / "history").read_text(encoding="utf-8") == ""


def test_keyboard_interrupt_prints_hint_and_continues(tmp_path: Path) -> None:
    k = make_kernel(tmp_path)
    ui = FakeUI(inputs=[KeyboardInterrupt(), "cd /", "exit"])

    cli.run_repl(k, ui=ui)

    assert any("Use 'exit' to quit" in o for o in ui.outputs)
    assert k.workdir.path == "/"


class InterruptingGenerator:
    def generate(self, message: str) -> str:
        raise KeyboardInterrupt


def test_interrupt_while_handling_a_line_keeps_the_session(tmp_path: Path) -> None:
    spawner = CountingSpawner()
    k = make_kernel(tmp_path, spawner, generator=InterruptingGenerator())
    ui = FakeUI(inputs=["true one", "ai hello", "true two", "exit"])
    k.output_fn = ui.write
    k.error_fn = ui.write

    cli.run_repl(k, ui=ui)

    assert spawner.count == 2
    assert any("Use 'exit' to quit" in o for o in ui.outputs)
    saved = (tmp_path / "history").read_text(encoding="utf-8").splitlines()
    assert saved == ["true one", "ai hello", "true two", "exit"]


def test_history_is_flushed_when_the_loop_raises(tmp_path: Path) -> None:
    k = make_kernel(tmp_path)
    ui = FakeUI(inputs=["cd /", RuntimeError("terminal gone")])

    with pytest.raises(RuntimeError):
        cli.run_repl(k, ui=ui)

    assert (tmp_path / "history").read_text(encoding="utf-8") == "cd /\n"
    assert k.running is False


def test_eof_says_goodbye_and_flushes_history(tmp_path: Path) -> None:
    k = make_kernel(tmp_path)
    ui = FakeUI(inputs=["cd /"])

    cli.run_repl(k, ui=ui)

    assert any("Goodbye!" in o for o in ui.outputs)
    assert (tmp_path / "history").read_text(encoding="utf-8") == "cd /\n"
    assert k.running is False


def test_history_round_trip_between_sessions(tmp_path: Path) -> None:
    lines = ["cd /", "cd /tmp", "ai"]
    k1 = make_kernel(tmp_path)
    cli.run_repl(k1, ui=FakeUI(inputs=lines + ["exit"]))

    k2 = make_kernel(tmp_path)
    assert k2.history.entries == lines + ["exit"]


def test_spawn_failure_does_not_end_session(tmp_path: Path) -> None:
    k = make_kernel(tmp_path)
    ui = FakeUI(inputs=["no_such_binary_xyz | cat", "cd /"])
    k.error_fn = ui.write

    cli.run_repl(k, ui=ui)

    assert any("no_such_binary_xyz" in o for o in ui.outputs)
    assert k.workdir.path == "/"


def test_unhandled_exception_is_logged_and_session_continues(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("GOBBLE_DATA_HOME", str(tmp_path / "data"))
    k = make_kernel(tmp_path)
    original = k.handle_line

    def flaky(line: str):
        if line == "boom":
            raise RuntimeError("kaboom")
        return original(line)

    monkeypatch.setattr(k, "handle_line", flaky)
    ui = FakeUI(inputs=["boom", "cd /"])

    cli.run_repl(k, ui=ui)

    assert any("RuntimeError: kaboom" in o for o in ui.outputs)
    assert k.workdir.path == "/"
    crash = tmp_path / "data" / "gobbleshell" / "logs" / "crash.log"
    assert "raw=boom" in crash.read_text(encoding="utf-8")


def test_legacy_loop_uses_input_and_output_fns(tmp_path: Path) -> None:
    k = make_kernel(tmp_path)
    inputs = ["cd /"]
    outputs: list[str] = []

    def input_fn(prompt: str) -> str:
        if not inputs:
            raise EOFError
        return inputs.pop(0)

    cli.run_repl(k, input_fn=input_fn, output_fn=outputs.append)

    assert k.workdir.path == "/"
    assert any("Goodbye!" in o for o in outputs)


# -------------------------------------------------------------------
# main()
# -------------------------------------------------------------------


def test_main_returns_1_when_config_cannot_load(
    monkeypatch: pytest.MonkeyPatch, capsys
) -> None:
    def broken():
        raise FileNotFoundError("Missing defaults YAML: system.yaml")

    monkeypatch.setattr(cli.config, "load_system_config", broken)

    assert cli.main() == 1
    assert "startup failed" in capsys.readouterr().err


def test_main_legacy_mode_prints_banner_and_runs(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys
) -> None:
    cfg = YAMLConfig(
        {
            "history": {"path": str(tmp_path / "hist")},
            "banner": {"enabled": False},
            "system": {"goodbye": "Goodbye!"},
        }
    )
    monkeypatch.setattr(cli.config, "load_system_config", lambda: cfg)
    monkeypatch.setenv("GOBBLE_LEGACY_UI", "1")

    def fake_start(self) -> str:
        self.running = True
        self.history.load()
        return "BANNER"

    monkeypatch.setattr(Kernel, "start", fake_start)
    monkeypatch.setattr("sys.stdin", io.StringIO("exit\n"))

    assert cli.main() == 0
    out = capsys.readouterr().out
    assert "BANNER" in out
    assert "Goodbye!" in out
    assert (tmp_path / "hist").read_text(encoding="utf-8") == "exit\n"


def test_build_kernel_wires_configured_collaborators(tmp_path: Path) -> None:
    cfg = YAMLConfig(
        {
            "history": {"path": str(tmp_path / "h"), "max_entries": 5},
            "pipeline": {"delimiter": "loose", "force_color": True},
            "ai": {"model": "m", "api_key_env": "K", "timeout": 3},
        }
    )

    k = cli.build_kernel(cfg)

    assert k.history.path == tmp_path / "h"
    assert k.history.max_entries == 5
    assert k.delimiter == "loose"
    assert k.spawner.force_color is True
    assert k.generator.model == "m"
    assert k.generator.api_key_env == "K"
    assert k.generator.timeout == 3.0
