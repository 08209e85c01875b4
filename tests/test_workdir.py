"""
Tests for the session and process working-directory implementations.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from gobbleshell.workdir import ProcessWorkingDirectory, SessionWorkingDirectory


def test_session_defaults_to_process_cwd():
    assert SessionWorkingDirectory().path == os.getcwd()


def test_session_relative_change(tmp_path: Path):
    (tmp_path / "a" / "b").mkdir(parents=True)
    wd = SessionWorkingDirectory(str(tmp_path))

    wd.change("a/b")
    wd.change("..")

    assert wd.path == str(tmp_path / "a")


def test_session_failure_leaves_path(tmp_path: Path):
    wd = SessionWorkingDirectory(str(tmp_path))
    with pytest.raises(FileNotFoundError):
        wd.change("missing")
    assert wd.path == str(tmp_path)


def test_session_expands_user(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    wd = SessionWorkingDirectory("/")
    wd.change("~")
    assert wd.path == str(tmp_path)


def test_process_workdir_moves_real_cwd(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "sub").mkdir()
    wd = ProcessWorkingDirectory()

    wd.change("sub")

    assert Path(os.getcwd()).resolve() == (tmp_path / "sub").resolve()
    assert Path(wd.path).resolve() == (tmp_path / "sub").resolve()


def test_process_workdir_failure_leaves_real_cwd(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
):
    monkeypatch.chdir(tmp_path)
    wd = ProcessWorkingDirectory()
    before = os.getcwd()

    with pytest.raises(OSError):
        wd.change("missing")

    assert os.getcwd() == before
    assert wd.path == before
