"""
Tests for the pipeline tokenizer.
"""

from __future__ import annotations

import pytest

from gobbleshell.tokenizer import (
    BuiltinStage,
    ProcessStage,
    split_segments,
    tokenize,
)


# ----------------------------------------------------------------
# Segmenting
# ----------------------------------------------------------------


def test_strict_split_on_space_pipe_space():
    assert split_segments("ls -l | grep py | wc -l") == [
        "ls -l",
        "grep py",
        "wc -l",
    ]


def test_strict_mode_ignores_pipe_without_surrounding_spaces():
    """'a|b' and 'a |b' are one segment each in strict mode."""
    assert split_segments("echo a|b") == ["echo a|b"]
    assert split_segments("echo a |b") == ["echo a |b"]


def test_loose_mode_accepts_any_spacing():
    assert split_segments("ls|wc  |  cat", delimiter="loose") == [
        "ls",
        "wc",
        "cat",
    ]


def test_unknown_delimiter_mode_raises():
    with pytest.raises(ValueError):
        split_segments("ls", delimiter="fancy")


# ----------------------------------------------------------------
# Stages
# ----------------------------------------------------------------


def test_tokenize_splits_name_and_args_on_whitespace_runs():
    stages = tokenize("  grep   -i    foo  ")
    assert stages == (ProcessStage("grep", ("-i", "foo")),)


def test_tokenize_tags_builtins():
    stages = tokenize("cd /tmp | ls | ai hello there | exit")
    assert stages == (
        BuiltinStage("cd", ("/tmp",)),
        ProcessStage("ls", ()),
        BuiltinStage("ai", ("hello", "there")),
        BuiltinStage("exit", ()),
    )


def test_tokenize_drops_empty_segments():
    """Whitespace-only segments produce no stage."""
    stages = tokenize("ls |   | wc")
    assert [s.name for s in stages] == ["ls", "wc"]


def test_tokenize_blank_line_is_empty_pipeline():
    assert tokenize("") == ()
    assert tokenize("     ") == ()


def test_tokenize_performs_no_quoting_or_expansion():
    stages = tokenize("echo 'a b' $HOME *.py")
    assert stages[0].args == ("'a", "b'", "$HOME", "*.py")


def test_process_stage_argv():
    assert ProcessStage("wc", ("-l",)).argv == ["wc", "-l"]


def test_tokenize_custom_builtin_set():
    stages = tokenize("cd x", builtins={"exit"})
    assert isinstance(stages[0], ProcessStage)
