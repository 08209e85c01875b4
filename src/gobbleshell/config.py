# GobbleShell — Interactive Pipeline Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Configuration and filesystem discovery for GobbleShell.

Handles:
- Data root resolution (GOBBLE_DATA_HOME, ~/.local/share)
- Crash log location
- Packaged YAML defaults loading (gobbleshell.defaults/system.yaml)
- ANSI coloring constants used by prompt, banner and diagnostics
"""

from __future__ import annotations

import os
from importlib import resources as importlib_resources
from pathlib import Path
from typing import Any

import yaml

# -----------------------
# UI + branding constants
# -----------------------

ANSI_COLORS: dict[str, str] = {
    "cyan": "\033[38;5;69;1m",
    "blue": "\033[34m",
    "magenta": "\033[35m",
    "yellow": "\033[33m",
    "green": "\033[32m",
    "red": "\033[31m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "reset": "\033[0m",
}

TAG_COLORS: dict[str, str] = {
    "ERR": "red",
    "AI": "cyan",
    "BYE": "green",
    "HINT": "yellow",
}


def colorize(text: str, color: str) -> str:
    """Wrap text in an ANSI color from ANSI_COLORS (unknown names pass through)."""
    code = ANSI_COLORS.get(color)
    if not code:
        return text
    return f"{code}{text}{ANSI_COLORS['reset']}"


def tagged(tag: str, text: str) -> str:
    """Color a diagnostic line by its tag (ERR, AI, BYE, HINT)."""
    return colorize(text, TAG_COLORS.get(tag, "reset"))


# -----------------------
# Config model wrapper
# -----------------------


class YAMLConfig:
    """Simple config wrapper that implements the ConfigModel protocol."""

    def __init__(self, config_dict: dict[str, Any]):
        self._config = config_dict

    @property
    def system(self) -> dict[str, Any]:
        value = self._config.get("system", {})
        return value if isinstance(value, dict) else {}

    def get_path(self, path: str, default: Any = None) -> Any:
        """
        Nested lookup using dot-separated path.
        Example: get_path("history.path", "/tmp/.shell_history")
        """
        if not path:
            return default

        cur: Any = self._config
        for part in path.split("."):
            if not isinstance(cur, dict):
                return default
            if part not in cur:
                return default
            cur = cur[part]
        return cur


# -----------------------
# Data root + paths
# -----------------------


def get_data_root() -> Path:
    """Get the data root directory for GobbleShell.

    Resolution order:
    1. GOBBLE_DATA_HOME environment variable (if set)
    2. ~/.local/share (default)
    """
    data_home = os.getenv("GOBBLE_DATA_HOME")
    if data_home:
        root = Path(data_home)
    else:
        root = Path.home() / ".local" / "share"

    root.mkdir(parents=True, exist_ok=True)
    return root


def crash_log_path(data_root: Path) -> Path:
    """<data_root>/gobbleshell/logs/crash.log"""
    return data_root / "gobbleshell" / "logs" / "crash.log"


def history_path(cfg: YAMLConfig) -> Path:
    """Resolve the history file location (``~`` is expanded)."""
    raw = cfg.get_path("history.path", "/tmp/.shell_history")
    return Path(os.path.expanduser(str(raw)))


# -----------------------
# Packaged defaults loading
# -----------------------


def _defaults_dir() -> Path:
    """Return the installed path to the packaged defaults directory."""
    return Path(
        importlib_resources.files("gobbleshell.defaults")
    )  # type: ignore[arg-type]


def load_defaults_yaml(filename: str) -> dict[str, Any]:
    """
    Load a YAML file from gobbleshell/defaults/.
    """
    defaults_dir = _defaults_dir()
    path = defaults_dir / filename
    if not path.exists():
        raise FileNotFoundError(
            f"Missing defaults YAML: {filename} "
            f"(looked in {defaults_dir})"
        )

    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(
            f"Defaults YAML {filename} must load to a mapping/dict."
        )
    return data


def load_system_config() -> YAMLConfig:
    """
    Load system.yaml from packaged defaults and return a YAMLConfig wrapper.
    """
    return YAMLConfig(load_defaults_yaml("system.yaml"))
