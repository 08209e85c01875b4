# GobbleShell — Interactive Pipeline Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Startup status banner: ASCII art beside a short system summary.
"""

from __future__ import annotations

import os
import platform
import socket
import time

import psutil

from .config import colorize

UNKNOWN = "Unknown"

ART: list[tuple[str, str]] = [
    ("      ████████", "cyan"),
    ("    ███      ███", "blue"),
    ("   ███        ███", "blue"),
    ("   ███  Gobble ███", "magenta"),
    ("   ███        ███", "blue"),
    ("    ███      ███", "blue"),
    ("      ████████", "cyan"),
]


def _safe(fn) -> str:
    try:
        value = fn()
    except (OSError, RuntimeError, psutil.Error):
        return UNKNOWN
    return str(value) if value not in (None, "") else UNKNOWN


def _uptime() -> str:
    seconds = int(time.time() - psutil.boot_time())
    return f"{seconds // 3600}h {(seconds % 3600) // 60}m"


def _memory() -> str:
    mem = psutil.virtual_memory()
    used_mb = (mem.total - mem.available) // (1024 * 1024)
    total_mb = mem.total // (1024 * 1024)
    return f"{used_mb}MB / {total_mb}MB"


def _cpu() -> str:
    brand = platform.processor()
    if brand:
        return brand
    try:
        with open("/proc/cpuinfo", encoding="utf-8") as f:
            for line in f:
                if line.startswith("model name"):
                    return line.split(":", 1)[1].strip()
    except OSError:
        pass
    return f"{psutil.cpu_count(logical=True)} logical CPUs"


def collect_info(cwd: str | None = None, shell_name: str = "GobbleShell") -> list[tuple[str, str]]:
    """Return (label, value) pairs; unreadable values become ``Unknown``."""
    return [
        ("Host:", _safe(socket.gethostname)),
        ("OS:", _safe(lambda: f"{platform.system()} (kernel {platform.release()})")),
        ("Uptime:", _safe(_uptime)),
        ("Shell:", shell_name),
        ("CPU:", _safe(_cpu)),
        ("Memory:", _safe(_memory)),
        ("Directory:", cwd or _safe(os.getcwd)),
    ]


def render_banner(
    info: list[tuple[str, str]], welcome: str = "Welcome to Gobble Shell!"
) -> str:
    lines = ["", ""]
    for i, (art, color) in enumerate(ART):
        # pad before coloring so escapes do not count toward the width
        art_cell = colorize(f"{art:<25}", color)
        if i < len(info):
            label, value = info[i]
            lines.append(f"{art_cell} {colorize(' ' + label, 'green')} {value}")
        else:
            lines.append(colorize(art, color))
    lines.append("")
    lines.append(colorize(welcome, "green"))
    lines.append("")
    return "\n".join(lines)
