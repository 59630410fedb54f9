#!/usr/bin/env python3
"""
Auxiliary utility functions for Skoria

Size measurement, size string formatting/parsing and path display helpers
shared by the scanner, the selection policies and the console output.
"""

import os
import pathlib
from typing import Optional

KB = 1024
MB = KB * 1024
GB = MB * 1024
TB = GB * 1024

_UNITS = {
    "B": 1,
    "K": KB,
    "KB": KB,
    "M": MB,
    "MB": MB,
    "G": GB,
    "GB": GB,
    "T": TB,
    "TB": TB,
}


def format_size(size_bytes: int) -> str:
    """Format byte size into a compact human-readable string

    Uses 1024-based steps. Kilobytes and above get one decimal place, which is
    truncated rather than rounded.

    Args:
        size_bytes: Size in bytes to format

    Returns:
        Formatted string like "1.2GB", "345.0MB", "12.5KB", or "789B"
    """
    for unit, step in (("GB", GB), ("MB", MB), ("KB", KB)):
        if size_bytes >= step:
            tenths = size_bytes * 10 // step
            return f"{tenths // 10}.{tenths % 10}{unit}"
    return f"{size_bytes}B"


def parse_size(value: str) -> Optional[int]:
    """Parse a human-readable size string like '100MB' or '1.5G' into bytes

    Args:
        value: Size string, number followed by a unit (B, KB, MB, GB, TB or
            the single-letter forms)

    Returns:
        Size in bytes, or None if the string cannot be interpreted
    """
    value = value.strip().upper()
    number = "".join(c for c in value if c.isdigit() or c == ".")
    unit = "".join(c for c in value if c.isalpha())

    if unit not in _UNITS:
        return None
    try:
        return int(float(number) * _UNITS[unit])
    except ValueError:
        return None


def dir_size(path: pathlib.Path) -> int:
    """Return the total size in bytes of all files below a directory

    Walks with an explicit stack and does not follow symbolic links. Entries
    that cannot be read count as zero.
    """
    total = 0
    stack = [path]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as entries:
                for entry in entries:
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            stack.append(pathlib.Path(entry.path))
                        else:
                            total += entry.stat(follow_symlinks=False).st_size
                    except OSError:
                        continue
        except OSError:
            continue
    return total


def format_path_for_display(path: str, home_path: Optional[str] = None) -> str:
    """Format file path for display by replacing home directory with ~

    Args:
        path: File path to format
        home_path: Home directory path (defaults to platform home)

    Returns:
        Path with home directory replaced by ~ if applicable
    """
    if home_path is None:
        home_path = str(pathlib.Path.home())

    if path == home_path or path.startswith(home_path + os.sep):
        return "~" + path[len(home_path) :]
    return path
