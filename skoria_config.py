#!/usr/bin/env python3
"""
Skoria Configuration

Resolves the immutable run configuration from three layers: built-in
defaults, the optional user defaults file (~/.skoria/config.json) and the
command-line arguments, in increasing order of precedence.
"""

import argparse
import json
import os
import pathlib
import sys
from dataclasses import dataclass, field
from typing import Any, Optional

from auxiliary import parse_size
from selection_policy import SelectionMode
from tree_collector import TraversalStrategy

DEFAULT_CLEANUP_WORKERS = 4
DEFAULT_MARKER_FILE = "Cargo.toml"
DEFAULT_BUILD_DIR = "target"
DEFAULT_CLEAN_COMMAND = ("cargo", "clean")

# Keys accepted in the defaults file, mirroring the long CLI options
FILE_KEYS = (
    "strategy",
    "threshold",
    "ask_mode",
    "parallel_scan",
    "parallel_clean",
    "exclude",
    "max_depth",
    "marker_file",
    "build_dir",
    "clean_command",
    "timeout",
)


class ConfigurationError(Exception):
    """Raised when the run configuration cannot be resolved"""


@dataclass(frozen=True)
class Configuration:
    """Resolved settings for one run, read-only after construction"""

    root: pathlib.Path
    strategy: TraversalStrategy = TraversalStrategy.BFS
    threshold_bytes: Optional[int] = None
    selection_mode: SelectionMode = SelectionMode.PER_ITEM
    scan_workers: int = field(default_factory=lambda: os.cpu_count() or 1)
    cleanup_workers: int = DEFAULT_CLEANUP_WORKERS
    excludes: tuple[str, ...] = ()
    dry_run: bool = False
    json_output: bool = False
    max_depth: Optional[int] = None
    marker_file: str = DEFAULT_MARKER_FILE
    build_dir: str = DEFAULT_BUILD_DIR
    clean_command: tuple[str, ...] = DEFAULT_CLEAN_COMMAND
    clean_timeout: Optional[float] = None

    def describe(self) -> dict[str, Any]:
        """Settings worth showing to the operator before a run"""
        info: dict[str, Any] = {
            "Root": str(self.root),
            "Strategy": self.strategy.value,
            "Ask mode": self.selection_mode.value,
            "Scan workers": self.scan_workers,
            "Clean workers": self.cleanup_workers,
            "Command": " ".join(self.clean_command),
        }
        if self.threshold_bytes is not None:
            info["Threshold"] = f"{self.threshold_bytes} bytes"
        if self.max_depth is not None:
            info["Max depth"] = self.max_depth
        if self.excludes:
            info["Exclude"] = list(self.excludes)
        if self.dry_run:
            info["Mode"] = "dry run"
        return info


class SkoriaConfigManager:
    """Reads user defaults from the skoria configuration directory

    The file is only ever read; skoria keeps no state between runs.
    """

    def __init__(self, skoria_dir: Optional[pathlib.Path] = None):
        """Initialize configuration manager

        Args:
            skoria_dir: Override default ~/.skoria directory location
        """
        if skoria_dir:
            self.skoria_dir = skoria_dir
        elif os.environ.get("SKORIA_HOME"):
            self.skoria_dir = pathlib.Path(os.environ["SKORIA_HOME"])
        else:
            self.skoria_dir = pathlib.Path.home() / ".skoria"

        self.config_file = self.skoria_dir / "config.json"

    def load(self) -> dict[str, Any]:
        """Load defaults from file, ignoring unknown keys

        A missing or corrupted file yields no defaults.
        """
        if not self.config_file.exists():
            return {}
        try:
            with self.config_file.open() as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError):
            return {}
        if not isinstance(data, dict):
            return {}
        return {key: value for key, value in data.items() if key in FILE_KEYS}


def default_root() -> pathlib.Path:
    """Directory holding the running program"""
    program = sys.argv[0] if sys.argv else ""
    if not program or program == "-c":
        raise ConfigurationError("Cannot determine the program location, please pass a path")
    return pathlib.Path(program).resolve().parent


def _pick(args: argparse.Namespace, defaults: dict[str, Any], key: str, fallback: Any = None) -> Any:
    value = getattr(args, key, None)
    if value is not None:
        return value
    return defaults.get(key, fallback)


def _positive(value: Any, name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a whole number, got {value!r}") from None
    if number < 1:
        raise ConfigurationError(f"{name} must be at least 1, got {number}")
    return number


def build_configuration(args: argparse.Namespace, defaults: Optional[dict[str, Any]] = None) -> Configuration:
    """Resolve parsed arguments and file defaults into a Configuration

    Raises:
        ConfigurationError: If any setting is invalid or the root cannot be resolved
    """
    defaults = defaults or {}

    path = getattr(args, "path", None)
    root = pathlib.Path(path).expanduser().resolve() if path else default_root()
    if not root.is_dir():
        raise ConfigurationError(f"Not a directory: {root}")

    try:
        strategy = TraversalStrategy(_pick(args, defaults, "strategy", "bfs"))
    except ValueError:
        raise ConfigurationError(f"Unknown strategy: {_pick(args, defaults, 'strategy')}") from None

    try:
        selection_mode = SelectionMode.parse(_pick(args, defaults, "ask_mode", SelectionMode.PER_ITEM.value))
    except ValueError as e:
        raise ConfigurationError(str(e)) from None

    threshold_bytes = None
    threshold = _pick(args, defaults, "threshold")
    if threshold is not None:
        threshold_bytes = parse_size(str(threshold))
        if threshold_bytes is None:
            raise ConfigurationError(f"Invalid threshold: {threshold} (expected e.g. 100MB, 1GB)")

    max_depth = _pick(args, defaults, "max_depth")
    if max_depth is not None:
        try:
            max_depth = int(max_depth)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Max depth must be a whole number, got {max_depth!r}") from None
        if max_depth < 0:
            raise ConfigurationError(f"Max depth must not be negative, got {max_depth}")

    clean_command = _pick(args, defaults, "clean_command", DEFAULT_CLEAN_COMMAND)
    if isinstance(clean_command, str):
        clean_command = clean_command.split()
    if not clean_command:
        raise ConfigurationError("Clean command must not be empty")

    timeout = _pick(args, defaults, "timeout")
    if timeout is not None:
        try:
            timeout = float(timeout)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Timeout must be a number of seconds, got {timeout!r}") from None
        if timeout <= 0:
            raise ConfigurationError(f"Timeout must be positive, got {timeout}")

    file_excludes = defaults.get("exclude", [])
    if isinstance(file_excludes, str):
        file_excludes = [file_excludes]
    if not isinstance(file_excludes, list) or not all(isinstance(p, str) for p in file_excludes):
        raise ConfigurationError(f"Exclude must be a pattern or a list of patterns, got {file_excludes!r}")
    excludes = file_excludes + list(getattr(args, "exclude", None) or [])

    return Configuration(
        root=root,
        strategy=strategy,
        threshold_bytes=threshold_bytes,
        selection_mode=selection_mode,
        scan_workers=_positive(_pick(args, defaults, "parallel_scan", os.cpu_count() or 1), "Scan workers"),
        cleanup_workers=_positive(_pick(args, defaults, "parallel_clean", DEFAULT_CLEANUP_WORKERS), "Clean workers"),
        excludes=tuple(excludes),
        dry_run=bool(getattr(args, "dry_run", False)),
        json_output=bool(getattr(args, "json", False)),
        max_depth=max_depth,
        marker_file=_pick(args, defaults, "marker_file", DEFAULT_MARKER_FILE),
        build_dir=_pick(args, defaults, "build_dir", DEFAULT_BUILD_DIR),
        clean_command=tuple(clean_command),
        clean_timeout=timeout,
    )
