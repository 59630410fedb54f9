#!/usr/bin/env python3
"""
Selection policies

Turn the list of discovered projects into the paths that will be cleaned.
Two policies ask the operator (per item, or once for the whole list); the
other two decide on their own (size threshold, or everything).
"""

import pathlib
from enum import Enum
from typing import Callable, Optional

from rich.markup import escape

from auxiliary import format_path_for_display, format_size, parse_size
from console_ui import ConsoleUI
from progress_channel import DiscoveredProject


class SelectionMode(Enum):
    """How discovered projects are reduced to the cleanup set"""

    PER_ITEM = "per-item"
    BATCH = "batch"
    THRESHOLD = "threshold"
    ALL = "all"

    @classmethod
    def parse(cls, value: str) -> "SelectionMode":
        value = value.strip().lower()
        value = _MODE_ALIASES.get(value, value)
        try:
            return cls(value)
        except ValueError:
            choices = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown ask mode '{value}' (choose from {choices})") from None


_MODE_ALIASES = {
    "real-time": "per-item",
    "after-scan": "batch",
    "auto": "threshold",
    "none": "all",
}


class SelectionPolicy:
    """Base class; subclasses implement select()"""

    def __init__(self, ui: ConsoleUI, ask: Optional[Callable[[str], str]] = None):
        self.ui = ui
        self._ask = ask or ui.prompt

    def ask(self, question: str) -> str:
        return self._ask(question).strip().lower()

    def select(self, projects: list[DiscoveredProject], config) -> list[pathlib.Path]:
        raise NotImplementedError


class PerItemSelection(SelectionPolicy):
    """Ask about every project in turn"""

    def select(self, projects, config):
        selected: list[pathlib.Path] = []
        skipped = 0

        for index, project in enumerate(projects, 1):
            self.ui.print_separator()
            self.ui.print_plain(
                f"{index}. {escape(format_path_for_display(str(project.path)))} (target: {project.artifact_size})"
            )

            while True:
                answer = self.ask("Clean this project? \\[y/n/s/q]")
                if answer in ("y", "s"):
                    selected.append(project.path)
                    break
                if answer == "n":
                    self.ui.print_progress("  → skipped")
                    skipped += 1
                    break
                if answer == "q":
                    self.ui.print_warning(f"Stopped, keeping {len(selected)} selections")
                    return selected
                self.ui.print_error("Please answer y, n, s or q")

        self.ui.print_separator()
        self.ui.print_info(f"Selection done: {len(selected)} to clean, {skipped} skipped")
        return selected


class BatchSelection(SelectionPolicy):
    """Show the numbered list and ask once"""

    def select(self, projects, config):
        if not projects:
            return []

        self.ui.show_projects(projects, title="Select projects to clean")
        self.ui.print_progress("Enter 'all', 'none', or ranges such as 1-5 or 1-3,7")

        while True:
            answer = self.ask("Select projects")
            if answer == "all":
                return [p.path for p in projects]
            if answer == "none":
                self.ui.print_info("Skipped all projects")
                return []

            indices = parse_ranges(answer, len(projects))
            if indices is None:
                self.ui.print_error("Please enter 'all', 'none' or a range like 1-5")
                continue

            self.ui.print_info(f"Selected {len(indices)} projects")
            return [projects[i].path for i in indices]


class ThresholdSelection(SelectionPolicy):
    """Select projects whose build output is at least the threshold size"""

    def select(self, projects, config):
        threshold_bytes = config.threshold_bytes
        if threshold_bytes is None:
            self.ui.print_warning("Threshold mode needs --threshold, skipping all projects")
            return []

        selected = [p.path for p in projects if (parse_size(p.artifact_size) or 0) >= threshold_bytes]

        self.ui.print_info(f"Threshold: {format_size(threshold_bytes)} ({threshold_bytes} bytes)")
        self.ui.print_plain(f"  {len(selected)} projects at or above threshold will be cleaned")
        self.ui.print_plain(f"  {len(projects) - len(selected)} projects below threshold skipped")
        return selected


class AllSelection(SelectionPolicy):
    """Select every project without asking"""

    def select(self, projects, config):
        self.ui.print_info(f"Cleaning all {len(projects)} projects")
        return [p.path for p in projects]


_POLICIES = {
    SelectionMode.PER_ITEM: PerItemSelection,
    SelectionMode.BATCH: BatchSelection,
    SelectionMode.THRESHOLD: ThresholdSelection,
    SelectionMode.ALL: AllSelection,
}


def make_policy(
    mode: SelectionMode, ui: ConsoleUI, ask: Optional[Callable[[str], str]] = None
) -> SelectionPolicy:
    """Create the selection policy for a mode"""
    return _POLICIES[mode](ui, ask)


def parse_ranges(text: str, count: int) -> Optional[list[int]]:
    """Parse '2-4', '3' or '1-2,5' into sorted 0-based indices

    Ranges are 1-based and inclusive and are clamped to 1..count.

    Returns:
        Indices in list order, or None when the text is malformed or selects
        nothing inside the list
    """
    indices: set[int] = set()
    for part in text.split(","):
        part = part.strip()
        if not part:
            return None
        start_text, sep, end_text = part.partition("-")
        try:
            start = int(start_text)
            end = int(end_text) if sep else start
        except ValueError:
            return None
        if start > end:
            return None
        start = max(start, 1)
        end = min(end, count)
        if start > end:
            return None
        indices.update(range(start - 1, end))
    return sorted(indices)
