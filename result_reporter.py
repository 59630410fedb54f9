#!/usr/bin/env python3
"""
Result reporting

Renders the outcome of a run either as one JSON record for scripts or as a
short human summary.
"""

import json
import pathlib
import sys
from typing import IO, Any, Optional

from cleanup_operations import CleanupOutcome
from console_ui import ConsoleUI
from progress_channel import DiscoveredProject


def build_record(
    projects: list[DiscoveredProject], selected: list[pathlib.Path], outcomes: list[CleanupOutcome]
) -> dict[str, Any]:
    """Build the machine-readable record of a run"""
    selected_set = set(selected)
    return {
        "total_projects": len(projects),
        "to_clean_count": len(selected),
        "projects": [
            {
                "path": str(p.path),
                "target_size": p.artifact_size,
                "selected": p.path in selected_set,
            }
            for p in projects
        ],
        "results": [
            {
                "path": str(o.path),
                "success": o.success,
                "error": o.error_message,
            }
            for o in outcomes
        ],
    }


class ResultReporter:
    """Writes the final report of a run"""

    def __init__(self, ui: ConsoleUI, stream: Optional[IO[str]] = None):
        self.ui = ui
        self.stream = stream or sys.stdout

    def emit_json(
        self, projects: list[DiscoveredProject], selected: list[pathlib.Path], outcomes: list[CleanupOutcome]
    ):
        record = build_record(projects, selected, outcomes)
        self.stream.write(json.dumps(record, indent=2, ensure_ascii=False) + "\n")
        self.stream.flush()

    def show_summary(self, outcomes: list[CleanupOutcome], command: str = "cargo clean", dry_run: bool = False):
        self.ui.console.print()
        self.ui.print_separator("=")
        if dry_run:
            self.ui.print_info(f"Dry run: '{command}' would run for {len(outcomes)} projects")
        else:
            self.ui.show_cleanup_summary(outcomes, command)
        self.ui.print_separator("=")
