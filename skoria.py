#!/usr/bin/env python3
"""
Skoria — Ancient Greek σκωρία (slag, dross)

Finds Cargo projects whose target/ directory holds build output, lets you
choose which ones to purge and runs `cargo clean` in them in parallel.

Usage:
    skoria <path>                          # Scan and ask about every project
    skoria <path> -a batch                 # Pick from the full list, e.g. 1-5
    skoria <path> -a threshold -t 1GB      # Clean everything of 1 GB or more
    skoria <path> -a all --dry-run         # Show what would be cleaned
    skoria <path> -a all --json            # Machine-readable report on stdout
"""

import argparse
import logging
import os
import pathlib
import signal
import sys
from typing import Callable, Optional

from rich.logging import RichHandler
from rich.markup import escape

import tree_collector
from auxiliary import format_path_for_display
from cleanup_operations import CleanupCoordinator, CleanupOutcome
from console_ui import ConsoleUI
from progress_channel import ConsoleProgressRenderer, DiscoveredProject
from result_reporter import ResultReporter
from scan_coordinator import ScanCoordinator
from selection_policy import SelectionMode, make_policy
from skoria_config import Configuration, ConfigurationError, SkoriaConfigManager, build_configuration

log = logging.getLogger("skoria")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def configure_logging(ui: ConsoleUI, verbose: bool = False):
    """Route log records through the UI console"""
    handler = RichHandler(console=ui.console, show_time=False, show_path=False, markup=False)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[handler],
        force=True,
    )


class Skoria:
    """Main application class for the Skoria build-output cleaner."""

    def __init__(
        self,
        args: argparse.Namespace,
        ui: Optional[ConsoleUI] = None,
        ask: Optional[Callable[[str], str]] = None,
        stdout=None,
    ):
        self.args = args
        self.ui = ui or ConsoleUI(stderr=bool(getattr(args, "json", False)))
        self.reporter = ResultReporter(self.ui, stdout)
        self._ask = ask
        self._shutdown_requested = False
        self.skipped_dirs: set[pathlib.Path] = set()

    # -- signal handling ----------------------------------------------------

    def install_signal_handlers(self):
        signal.signal(signal.SIGINT, self._signal_handler)
        if hasattr(signal, "SIGTERM"):
            signal.signal(signal.SIGTERM, self._signal_handler)

    def _signal_handler(self, signum, frame):
        if self._shutdown_requested:
            # Worker threads would hold up sys.exit until running commands finish
            self.ui.print_warning("\nForce quit.")
            os._exit(EXIT_INTERRUPTED)
        self._shutdown_requested = True
        self.ui.print_warning("\nShutdown requested... press Ctrl+C again to force quit.")

    def shutdown_requested(self) -> bool:
        return self._shutdown_requested

    # -- phase one: scan -------------------------------------------------------

    def _record_skip(self, path: pathlib.Path, error: OSError):
        self.skipped_dirs.add(path)

    def scan(self, config: Configuration) -> list[DiscoveredProject]:
        self.ui.print_info(f"\n[Phase 1] Scanning for {config.marker_file} projects ({config.scan_workers} workers)")

        directories = tree_collector.collect(
            config.root,
            config.strategy,
            prune_names=(config.build_dir,),
            max_depth=config.max_depth,
            on_skip=self._record_skip,
        )
        log.debug("Collected %d directories under %s", len(directories), config.root)

        renderer = ConsoleProgressRenderer(self.ui, config.marker_file, config.build_dir)
        coordinator = ScanCoordinator(
            renderer, shutdown_requested=self.shutdown_requested, on_skip=self._record_skip
        )
        projects = coordinator.scan(directories, config)

        if self.skipped_dirs:
            self.ui.print_warning(f"Skipped {len(self.skipped_dirs)} unreadable directories")
        return projects

    # -- phase two: select -----------------------------------------------------

    def select(self, projects: list[DiscoveredProject], config: Configuration) -> list[pathlib.Path]:
        self.ui.print_info("\n[Phase 2] Selecting projects...")
        policy = make_policy(config.selection_mode, self.ui, self._ask)
        return policy.select(projects, config)

    # -- phase three: clean ----------------------------------------------------

    def clean(self, selected: list[pathlib.Path], config: Configuration) -> list[CleanupOutcome]:
        command = " ".join(config.clean_command)
        coordinator = CleanupCoordinator(
            config.clean_command,
            timeout=config.clean_timeout,
            shutdown_requested=self.shutdown_requested,
        )

        if config.dry_run or config.json_output:
            return coordinator.clean(selected, config.cleanup_workers, dry_run=config.dry_run)

        self.ui.print_info(f"\n[Phase 3] Running '{command}' ({config.cleanup_workers} workers)")
        progress = self.ui.create_progress()
        with progress:
            task = progress.add_task(f"Running {command}...", total=len(selected))

            def advance(outcome: CleanupOutcome):
                if not outcome.success:
                    progress.console.print(
                        f"[red]  ✗ {escape(format_path_for_display(str(outcome.path)))}[/red]"
                    )
                progress.advance(task)

            coordinator.progress_callback = advance
            return coordinator.clean(selected, config.cleanup_workers)

    # -- main entry point ----------------------------------------------------

    def run(self) -> int:
        try:
            defaults = SkoriaConfigManager().load()
            config = build_configuration(self.args, defaults)
        except ConfigurationError as e:
            self.ui.print_error(escape(str(e)))
            return EXIT_FAILURE

        self.ui.print_header("Skoria", f"Scanning {format_path_for_display(str(config.root))}")
        self.ui.show_configuration(config.describe())

        projects = self.scan(config)
        if self._shutdown_requested:
            self.ui.print_warning("Scan interrupted.")
            return EXIT_INTERRUPTED

        if not projects:
            self.ui.print_info(f"No {config.marker_file} projects with a {config.build_dir}/ directory found")
            if config.json_output:
                self.reporter.emit_json(projects, [], [])
            return EXIT_OK

        self.ui.print_info(f"Found {len(projects)} projects")
        if config.selection_mode is not SelectionMode.BATCH:
            self.ui.show_projects(projects)

        selected = self.select(projects, config)

        if not selected:
            self.ui.print_info("\nNo projects selected for cleaning")
            if config.json_output:
                self.reporter.emit_json(projects, selected, [])
            return EXIT_OK

        outcomes = self.clean(selected, config)

        if config.json_output:
            self.reporter.emit_json(projects, selected, outcomes)
        else:
            self.reporter.show_summary(outcomes, " ".join(config.clean_command), dry_run=config.dry_run)

        if self._shutdown_requested:
            return EXIT_INTERRUPTED
        return EXIT_OK if all(o.success for o in outcomes) else EXIT_FAILURE


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    mode_choices = [m.value for m in SelectionMode] + ["real-time", "after-scan", "auto", "none"]

    parser = argparse.ArgumentParser(
        prog="skoria",
        description="Skoria: find Cargo build output and clean it in parallel",
    )
    parser.add_argument("root", nargs="?", help="Directory to scan (default: the program's directory)")
    parser.add_argument("-p", "--path", help="Directory to scan, same as the positional argument")
    parser.add_argument("-s", "--strategy", choices=["bfs", "dfs"], default=None, help="Traversal order (default: bfs)")
    parser.add_argument("-t", "--threshold", default=None, help="Size threshold for threshold mode (e.g. 100MB, 1GB)")
    parser.add_argument(
        "-a", "--ask-mode", choices=mode_choices, default=None, help="How projects are selected (default: per-item)"
    )
    parser.add_argument("--parallel-scan", type=int, default=None, help="Number of scan workers (default: CPU count)")
    parser.add_argument("--parallel-clean", type=int, default=None, help="Number of clean workers (default: 4)")
    parser.add_argument(
        "-e", "--exclude", action="append", default=[], help="Skip directories matching this glob (repeatable)"
    )
    parser.add_argument("-d", "--dry-run", action="store_true", help="Do not run the clean command")
    parser.add_argument("-j", "--json", action="store_true", help="Print a JSON report on stdout")
    parser.add_argument("--max-depth", type=int, default=None, help="Maximum depth below the root to scan")
    parser.add_argument("--marker-file", default=None, help="Project marker file (default: Cargo.toml)")
    parser.add_argument("--build-dir", default=None, help="Build-output directory name (default: target)")
    parser.add_argument("--timeout", type=float, default=None, help="Seconds before a clean command is abandoned")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")
    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.path and args.root and args.path != args.root:
        parser.error("give the directory either as argument or with --path, not both")
    args.path = args.path or args.root
    return args


def main(argv: Optional[list[str]] = None):
    args = parse_args(argv)
    app = Skoria(args)
    configure_logging(app.ui, args.verbose)
    app.install_signal_handlers()
    sys.exit(app.run())


if __name__ == "__main__":
    main()
