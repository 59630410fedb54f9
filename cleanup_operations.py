#!/usr/bin/env python3
"""
Cleanup Operations Module

Runs the project clean command (cargo clean by default) in every selected
project directory with a worker pool, collecting exactly one outcome per
submitted path whatever happens to the individual command.
"""

import logging
import pathlib
import subprocess
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from shared_state import AppendOnlyList

log = logging.getLogger(__name__)

# Characters of command stderr kept in a failure message
STDERR_TAIL = 300


@dataclass(frozen=True)
class CleanupOutcome:
    """Result of cleaning one project directory"""

    path: pathlib.Path
    success: bool
    error_message: Optional[str] = None


def run_clean_command(
    path: pathlib.Path, command: Sequence[str], timeout: Optional[float] = None
) -> CleanupOutcome:
    """Run the clean command with *path* as working directory

    Non-zero exit status, failure to start the process and timeouts all yield
    an unsuccessful outcome carrying the reason.
    """
    command_str = " ".join(command)
    try:
        completed = subprocess.run(
            list(command),
            cwd=path,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        return CleanupOutcome(path, False, f"'{command_str}' timed out after {timeout}s")
    except OSError as e:
        return CleanupOutcome(path, False, f"failed to run '{command_str}' in {path}: {e}")

    if completed.returncode != 0:
        message = f"'{command_str}' exited with status {completed.returncode}"
        stderr = (completed.stderr or "").strip()
        if stderr:
            message += f": {stderr[-STDERR_TAIL:]}"
        return CleanupOutcome(path, False, message)

    return CleanupOutcome(path, True)


class CleanupCoordinator:
    """Cleans project directories in parallel"""

    def __init__(
        self,
        command: Sequence[str] = ("cargo", "clean"),
        timeout: Optional[float] = None,
        progress_callback: Optional[Callable[[CleanupOutcome], None]] = None,
        shutdown_requested: Optional[Callable[[], bool]] = None,
    ):
        """Initialize the coordinator

        Args:
            command: Command line run inside each project directory
            timeout: Seconds after which a single command is abandoned
            progress_callback: Called on the calling thread with each outcome
                as it completes
            shutdown_requested: Callable that returns True once no further
                commands should be started
        """
        self.command = tuple(command)
        self.timeout = timeout
        self.progress_callback = progress_callback
        self.shutdown_requested = shutdown_requested

    def clean(self, paths: list[pathlib.Path], cleanup_workers: int, dry_run: bool = False) -> list[CleanupOutcome]:
        """Clean every path and return one outcome per path, in input order

        In dry-run mode nothing is executed and every path succeeds.
        """
        if dry_run:
            return [CleanupOutcome(path, True) for path in paths]

        results: AppendOnlyList[tuple[int, CleanupOutcome]] = AppendOnlyList()

        def work(index: int, path: pathlib.Path) -> CleanupOutcome:
            outcome = self._clean_one(path)
            results.append((index, outcome))
            return outcome

        with ThreadPoolExecutor(max_workers=cleanup_workers, thread_name_prefix="skoria-clean") as pool:
            futures = [pool.submit(work, index, path) for index, path in enumerate(paths)]
            for future in as_completed(futures):
                if self.progress_callback:
                    self.progress_callback(future.result())

        return [outcome for _index, outcome in sorted(results.snapshot(), key=lambda item: item[0])]

    def _clean_one(self, path: pathlib.Path) -> CleanupOutcome:
        if self.shutdown_requested and self.shutdown_requested():
            return CleanupOutcome(path, False, "cancelled")
        try:
            outcome = run_clean_command(path, self.command, self.timeout)
        except Exception as e:
            outcome = CleanupOutcome(path, False, f"unexpected error: {e}")
        if outcome.success:
            log.debug("Cleaned %s", path)
        else:
            log.debug("Clean failed for %s: %s", path, outcome.error_message)
        return outcome
