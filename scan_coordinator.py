#!/usr/bin/env python3
"""
Parallel project scan

Runs a pool of scan workers over the collected directories. Each worker
checks one directory for the marker file and the build-output directory,
measures the build output when both exist, and reports what it does through
the progress channel. The consumer thread renders those events; the workers
never touch the display.
"""

import fnmatch
import logging
import pathlib
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from auxiliary import dir_size, format_size
from progress_channel import (
    DEFAULT_CAPACITY,
    DiscoveredProject,
    Done,
    Found,
    ProgressChannel,
    ProgressConsumer,
    ProgressRenderer,
    Scanned,
    Visiting,
)
from shared_state import AppendOnlyList, Counter
from tree_collector import DirectoryEntry, calculate_depth

log = logging.getLogger(__name__)

# A Scanned event is sent every this many directories
SCANNED_EVERY = 10


def is_excluded(path: pathlib.Path, patterns: tuple[str, ...]) -> bool:
    """Check whether the full path matches any shell-glob pattern"""
    path_str = str(path)
    return any(fnmatch.fnmatch(path_str, pattern) for pattern in patterns)


class ScanCoordinator:
    """Scans directories for projects with a worker pool"""

    def __init__(
        self,
        renderer: ProgressRenderer,
        channel_capacity: int = DEFAULT_CAPACITY,
        shutdown_requested: Optional[Callable[[], bool]] = None,
        on_skip: Optional[Callable[[pathlib.Path, OSError], None]] = None,
    ):
        """Initialize the coordinator

        Args:
            renderer: Display surface for the progress consumer
            channel_capacity: Number of events the channel buffers before
                workers block
            shutdown_requested: Callable that returns True once the run
                should stop; remaining directories are then only counted
            on_skip: Called from a worker thread with (path, error) for
                directories that could not be inspected for lack of permissions
        """
        self.renderer = renderer
        self.channel_capacity = channel_capacity
        self.shutdown_requested = shutdown_requested
        self.on_skip = on_skip
        self.scanned_count = 0

    def scan(self, directories: list[DirectoryEntry], config) -> list[DiscoveredProject]:
        """Scan directories in parallel and return the projects found

        Args:
            directories: Output of tree_collector.collect()
            config: Run configuration (workers, depth limit, excludes, names)

        Returns:
            Discovered projects sorted by depth, then path
        """
        channel = ProgressChannel(self.channel_capacity)
        consumer = ProgressConsumer(channel, self.renderer)
        projects: AppendOnlyList[DiscoveredProject] = AppendOnlyList()
        counter = Counter()
        total = len(directories)

        def work(entry: DirectoryEntry):
            try:
                self._inspect(entry, config, channel, projects)
            finally:
                count = counter.increment()
                if count % SCANNED_EVERY == 0 or count == total:
                    channel.send(Scanned(count))

        futures = []
        consumer.start()
        try:
            with ThreadPoolExecutor(max_workers=config.scan_workers, thread_name_prefix="skoria-scan") as pool:
                futures += [pool.submit(work, entry) for entry in directories]
        finally:
            channel.send(Done())
            consumer.join()

        # Surface the first worker failure, if any
        for future in futures:
            future.result()

        self.scanned_count = counter.value
        return sorted(projects.snapshot(), key=lambda p: (calculate_depth(config.root, p.path), p.path))

    def _inspect(
        self,
        entry: DirectoryEntry,
        config,
        channel: ProgressChannel,
        projects: AppendOnlyList[DiscoveredProject],
    ):
        if self.shutdown_requested and self.shutdown_requested():
            return
        if config.max_depth is not None and entry.depth > config.max_depth:
            return
        if is_excluded(entry.path, config.excludes):
            log.debug("Excluded %s", entry.path)
            return

        channel.send(Visiting(entry.path, entry.depth))

        marker = entry.path / config.marker_file
        build_dir = entry.path / config.build_dir
        try:
            is_project = marker.is_file() and build_dir.is_dir()
        except PermissionError as e:
            log.warning("Permission denied, skipping %s", entry.path)
            if self.on_skip:
                self.on_skip(entry.path, e)
            return
        except OSError as e:
            log.debug("Cannot inspect %s: %s", entry.path, e)
            return
        if not is_project:
            return

        project = DiscoveredProject(path=entry.path, artifact_size=format_size(dir_size(build_dir)))
        projects.append(project)
        channel.send(Found(project))
