#!/usr/bin/env python3
"""
Scan progress events and their single-consumer channel

Scan workers never print. They send events into a bounded ProgressChannel and
one ProgressConsumer thread, the only owner of the progress display, renders
them in arrival order.
"""

import logging
import pathlib
import queue
import threading
from dataclasses import dataclass
from typing import Optional, Protocol, Union

from rich.markup import escape

from console_ui import ConsoleUI

log = logging.getLogger(__name__)

DEFAULT_CAPACITY = 1000


@dataclass(frozen=True)
class DiscoveredProject:
    """A project directory with an existing build-output directory"""

    path: pathlib.Path
    artifact_size: str


@dataclass(frozen=True)
class Visiting:
    path: pathlib.Path
    depth: int


@dataclass(frozen=True)
class Found:
    project: DiscoveredProject


@dataclass(frozen=True)
class Scanned:
    count: int


@dataclass(frozen=True)
class Done:
    pass


ScanProgressEvent = Union[Visiting, Found, Scanned, Done]


class ProgressChannel:
    """Bounded FIFO conduit from many scan workers to one consumer

    A full channel blocks the sender instead of dropping the event.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        self._queue: queue.Queue = queue.Queue(maxsize=capacity)

    def send(self, event: ScanProgressEvent):
        self._queue.put(event)

    def receive(self, timeout: Optional[float] = None) -> ScanProgressEvent:
        """Block until the next event arrives

        Raises:
            queue.Empty: If *timeout* elapses without an event
        """
        return self._queue.get(timeout=timeout)


class ProgressRenderer(Protocol):
    """Display surface driven by the progress consumer"""

    def start(self): ...

    def visiting(self, path: pathlib.Path, depth: int): ...

    def found(self, project: DiscoveredProject): ...

    def scanned(self, count: int): ...

    def done(self, total: int): ...


class ConsoleProgressRenderer:
    """Renders scan progress on a rich activity progress display"""

    def __init__(self, ui: ConsoleUI, marker_file: str = "Cargo.toml", build_dir: str = "target"):
        self.ui = ui
        self.marker_file = marker_file
        self.build_dir = build_dir
        self._progress = None
        self._task = None

    def start(self):
        self._progress = self.ui.create_activity_progress()
        self._progress.start()
        self._task = self._progress.add_task("Scanning...", total=None)

    def visiting(self, path: pathlib.Path, depth: int):
        indent = "  " * max(depth - 1, 0)
        name = path.name or str(path)
        self._progress.console.print(f"{indent}[dim]visiting[/dim] {escape(name)}/", highlight=False)

    def found(self, project: DiscoveredProject):
        self._progress.console.print(
            f"      [green]✓ found {self.marker_file} + {self.build_dir}/ ({project.artifact_size})[/green]"
        )

    def scanned(self, count: int):
        self._progress.update(self._task, description=f"Scanning... {count} dirs")

    def done(self, total: int):
        self._progress.update(self._task, description=f"Scan complete, {total} dirs")
        self._progress.stop()
        self.ui.print_info(f"Scanned {total} directories")


class ProgressConsumer:
    """Dedicated thread that drains a ProgressChannel into a renderer

    The consumer keeps the highest Scanned count it has seen, since counts
    sent by different workers may arrive out of order. It stops after Done.
    """

    def __init__(self, channel: ProgressChannel, renderer: ProgressRenderer):
        self.channel = channel
        self.renderer = renderer
        self.total_scanned = 0
        self._thread = threading.Thread(target=self._run, name="skoria-progress", daemon=True)

    def start(self):
        self._thread.start()

    def join(self, timeout: Optional[float] = None):
        self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def _run(self):
        rendering = self._render(self.renderer.start)
        while True:
            event = self.channel.receive()
            if isinstance(event, Scanned):
                if event.count <= self.total_scanned:
                    continue
                self.total_scanned = event.count
            if isinstance(event, Done):
                if rendering:
                    self._render(self.renderer.done, self.total_scanned)
                return
            if rendering:
                rendering = self._dispatch(event)

    def _dispatch(self, event: ScanProgressEvent) -> bool:
        if isinstance(event, Visiting):
            return self._render(self.renderer.visiting, event.path, event.depth)
        if isinstance(event, Found):
            return self._render(self.renderer.found, event.project)
        return self._render(self.renderer.scanned, self.total_scanned)

    def _render(self, method, *args) -> bool:
        """Call a renderer method; on failure keep draining without rendering

        Workers block on a full channel, so the consumer must keep receiving
        until Done even when the display is broken.
        """
        try:
            method(*args)
            return True
        except Exception:
            log.exception("Progress display failed, continuing without it")
            return False
