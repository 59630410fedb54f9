#!/usr/bin/env python3
"""
Directory tree collection for Skoria

Enumerates every candidate directory below a scan root, either breadth-first
(level order) or depth-first (pre-order). Siblings are visited in name order
so both orders are reproducible, and directories named like a build-output
directory are never entered.
"""

import logging
import os
import pathlib
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional

log = logging.getLogger(__name__)


class TraversalStrategy(Enum):
    """Order in which the tree is enumerated"""

    BFS = "bfs"
    DFS = "dfs"


@dataclass(frozen=True)
class DirectoryEntry:
    """A directory found below the scan root"""

    path: pathlib.Path
    depth: int


def calculate_depth(root: pathlib.Path, path: pathlib.Path) -> int:
    """Return how many levels *path* lies below *root* (the root itself is 0)

    Paths outside of *root* are treated as depth 0.
    """
    try:
        return len(path.relative_to(root).parts)
    except ValueError:
        return 0


def _child_directories(
    directory: pathlib.Path,
    prune_names: frozenset[str],
    on_skip: Optional[Callable[[pathlib.Path, OSError], None]],
) -> list[pathlib.Path]:
    """List the sub-directories of *directory* sorted by name

    Unreadable directories have no children. Pruned names and symbolic links
    are left out.
    """
    try:
        with os.scandir(directory) as entries:
            names = []
            for entry in entries:
                if entry.name in prune_names:
                    continue
                try:
                    if entry.is_dir(follow_symlinks=False):
                        names.append(entry.name)
                except OSError:
                    continue
    except PermissionError as e:
        log.warning("Permission denied, skipping %s", directory)
        if on_skip:
            on_skip(directory, e)
        return []
    except OSError as e:
        log.debug("Cannot list %s: %s", directory, e)
        return []

    return [directory / name for name in sorted(names)]


def collect(
    root: pathlib.Path,
    strategy: TraversalStrategy = TraversalStrategy.BFS,
    prune_names: Iterable[str] = ("target",),
    max_depth: Optional[int] = None,
    on_skip: Optional[Callable[[pathlib.Path, OSError], None]] = None,
) -> list[DirectoryEntry]:
    """Collect all directories below a root, root included

    Args:
        root: Directory to start from
        strategy: Breadth-first or depth-first enumeration
        prune_names: Directory names that are never descended into
        max_depth: Do not enumerate directories deeper than this
        on_skip: Called with (path, error) for directories that could not be
            read because of missing permissions

    Returns:
        Directory entries in the order dictated by *strategy*
    """
    pruned = frozenset(prune_names)
    collected: list[DirectoryEntry] = []

    if strategy is TraversalStrategy.BFS:
        queue = deque([DirectoryEntry(root, 0)])
        while queue:
            entry = queue.popleft()
            collected.append(entry)
            if max_depth is not None and entry.depth >= max_depth:
                continue
            for child in _child_directories(entry.path, pruned, on_skip):
                queue.append(DirectoryEntry(child, entry.depth + 1))

    else:
        stack = [DirectoryEntry(root, 0)]
        while stack:
            entry = stack.pop()
            collected.append(entry)
            if max_depth is not None and entry.depth >= max_depth:
                continue
            # Reversed so the first child (by name) is popped first
            for child in reversed(_child_directories(entry.path, pruned, on_skip)):
                stack.append(DirectoryEntry(child, entry.depth + 1))

    return collected
