#!/usr/bin/env python3
"""
Thread-safe shared state for the worker pools

Both pools write their results into objects from this module. Each object
exposes a single mutating operation, and its lock is held only for that
in-memory mutation, never across I/O, subprocess calls or channel sends.
"""

import threading
from typing import Generic, TypeVar

T = TypeVar("T")


class AppendOnlyList(Generic[T]):
    """List that worker threads may only append to"""

    def __init__(self):
        self._items: list[T] = []
        self._lock = threading.Lock()

    def append(self, item: T):
        with self._lock:
            self._items.append(item)

    def snapshot(self) -> list[T]:
        """Return a copy of the items appended so far"""
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class Counter:
    """Monotonic counter shared between worker threads"""

    def __init__(self, start: int = 0):
        self._value = start
        self._lock = threading.Lock()

    def increment(self) -> int:
        """Add one and return the new value"""
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value
