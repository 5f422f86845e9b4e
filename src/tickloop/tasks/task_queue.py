# src/tickloop/tasks/task_queue.py

"""
FIFO task queue.

Tasks are only ever added at the back and removed from the front.
The only exception is remove(), the optional host-level cancellation extension.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable

from .task_models import Task

logger = logging.getLogger(__name__)


class TaskQueue:
    """Unbounded, named FIFO of pending tasks."""

    def __init__(self, name: str, *, on_enqueue: Callable[[TaskQueue], None] | None = None) -> None:
        self.name = name
        self._items: deque[Task] = deque()
        self._lock = threading.Lock()
        self._on_enqueue = on_enqueue

    def enqueue(self, task: Task) -> None:
        if not isinstance(task, Task):
            raise TypeError(f"expected Task, got {type(task).__name__}")
        with self._lock:
            self._items.append(task)
            depth = len(self._items)
        logger.debug("enqueue queue=%s task=%s depth=%d", self.name, task.label, depth)
        if self._on_enqueue is not None:
            self._on_enqueue(self)

    def dequeue(self) -> Task | None:
        """Remove and return the front task, or None when the queue is empty."""
        with self._lock:
            if not self._items:
                return None
            return self._items.popleft()

    def is_empty(self) -> bool:
        with self._lock:
            return not self._items

    def remove(self, task: Task) -> bool:
        """Drop a still-queued task (matched by identity). Returns False if it is not queued."""
        with self._lock:
            for i, queued in enumerate(self._items):
                if queued is task:
                    del self._items[i]
                    return True
        return False

    def snapshot(self) -> tuple[Task, ...]:
        """Front-to-back copy of the pending tasks."""
        with self._lock:
            return tuple(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __repr__(self) -> str:
        return f"TaskQueue(name={self.name!r}, pending={len(self)})"
