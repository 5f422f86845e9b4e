# src/tickloop/tasks/chunked.py

"""
Chunked computation.

Turns an endless "walk the candidates, report the matches" loop into a chain of
bounded slices. Each slice examines exactly `slice_size` candidates, then enqueues
its continuation and returns, so other queued work (rendering, input, timers)
can run between two slices.

Splitting never changes the output: the sequence of on_item calls is the same
as a single unbroken pass over the same candidates.
"""

from __future__ import annotations

import functools
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..errors import ConfigurationError
from .task_models import ComputationStatus, Task
from .task_scheduler import Scheduler

logger = logging.getLogger(__name__)


def _increment(value: Any) -> Any:
    return value + 1


@dataclass(slots=True, frozen=True)
class ChunkCursor:
    """Resumable progress: the next candidate to examine and how many slices are done."""

    position: Any
    slice_index: int = 0


class CancellationToken:
    """Shared cooperative-cancellation flag, checked at the top of every slice."""

    def __init__(self) -> None:
        self._flag = threading.Event()

    def cancel(self) -> None:
        self._flag.set()

    @property
    def cancelled(self) -> bool:
        return self._flag.is_set()


class ChunkedComputation:
    """
    A long-running search that yields to the scheduler between slices.

    - test(candidate) -> bool decides whether a candidate is reported
    - on_item(candidate) is called for every candidate that passes, in order
    - successor(candidate) produces the next candidate (default: +1)

    There is no built-in end: the candidate sequence may be infinite and only
    cancel() (or the shared token) stops the chain.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        test: Callable[[Any], bool],
        on_item: Callable[[Any], Any],
        start: Any,
        slice_size: int,
        successor: Callable[[Any], Any] = _increment,
        queue: str | None = None,
        name: str = "chunked",
        token: CancellationToken | None = None,
    ) -> None:
        if isinstance(slice_size, bool) or not isinstance(slice_size, int):
            raise ConfigurationError(f"slice_size must be an int, got {slice_size!r}")
        if slice_size < 1:
            raise ConfigurationError(f"slice_size must be >= 1, got {slice_size}")

        # Resolve early so a bad queue name fails at construction, not mid-run.
        scheduler.queue(queue)

        self.name = name
        self._scheduler = scheduler
        self._queue = queue
        self._test = test
        self._on_item = on_item
        self._successor = successor
        self._start = start
        self._slice_size = slice_size
        self._token = token or CancellationToken()

        self._cursor = ChunkCursor(position=start)
        self._status = ComputationStatus.PENDING
        self._pending_task: Task | None = None
        self.slices_run = 0
        self.candidates_examined = 0

    @property
    def cursor(self) -> ChunkCursor:
        return self._cursor

    @property
    def status(self) -> ComputationStatus:
        return self._status

    @property
    def slice_size(self) -> int:
        return self._slice_size

    @property
    def token(self) -> CancellationToken:
        return self._token

    def start(self) -> Task:
        """Enqueue the first slice."""
        if self._status != ComputationStatus.PENDING:
            raise ConfigurationError(f"computation {self.name!r} is {self._status.value}, cannot start")
        self._status = ComputationStatus.RUNNING
        logger.info(
            "Chunked computation %s started at=%r slice_size=%d", self.name, self._start, self._slice_size
        )
        return self._enqueue_slice(self._cursor)

    def cancel(self, *, remove_pending: bool = False) -> None:
        """
        Stop the chain cooperatively.

        A slice already running finishes; the next one sees the flag and does nothing.
        With remove_pending=True the queued continuation is also dropped from its queue.
        """
        self._token.cancel()
        if self._status == ComputationStatus.PENDING:
            self._status = ComputationStatus.CANCELLED
            logger.info("Chunked computation %s cancelled before start", self.name)
            return
        if remove_pending and self._pending_task is not None:
            if self._scheduler.queue(self._queue).remove(self._pending_task):
                self._pending_task = None
                self._status = ComputationStatus.CANCELLED
                logger.info("Chunked computation %s cancelled (continuation removed)", self.name)

    def _enqueue_slice(self, cursor: ChunkCursor) -> Task:
        task = Task(
            action=functools.partial(self._slice_task, cursor),
            label=f"{self.name}[slice {cursor.slice_index}]",
            data={"cursor": cursor, "computation": self.name},
        )
        self._pending_task = task
        self._scheduler.enqueue(task, self._queue)
        return task

    def _slice_task(self, cursor: ChunkCursor) -> ChunkCursor | None:
        self._pending_task = None
        if self._token.cancelled:
            self._status = ComputationStatus.CANCELLED
            logger.info(
                "Chunked computation %s cancelled at=%r after %d slices",
                self.name,
                cursor.position,
                self.slices_run,
            )
            return None
        return self.run_slice(cursor)

    def run_slice(self, cursor: ChunkCursor) -> ChunkCursor:
        """
        Examine exactly slice_size candidates from cursor, then enqueue the continuation.

        If test, on_item or successor raises, the computation is marked FAILED at the
        offending candidate and the error propagates to the scheduler fault policy.
        """
        position = cursor.position
        try:
            for _ in range(self._slice_size):
                if self._test(position):
                    self._on_item(position)
                position = self._successor(position)
        except Exception:
            self._status = ComputationStatus.FAILED
            self._cursor = ChunkCursor(position=position, slice_index=cursor.slice_index)
            logger.exception(
                "Chunked computation %s failed at=%r slice=%d", self.name, position, cursor.slice_index
            )
            raise

        self.slices_run += 1
        self.candidates_examined += self._slice_size

        next_cursor = ChunkCursor(position=position, slice_index=cursor.slice_index + 1)
        self._cursor = next_cursor
        self._enqueue_slice(next_cursor)
        return next_cursor

    def run_unbroken(self, count: int) -> None:
        """Examine `count` candidates from the start in one pass, without the scheduler."""
        if count < 0:
            raise ConfigurationError(f"count must be >= 0, got {count}")
        position = self._start
        for _ in range(count):
            if self._test(position):
                self._on_item(position)
            position = self._successor(position)

    def __repr__(self) -> str:
        return (
            f"ChunkedComputation(name={self.name!r}, status={self._status.value}, "
            f"cursor={self._cursor.position!r}, slices_run={self.slices_run})"
        )
