# src/tickloop/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the scheduler.

The scheduler depends on Protocols instead of concrete implementations.
This keeps selection policies, clocks and watchdogs swappable and makes testing easier.
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..tasks.task_models import ExecutionRecord
    from ..tasks.task_queue import TaskQueue


class Clock(Protocol):
    """Monotonic time source, in seconds."""
    def __call__(self) -> float: ...


class QueueSelector(Protocol):
    """
    Queue-selection strategy: the single "pick next queue" operation.

    Receives the scheduler's queues in registration order.
    Returning None (or an empty queue) means nothing runs this tick.
    """

    def select(self, queues: Sequence[TaskQueue]) -> TaskQueue | None: ...


class ExecutionMonitor(Protocol):
    """
    Host-side observer of the execution context (e.g. a watchdog).

    Called synchronously on the scheduler thread, around each task.
    """

    def task_started(self, record: ExecutionRecord) -> None: ...
    def task_finished(self, record: ExecutionRecord) -> None: ...
