# src/tickloop/errors.py

"""Exception types raised by the scheduler and its helpers."""

from __future__ import annotations

from typing import Any


class TickloopError(Exception):
    """Base class for all tickloop errors."""


class ConfigurationError(TickloopError, ValueError):
    """Invalid construction parameters (rejected synchronously, never enqueued)."""


class ReentrantDispatchError(TickloopError, RuntimeError):
    """Raised when tick() is called while another task occupies the execution context."""


class TaskFault(TickloopError):
    """
    A task raised while running and the scheduler is configured to stop on faults.

    The original exception is available as __cause__.
    """

    def __init__(self, task: Any, queue_name: str) -> None:
        self.task = task
        self.queue_name = queue_name
        label = getattr(task, "label", None) or "<task>"
        super().__init__(f"task {label!r} from queue {queue_name!r} failed")
