"""Cooperative single-threaded task scheduler (an event loop) with chunked computations."""

from __future__ import annotations

from .errors import ConfigurationError, ReentrantDispatchError, TaskFault, TickloopError
from .tasks.chunked import CancellationToken, ChunkCursor, ChunkedComputation
from .tasks.strategies import PrioritySelector, RoundRobinSelector, selector_from_name
from .tasks.task_models import ExecutionRecord, FaultPolicy, IdlePolicy, Task
from .tasks.task_queue import TaskQueue
from .tasks.task_scheduler import Scheduler
from .tasks.watchdog import Watchdog

__all__ = [
    "CancellationToken",
    "ChunkCursor",
    "ChunkedComputation",
    "ConfigurationError",
    "ExecutionRecord",
    "FaultPolicy",
    "IdlePolicy",
    "PrioritySelector",
    "ReentrantDispatchError",
    "RoundRobinSelector",
    "Scheduler",
    "Task",
    "TaskFault",
    "TaskQueue",
    "TickloopError",
    "Watchdog",
    "selector_from_name",
]
