# src/tickloop/tasks/task_models.py

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Any


class IdlePolicy(StrEnum):
    """
    What the run loop does when every queue is empty.

    - EXIT: batch host, nothing else will arrive, return from run().
    - WAIT: interactive host, block until an external enqueue or stop().
    """

    EXIT = "exit"
    WAIT = "wait"


class FaultPolicy(StrEnum):
    LOG = "log"
    RAISE = "raise"


class ComputationStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    CANCELLED = "cancelled"
    FAILED = "failed"


def _frozen_mapping(data: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(data or {}))


@dataclass(slots=True, frozen=True, eq=False)
class Task:
    """
    An opaque unit of work: a zero-argument action plus optional associated data.

    Identity is position-in-queue, so equality falls back to object identity.
    """

    action: Callable[[], Any]
    label: str = ""
    data: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not callable(self.action):
            raise TypeError(f"task action must be callable, got {type(self.action).__name__}")
        object.__setattr__(self, "data", _frozen_mapping(self.data))
        if not self.label:
            name = getattr(self.action, "__qualname__", None) or type(self.action).__name__
            object.__setattr__(self, "label", name)

    def run(self) -> Any:
        return self.action()


@dataclass(slots=True, frozen=True)
class ExecutionRecord:
    """The task currently occupying the execution context, and since when."""

    task: Task
    queue_name: str
    started_at: float

    def elapsed(self, now: float) -> float:
        return max(0.0, now - self.started_at)


@dataclass(slots=True)
class SchedulerStats:
    ticks: int = 0
    tasks_run: int = 0
    faults: int = 0
