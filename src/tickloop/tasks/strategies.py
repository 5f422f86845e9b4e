# src/tickloop/tasks/strategies.py

"""
Queue-selection strategies.

The order in which a scheduler services distinct queues is deliberately left to the host.
Each strategy implements the single QueueSelector.select() operation.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence

from ..errors import ConfigurationError
from .task_queue import TaskQueue

logger = logging.getLogger(__name__)


class QueueSelectorBase(ABC):
    """Base class for the shipped strategies."""

    name: str = ""

    @abstractmethod
    def select(self, queues: Sequence[TaskQueue]) -> TaskQueue | None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class RoundRobinSelector(QueueSelectorBase):
    """
    Cycle through the queues in registration order, skipping empty ones.

    The rotation resumes right after the queue picked last time, so a queue that
    keeps refilling itself cannot starve the others.
    """

    name = "round_robin"

    def __init__(self) -> None:
        self._next_index = 0

    def select(self, queues: Sequence[TaskQueue]) -> TaskQueue | None:
        count = len(queues)
        if count == 0:
            return None
        start = self._next_index % count
        for offset in range(count):
            idx = (start + offset) % count
            queue = queues[idx]
            if not queue.is_empty():
                self._next_index = idx + 1
                return queue
        return None


class PrioritySelector(QueueSelectorBase):
    """
    Drain higher-priority queues fully before looking at lower ones.

    `order` lists queue names from highest to lowest priority; queues not listed
    follow in registration order. Without an order, registration order is the priority.
    """

    name = "priority"

    def __init__(self, order: Iterable[str] | None = None) -> None:
        self._order = tuple(order or ())

    def _ranked(self, queues: Sequence[TaskQueue]) -> list[TaskQueue]:
        by_name = {q.name: q for q in queues}
        unknown = [n for n in self._order if n not in by_name]
        if unknown:
            raise ConfigurationError(f"priority order names unknown queues: {', '.join(unknown)}")
        ranked = [by_name[n] for n in self._order]
        ranked.extend(q for q in queues if q.name not in self._order)
        return ranked

    def select(self, queues: Sequence[TaskQueue]) -> TaskQueue | None:
        for queue in self._ranked(queues):
            if not queue.is_empty():
                return queue
        return None

    def __repr__(self) -> str:
        return f"PrioritySelector(order={list(self._order)!r})"


_SELECTORS: dict[str, type[QueueSelectorBase]] = {
    RoundRobinSelector.name: RoundRobinSelector,
    PrioritySelector.name: PrioritySelector,
}


def selector_from_name(name: str) -> QueueSelectorBase:
    key = (name or "").strip().lower().replace("-", "_")
    cls = _SELECTORS.get(key)
    if cls is None:
        known = ", ".join(sorted(_SELECTORS))
        raise ConfigurationError(f"unknown queue selector {name!r} (known: {known})")
    logger.debug("selector %s -> %s", name, cls.__name__)
    return cls()
