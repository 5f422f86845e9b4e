# src/tickloop/tasks/task_scheduler.py

from __future__ import annotations

"""
Cooperative single-threaded scheduler (the event loop).

Each tick:
- moves due timers into their queues,
- asks the selection strategy for a queue,
- dequeues the oldest task of that queue and runs it to completion.

Tasks enqueued while a task runs are only picked up by a later tick.
Nothing preempts a running task; long work must split itself (see chunked.py).
"""

import heapq
import itertools
import logging
import threading
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from ..core.ports import Clock, ExecutionMonitor, QueueSelector
from ..errors import ConfigurationError, ReentrantDispatchError, TaskFault
from .strategies import RoundRobinSelector
from .task_models import ExecutionRecord, FaultPolicy, IdlePolicy, SchedulerStats, Task
from .task_queue import TaskQueue

logger = logging.getLogger(__name__)

DEFAULT_QUEUES: tuple[str, ...] = ("task",)


def _coerce_policy(enum_cls, value: Any, what: str):
    try:
        return enum_cls(value)
    except ValueError:
        known = ", ".join(p.value for p in enum_cls)
        raise ConfigurationError(f"unknown {what} {value!r} (known: {known})") from None


class Scheduler:
    """
    Explicit event-loop instance owning its queues and its single execution context.

    Several schedulers can live side by side (e.g. one per test); there is no global loop.
    """

    def __init__(
        self,
        queue_names: Iterable[str] = DEFAULT_QUEUES,
        *,
        selector: QueueSelector | None = None,
        idle_policy: IdlePolicy | str = IdlePolicy.EXIT,
        fault_policy: FaultPolicy | str = FaultPolicy.LOG,
        clock: Clock | None = None,
        monitors: Iterable[ExecutionMonitor] = (),
    ) -> None:
        names = [str(n).strip() for n in queue_names]
        if not names:
            raise ConfigurationError("scheduler needs at least one queue")
        if any(not n for n in names):
            raise ConfigurationError("queue names must be non-empty")
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ConfigurationError(f"duplicate queue names: {', '.join(dupes)}")

        self._wakeup = threading.Event()
        self._queues: tuple[TaskQueue, ...] = tuple(
            TaskQueue(n, on_enqueue=self._on_enqueue) for n in names
        )
        self._by_name = {q.name: q for q in self._queues}

        self._selector: QueueSelector = selector or RoundRobinSelector()
        self._idle_policy: IdlePolicy = _coerce_policy(IdlePolicy, idle_policy, "idle policy")
        self._fault_policy: FaultPolicy = _coerce_policy(FaultPolicy, fault_policy, "fault policy")
        self._clock: Clock = clock or time.monotonic
        self._monitors: list[ExecutionMonitor] = list(monitors)

        # (deadline, seq, queue_name, task); seq keeps equal deadlines in call order.
        self._timers: list[tuple[float, int, str, Task]] = []
        self._timer_seq = itertools.count()
        self._timer_lock = threading.Lock()

        # Held for the whole tick: this is the single execution context.
        self._dispatch_lock = threading.Lock()
        self._current: ExecutionRecord | None = None

        self._stop_requested = False
        self._drain_on_stop = True

        self.stats = SchedulerStats()

    # ------------------------------------------------------------------
    # Queues
    # ------------------------------------------------------------------
    @property
    def queues(self) -> tuple[TaskQueue, ...]:
        return self._queues

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def idle_policy(self) -> IdlePolicy:
        return self._idle_policy

    @property
    def fault_policy(self) -> FaultPolicy:
        return self._fault_policy

    @property
    def selector(self) -> QueueSelector:
        return self._selector

    def queue(self, name: str | None = None) -> TaskQueue:
        if name is None:
            return self._queues[0]
        try:
            return self._by_name[name]
        except KeyError:
            raise ConfigurationError(f"unknown queue {name!r}") from None

    def enqueue(self, task: Task, queue: str | None = None) -> None:
        self.queue(queue).enqueue(task)

    def call_soon(
        self,
        action: Callable[[], Any],
        *,
        queue: str | None = None,
        label: str = "",
        data: Mapping[str, Any] | None = None,
    ) -> Task:
        task = Task(action=action, label=label, data=data or {})
        self.enqueue(task, queue)
        return task

    def call_later(
        self,
        delay: float,
        action: Callable[[], Any],
        *,
        queue: str | None = None,
        label: str = "",
    ) -> Task:
        """Enqueue `action` onto `queue` once `delay` seconds have passed on the scheduler clock."""
        if delay < 0:
            raise ConfigurationError(f"delay must be >= 0, got {delay}")
        target = self.queue(queue)
        task = Task(action=action, label=label)
        deadline = self._clock() + float(delay)
        with self._timer_lock:
            heapq.heappush(self._timers, (deadline, next(self._timer_seq), target.name, task))
        logger.debug("timer queue=%s task=%s delay=%.3f", target.name, task.label, delay)
        self._wakeup.set()
        return task

    @property
    def pending_timers(self) -> int:
        with self._timer_lock:
            return len(self._timers)

    def is_idle(self) -> bool:
        """True when every queue is empty and no timer is pending."""
        return self.pending_timers == 0 and all(q.is_empty() for q in self._queues)

    # ------------------------------------------------------------------
    # Execution context
    # ------------------------------------------------------------------
    def current_execution(self) -> ExecutionRecord | None:
        """The running task and its start time, or None between tasks."""
        return self._current

    def add_monitor(self, monitor: ExecutionMonitor) -> None:
        self._monitors.append(monitor)

    def remove_monitor(self, monitor: ExecutionMonitor) -> None:
        if monitor in self._monitors:
            self._monitors.remove(monitor)

    def tick(self) -> bool:
        """
        Run one select-and-run cycle.

        Returns True if a task ran. Raises ReentrantDispatchError if a task is already running.
        """
        if not self._dispatch_lock.acquire(blocking=False):
            raise ReentrantDispatchError("tick() called while a task is running")
        try:
            self.stats.ticks += 1
            self._release_due_timers()

            queue = self._selector.select(self._queues)
            if queue is None:
                return False
            task = queue.dequeue()
            if task is None:
                return False

            self._execute(task, queue.name)
            return True
        finally:
            self._dispatch_lock.release()

    def _execute(self, task: Task, queue_name: str) -> None:
        record = ExecutionRecord(task=task, queue_name=queue_name, started_at=self._clock())
        self._current = record
        self._notify("task_started", record)
        logger.debug("run queue=%s task=%s", queue_name, task.label)
        try:
            task.run()
        except Exception as exc:
            self.stats.faults += 1
            if self._fault_policy == FaultPolicy.RAISE:
                raise TaskFault(task, queue_name) from exc
            logger.exception("task failed queue=%s task=%s", queue_name, task.label)
        finally:
            self._current = None
            self.stats.tasks_run += 1
            self._notify("task_finished", record)

    def _notify(self, event: str, record: ExecutionRecord) -> None:
        for monitor in list(self._monitors):
            try:
                getattr(monitor, event)(record)
            except Exception:
                logger.exception("execution monitor %r failed on %s", monitor, event)

    def _release_due_timers(self) -> None:
        now = self._clock()
        due: list[tuple[str, Task]] = []
        with self._timer_lock:
            while self._timers and self._timers[0][0] <= now:
                _, _, queue_name, task = heapq.heappop(self._timers)
                due.append((queue_name, task))
        for queue_name, task in due:
            self._by_name[queue_name].enqueue(task)

    def _seconds_until_next_timer(self) -> float | None:
        with self._timer_lock:
            if not self._timers:
                return None
            deadline = self._timers[0][0]
        return max(0.0, deadline - self._clock())

    def _on_enqueue(self, _queue: TaskQueue) -> None:
        self._wakeup.set()

    # ------------------------------------------------------------------
    # Run loop
    # ------------------------------------------------------------------
    def stop(self, *, drain: bool = True) -> None:
        """
        Request termination (safe from tasks and from other threads).

        drain=True finishes the queued work first; drain=False stops at the next task boundary.
        """
        self._drain_on_stop = drain
        self._stop_requested = True
        self._wakeup.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    @property
    def drain_on_stop(self) -> bool:
        return self._drain_on_stop

    def reset_stop(self) -> None:
        """Clear a handled stop request so the scheduler can be run again."""
        self._stop_requested = False
        self._drain_on_stop = True

    def run(self) -> int:
        """Tick until stopped (or, with IdlePolicy.EXIT, until idle). Returns the number of tasks run."""
        ran = 0
        logger.info(
            "Scheduler started queues=%s selector=%r idle=%s faults=%s",
            [q.name for q in self._queues],
            self._selector,
            self._idle_policy.value,
            self._fault_policy.value,
        )
        try:
            while True:
                if self._stop_requested and not self._drain_on_stop:
                    break

                if self.tick():
                    ran += 1
                    continue

                # Nothing ran. Clear first so an enqueue racing with the checks below still wakes us.
                self._wakeup.clear()
                if self._stop_requested and not self._drain_on_stop:
                    break
                if any(not q.is_empty() for q in self._queues):
                    continue

                timeout = self._seconds_until_next_timer()
                if timeout is None:
                    if self._stop_requested:
                        break
                    if self._idle_policy == IdlePolicy.EXIT:
                        break
                elif timeout == 0.0:
                    continue

                self._wakeup.wait(timeout)
        finally:
            self.reset_stop()
            logger.info("Scheduler stopped tasks_run=%d faults=%d", ran, self.stats.faults)
        return ran

    def run_until_idle(self, max_ticks: int | None = None) -> int:
        """
        Tick until no queue has work, ignoring timers that are not yet due.

        Handy for tests and batch hosts. Returns the number of tasks run.
        """
        ran = 0
        while max_ticks is None or ran < max_ticks:
            if not self.tick():
                break
            ran += 1
        return ran

    def __repr__(self) -> str:
        pending = {q.name: len(q) for q in self._queues}
        return f"Scheduler(pending={pending}, timers={self.pending_timers})"
