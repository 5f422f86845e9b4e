# src/tickloop/tasks/watchdog.py

"""
Unresponsiveness watchdog.

Lives outside the scheduler: it only reads scheduler.current_execution() and
compares the start time of the running task with the clock. It cannot interrupt
the task, it can only tell the host (e.g. to offer an abort button).
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from ..core.ports import Clock
from ..errors import ConfigurationError
from .task_models import ExecutionRecord
from .task_scheduler import Scheduler

logger = logging.getLogger(__name__)

UnresponsiveHandler = Callable[[ExecutionRecord, float], None]


class Watchdog:
    """
    Polls the scheduler's execution context and reports tasks that run too long.

    Each running task is reported at most once. The watchdog also registers
    itself as an ExecutionMonitor so the one-shot latch resets when a task ends.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        threshold_seconds: float,
        on_unresponsive: UnresponsiveHandler,
        clock: Clock | None = None,
    ) -> None:
        if threshold_seconds <= 0:
            raise ConfigurationError(f"threshold_seconds must be > 0, got {threshold_seconds}")
        self._scheduler = scheduler
        self._threshold = float(threshold_seconds)
        self._on_unresponsive = on_unresponsive
        self._clock: Clock = clock or scheduler.clock

        self._reported: ExecutionRecord | None = None
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

        scheduler.add_monitor(self)

    @property
    def threshold_seconds(self) -> float:
        return self._threshold

    # ExecutionMonitor
    def task_started(self, record: ExecutionRecord) -> None:
        pass

    def task_finished(self, record: ExecutionRecord) -> None:
        with self._lock:
            if self._reported is record:
                self._reported = None

    def check(self) -> bool:
        """Poll once. Returns True if an unresponsive task was reported by this call."""
        record = self._scheduler.current_execution()
        if record is None:
            return False

        elapsed = record.elapsed(self._clock())
        if elapsed <= self._threshold:
            return False

        with self._lock:
            if self._reported is record:
                return False
            self._reported = record

        logger.warning(
            "Task unresponsive queue=%s task=%s elapsed=%.2fs threshold=%.2fs",
            record.queue_name,
            record.task.label,
            elapsed,
            self._threshold,
        )
        try:
            self._on_unresponsive(record, elapsed)
        except Exception:
            logger.exception("on_unresponsive handler failed")
        return True

    def start(self, poll_interval: float = 0.5) -> None:
        """Run check() on a background daemon thread (idempotent)."""
        if self._thread is not None and self._thread.is_alive():
            logger.warning("Watchdog already running")
            return
        interval = max(0.01, float(poll_interval))
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._poll_loop, args=(interval,), name="tickloop-watchdog", daemon=True
        )
        self._thread.start()
        logger.info("Watchdog started threshold=%.2fs poll=%.2fs", self._threshold, interval)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None:
            thread.join(timeout=timeout)
            logger.info("Watchdog stopped")

    def _poll_loop(self, interval: float) -> None:
        while not self._stop.wait(interval):
            try:
                self.check()
            except Exception:
                logger.exception("Watchdog check failed")
