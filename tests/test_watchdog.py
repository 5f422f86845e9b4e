# tests/test_watchdog.py

from __future__ import annotations

import threading

import pytest

from tickloop.errors import ConfigurationError
from tickloop.tasks.task_models import ExecutionRecord
from tickloop.tasks.task_scheduler import Scheduler
from tickloop.tasks.watchdog import Watchdog

from .fakes import FakeClock


def test_watchdog_reports_long_task_once(scheduler: Scheduler, clock: FakeClock) -> None:
    reports: list[tuple[str, float]] = []
    dog = Watchdog(
        scheduler,
        threshold_seconds=1.0,
        on_unresponsive=lambda record, elapsed: reports.append((record.task.label, elapsed)),
    )
    checks: list[bool] = []

    def slow() -> None:
        checks.append(dog.check())
        clock.advance(0.5)
        checks.append(dog.check())
        clock.advance(1.0)
        checks.append(dog.check())
        clock.advance(1.0)
        checks.append(dog.check())

    scheduler.call_soon(slow, label="slow")
    scheduler.tick()

    assert checks == [False, False, True, False]
    assert reports == [("slow", 1.5)]
    assert dog.check() is False


def test_watchdog_reports_each_task_separately(scheduler: Scheduler, clock: FakeClock) -> None:
    reports: list[str] = []
    dog = Watchdog(scheduler, threshold_seconds=1.0, on_unresponsive=lambda r, e: reports.append(r.task.label))

    def slow() -> None:
        clock.advance(2.0)
        dog.check()
        dog.check()

    scheduler.call_soon(slow, label="one")
    scheduler.call_soon(slow, label="two")
    scheduler.run_until_idle()

    assert reports == ["one", "two"]


def test_watchdog_handler_errors_do_not_escape(scheduler: Scheduler, clock: FakeClock) -> None:
    def broken(record: ExecutionRecord, elapsed: float) -> None:
        raise RuntimeError("handler broke")

    dog = Watchdog(scheduler, threshold_seconds=0.1, on_unresponsive=broken)
    results: list[bool] = []

    def slow() -> None:
        clock.advance(1.0)
        results.append(dog.check())

    scheduler.call_soon(slow)
    scheduler.tick()
    assert results == [True]
    assert scheduler.stats.faults == 0


def test_watchdog_rejects_non_positive_threshold(scheduler: Scheduler) -> None:
    with pytest.raises(ConfigurationError):
        Watchdog(scheduler, threshold_seconds=0, on_unresponsive=lambda r, e: None)


def test_watchdog_thread_polls_a_blocking_task() -> None:
    sched = Scheduler(["task"])
    reported = threading.Event()
    dog = Watchdog(sched, threshold_seconds=0.05, on_unresponsive=lambda r, e: reported.set())

    def busy() -> None:
        # Blocks the execution context until the watchdog notices.
        reported.wait(timeout=5)

    sched.call_soon(busy, label="busy")
    dog.start(poll_interval=0.01)
    try:
        sched.tick()
    finally:
        dog.stop()

    assert reported.is_set()
