# tests/test_task_scheduler.py

from __future__ import annotations

import threading
import time

import pytest

from tickloop.errors import ConfigurationError, ReentrantDispatchError, TaskFault
from tickloop.tasks.strategies import PrioritySelector
from tickloop.tasks.task_models import IdlePolicy, Task
from tickloop.tasks.task_scheduler import Scheduler

from .fakes import FakeClock, RecordingMonitor


def test_task_enqueued_during_tick_runs_after_existing_ones(scheduler: Scheduler) -> None:
    ran: list[str] = []

    def a() -> None:
        ran.append("A")
        scheduler.call_soon(lambda: ran.append("C"), label="C")

    scheduler.call_soon(a, label="A")
    scheduler.call_soon(lambda: ran.append("B"), label="B")

    assert scheduler.tick() is True
    assert ran == ["A"]
    assert [t.label for t in scheduler.queue("task").snapshot()] == ["B", "C"]

    assert scheduler.tick() is True
    assert ran == ["A", "B"]


def test_tick_on_empty_scheduler_runs_nothing(scheduler: Scheduler) -> None:
    assert scheduler.tick() is False
    assert scheduler.stats.tasks_run == 0
    assert scheduler.stats.ticks == 1


def test_tick_from_inside_a_task_is_rejected(scheduler: Scheduler) -> None:
    errors: list[Exception] = []
    ran: list[str] = []

    def nested() -> None:
        try:
            scheduler.tick()
        except ReentrantDispatchError as exc:
            errors.append(exc)

    scheduler.call_soon(nested)
    scheduler.call_soon(lambda: ran.append("second"))

    scheduler.tick()

    assert len(errors) == 1
    assert ran == []
    assert len(scheduler.queue("task")) == 1


def test_concurrent_tick_from_another_thread_does_not_start_a_task(scheduler: Scheduler) -> None:
    inside = threading.Event()
    release = threading.Event()
    outcome: list[object] = []

    def blocker() -> None:
        inside.set()
        release.wait(timeout=5)

    scheduler.call_soon(blocker)
    scheduler.call_soon(lambda: outcome.append("other ran"))

    runner = threading.Thread(target=scheduler.tick)
    runner.start()
    assert inside.wait(timeout=5)

    with pytest.raises(ReentrantDispatchError):
        scheduler.tick()

    release.set()
    runner.join(timeout=5)
    assert outcome == []
    assert scheduler.tick() is True
    assert outcome == ["other ran"]


def test_fault_is_logged_and_next_tick_proceeds(scheduler: Scheduler, caplog) -> None:
    ran: list[str] = []

    def boom() -> None:
        raise RuntimeError("boom")

    scheduler.call_soon(boom, label="boom")
    scheduler.call_soon(lambda: ran.append("after"), label="after")

    assert scheduler.tick() is True
    assert scheduler.current_execution() is None
    assert scheduler.stats.faults == 1
    assert "task failed" in caplog.text

    assert scheduler.tick() is True
    assert ran == ["after"]


def test_fault_policy_raise_wraps_the_error_and_keeps_queue_intact(clock: FakeClock) -> None:
    sched = Scheduler(["task"], fault_policy="raise", clock=clock)

    def boom() -> None:
        raise KeyError("missing")

    sched.call_soon(boom, label="boom")
    sched.call_soon(lambda: None, label="next")

    with pytest.raises(TaskFault) as info:
        sched.tick()

    assert isinstance(info.value.__cause__, KeyError)
    assert info.value.queue_name == "task"
    assert sched.current_execution() is None
    assert [t.label for t in sched.queue("task").snapshot()] == ["next"]
    assert sched.tick() is True


def test_current_execution_and_monitors(scheduler: Scheduler, clock: FakeClock) -> None:
    monitor = RecordingMonitor()
    scheduler.add_monitor(monitor)
    seen = []

    def work() -> None:
        seen.append(scheduler.current_execution())

    scheduler.call_soon(work, label="work")
    scheduler.tick()

    record = seen[0]
    assert record is not None
    assert record.task.label == "work"
    assert record.queue_name == "task"
    assert record.started_at == clock.now
    assert scheduler.current_execution() is None
    assert monitor.events == [("started", "work"), ("finished", "work")]


def test_call_later_enqueues_once_delay_elapsed(scheduler: Scheduler, clock: FakeClock) -> None:
    ran: list[str] = []
    scheduler.call_later(2.0, lambda: ran.append("late"), label="late")
    scheduler.call_later(1.0, lambda: ran.append("early"), label="early")

    assert scheduler.tick() is False
    assert scheduler.pending_timers == 2

    clock.advance(1.0)
    assert scheduler.tick() is True
    assert ran == ["early"]

    clock.advance(5.0)
    assert scheduler.tick() is True
    assert ran == ["early", "late"]
    assert scheduler.is_idle()


def test_call_later_rejects_negative_delay(scheduler: Scheduler) -> None:
    with pytest.raises(ConfigurationError):
        scheduler.call_later(-1, lambda: None)


@pytest.mark.parametrize(
    "names",
    [[], ["task", "task"], ["task", " "]],
)
def test_invalid_queue_configuration_is_rejected(names: list[str]) -> None:
    with pytest.raises(ConfigurationError):
        Scheduler(names)


def test_invalid_policies_are_rejected() -> None:
    with pytest.raises(ConfigurationError):
        Scheduler(["task"], idle_policy="sometimes")
    with pytest.raises(ConfigurationError):
        Scheduler(["task"], fault_policy="ignore")


def test_unknown_queue_name(scheduler: Scheduler) -> None:
    with pytest.raises(ConfigurationError):
        scheduler.enqueue(Task(action=lambda: None), "nope")


def test_run_exits_when_idle_with_exit_policy() -> None:
    sched = Scheduler(["task"], idle_policy=IdlePolicy.EXIT)
    ran: list[int] = []

    def step(n: int) -> None:
        ran.append(n)
        if n < 3:
            sched.call_soon(lambda: step(n + 1))

    sched.call_soon(lambda: step(0))
    assert sched.run() == 4
    assert ran == [0, 1, 2, 3]


def test_run_waits_for_external_enqueue_with_wait_policy() -> None:
    sched = Scheduler(["task"], idle_policy="wait")
    ran: list[str] = []
    result: list[int] = []

    runner = threading.Thread(target=lambda: result.append(sched.run()))
    runner.start()

    time.sleep(0.05)
    assert runner.is_alive()

    sched.call_soon(lambda: ran.append("external"))
    sched.call_soon(lambda: sched.stop())
    runner.join(timeout=5)

    assert not runner.is_alive()
    assert ran == ["external"]
    assert result == [2]


def test_stop_with_drain_finishes_queued_work() -> None:
    sched = Scheduler(["task"], idle_policy="wait")
    ran: list[str] = []

    def first() -> None:
        ran.append("first")
        sched.stop()

    sched.call_soon(first)
    sched.call_soon(lambda: ran.append("second"))

    assert sched.run() == 2
    assert ran == ["first", "second"]
    assert sched.stop_requested is False


def test_stop_without_drain_stops_at_next_task_boundary() -> None:
    sched = Scheduler(["task"], idle_policy="wait")
    ran: list[str] = []

    def first() -> None:
        ran.append("first")
        sched.stop(drain=False)

    sched.call_soon(first)
    sched.call_soon(lambda: ran.append("second"))

    assert sched.run() == 1
    assert ran == ["first"]
    assert len(sched.queue("task")) == 1


def test_run_waits_for_real_timers_before_exiting() -> None:
    sched = Scheduler(["task"])
    ran: list[str] = []
    sched.call_later(0.02, lambda: ran.append("timer"))

    assert sched.run() == 1
    assert ran == ["timer"]


def test_priority_selector_drains_microtasks_first(clock: FakeClock) -> None:
    sched = Scheduler(["task", "microtask"], selector=PrioritySelector(["microtask"]), clock=clock)
    ran: list[str] = []

    def macro() -> None:
        ran.append("macro")
        sched.call_soon(lambda: ran.append("micro-2"), queue="microtask")

    sched.call_soon(macro, queue="task")
    sched.call_soon(lambda: ran.append("macro-2"), queue="task")
    sched.call_soon(lambda: ran.append("micro-1"), queue="microtask")

    sched.run_until_idle()
    assert ran == ["micro-1", "macro", "micro-2", "macro-2"]


def test_removed_monitor_is_no_longer_notified(scheduler: Scheduler) -> None:
    kept = RecordingMonitor()
    dropped = RecordingMonitor()
    scheduler.add_monitor(kept)
    scheduler.add_monitor(dropped)

    scheduler.call_soon(lambda: None, label="one")
    scheduler.tick()

    scheduler.remove_monitor(dropped)
    scheduler.remove_monitor(dropped)
    scheduler.call_soon(lambda: None, label="two")
    scheduler.tick()

    assert dropped.events == [("started", "one"), ("finished", "one")]
    assert kept.events[-2:] == [("started", "two"), ("finished", "two")]
