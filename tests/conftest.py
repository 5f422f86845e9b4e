# tests/conftest.py

from __future__ import annotations

from types import SimpleNamespace

import pytest

from tickloop.tasks.task_scheduler import Scheduler

from .fakes import FakeClock


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def settings() -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap.

    We intentionally use a SimpleNamespace rather than reading the environment,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        log_level="DEBUG",
        log_dir=None,
        queues=["microtask", "task", "render"],
        selector="round_robin",
        idle_policy="exit",
        fault_policy="log",
        slice_size=500,
        watchdog_threshold_seconds=1.0,
        watchdog_poll_seconds=0.01,
    )


@pytest.fixture()
def scheduler(clock: FakeClock) -> Scheduler:
    """Single-queue scheduler on a fake clock."""
    return Scheduler(["task"], clock=clock)
