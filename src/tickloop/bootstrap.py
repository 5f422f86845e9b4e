# src/tickloop/bootstrap.py

"""
Composition root.

Builds a Scheduler (and optionally a Watchdog or a prime search) from Settings, so hosts do not
have to repeat the wiring. Settings are injectable; None falls back to get_settings().
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from .config import Settings, get_settings
from .core.ports import Clock
from .logging_setup import level_from_name, setup_logging
from .primes import start_prime_search
from .tasks.chunked import ChunkedComputation
from .tasks.strategies import selector_from_name
from .tasks.task_scheduler import Scheduler
from .tasks.watchdog import UnresponsiveHandler, Watchdog

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings | None = None) -> None:
    if settings is None:
        settings = get_settings()
    setup_logging(log_dir=settings.log_dir, console_level=level_from_name(settings.log_level))


def create_scheduler(settings: Settings | None = None, *, clock: Clock | None = None) -> Scheduler:
    if settings is None:
        settings = get_settings()

    scheduler = Scheduler(
        settings.queues,
        selector=selector_from_name(settings.selector),
        idle_policy=settings.idle_policy,
        fault_policy=settings.fault_policy,
        clock=clock,
    )
    logger.debug("Created %r from settings", scheduler)
    return scheduler


def create_watchdog(
    scheduler: Scheduler,
    on_unresponsive: UnresponsiveHandler,
    settings: Settings | None = None,
    *,
    start: bool = False,
) -> Watchdog:
    """Attach a Watchdog to scheduler; start=True also launches its polling thread."""
    if settings is None:
        settings = get_settings()

    watchdog = Watchdog(
        scheduler,
        threshold_seconds=settings.watchdog_threshold_seconds,
        on_unresponsive=on_unresponsive,
    )
    if start:
        watchdog.start(poll_interval=settings.watchdog_poll_seconds)
    return watchdog


def create_prime_search(
    scheduler: Scheduler,
    on_prime: Callable[[int], Any],
    settings: Settings | None = None,
    *,
    start: int = 1,
    queue: str | None = None,
) -> ChunkedComputation:
    """Start a prime search on scheduler, sliced by settings.slice_size."""
    if settings is None:
        settings = get_settings()
    return start_prime_search(
        scheduler, on_prime, start=start, slice_size=settings.slice_size, queue=queue
    )
