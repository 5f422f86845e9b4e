# src/tickloop/host.py

from __future__ import annotations

"""
asyncio host for a Scheduler.

Ticks the scheduler from a coroutine and sleeps while it is idle, so the
scheduler can share an asyncio loop with I/O producers that enqueue work.

To stop it, call scheduler.stop() or cancel the coroutine/task.
"""

import asyncio
import logging

from .tasks.task_scheduler import Scheduler

logger = logging.getLogger(__name__)


async def run_scheduler_async(
        scheduler: Scheduler,
        *,
        idle_sleep_seconds: float = 0.01,
        yield_every: int = 1,
) -> int:
    """
    Drive `scheduler` until scheduler.stop() is requested.

    - after every `yield_every` tasks, yield to the asyncio loop (sleep 0)
    - when nothing ran, sleep idle_sleep_seconds
    - stop(drain=True) returns once queues and timers are empty

    Returns the number of tasks run.
    """
    sleep_s = max(0.001, float(idle_sleep_seconds))
    batch = max(1, int(yield_every))
    ran = 0

    logger.info("Async host started idle_sleep=%.3fs", sleep_s)
    try:
        while True:
            if scheduler.stop_requested:
                if not scheduler.drain_on_stop or scheduler.is_idle():
                    break

            if scheduler.tick():
                ran += 1
                if ran % batch == 0:
                    await asyncio.sleep(0)
                continue

            await asyncio.sleep(sleep_s)
    finally:
        scheduler.reset_stop()
        logger.info("Async host stopped tasks_run=%d", ran)
    return ran
