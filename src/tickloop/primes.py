# src/tickloop/primes.py

"""
Prime counting, the blocking way and the chunked way.

is_prime() is naive trial division. Note the edge: for n == 1 the loop body never
runs, so 1 is reported as prime and the sequence starts 1, 2, 3, 5, 7, 11, ...
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from .tasks.chunked import CancellationToken, ChunkedComputation
from .tasks.task_scheduler import Scheduler

logger = logging.getLogger(__name__)

DEFAULT_SLICE_SIZE = 500


def is_prime(n: int) -> bool:
    if n < 1:
        return False
    for divisor in range(2, n):
        if n % divisor == 0:
            return False
    return True


def compute_primes(on_prime: Callable[[int], Any], *, start: int = 1, stop: int) -> None:
    """Report every prime in [start, stop) in one pass. Blocks the caller until done."""
    for n in range(start, stop):
        if is_prime(n):
            on_prime(n)


def start_prime_search(
    scheduler: Scheduler,
    on_prime: Callable[[int], Any],
    *,
    start: int = 1,
    slice_size: int = DEFAULT_SLICE_SIZE,
    queue: str | None = None,
    token: CancellationToken | None = None,
) -> ChunkedComputation:
    """Start an endless prime search that yields to the scheduler every `slice_size` numbers."""
    computation = ChunkedComputation(
        scheduler,
        test=is_prime,
        on_item=on_prime,
        start=start,
        slice_size=slice_size,
        queue=queue,
        name="primes",
        token=token,
    )
    computation.start()
    return computation
