"""Single-threaded polling loop shared by ``pr checks --watch`` and ``run watch``."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, Hashable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class PollResult(Generic[T]):
    value: T
    elapsed: float
    timed_out: bool


def poll(
    fetch: Callable[[], T],
    done: Callable[[T], bool],
    key: Callable[[T], Hashable],
    interval: float,
    timeout: float,
    on_change: Callable[[T, float], Any] | None = None,
    emit_initial: bool = False,
    sleep: Callable[[float], Any] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> PollResult[T]:
    """Fetch until ``done(value)`` or *timeout* seconds have elapsed.

    ``on_change(value, elapsed)`` fires only when ``key(value)`` differs from
    the previous snapshot (and for the first fetch when *emit_initial*).
    Reaching the timeout is not an error; the last value is returned with
    ``timed_out=True``.
    """
    started = clock()
    value = fetch()
    snapshot = key(value)
    if emit_initial and on_change is not None:
        on_change(value, clock() - started)

    while not done(value) and clock() - started < timeout:
        sleep(interval)
        value = fetch()
        next_snapshot = key(value)
        if next_snapshot != snapshot:
            logger.debug("Poll snapshot changed: %s -> %s", snapshot, next_snapshot)
            snapshot = next_snapshot
            if on_change is not None:
                on_change(value, clock() - started)

    return PollResult(value=value, elapsed=clock() - started, timed_out=not done(value))


def seconds(value: float) -> float:
    """Clamp a user-supplied duration to at least one millisecond."""
    return max(1, round(value * 1000)) / 1000
