"""Recurring refresh timer.

Runs a background asyncio task that sleeps for the cache's reload interval
and then fires a tick callback, forever, until cancelled.  The scheduler
does not run refresh cycles itself; the tick callback decides whether to
start one (the cache skips ticks while a cycle is still in flight).
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Callable

import structlog

from querycache.utils.logging import get_logger


def jittered_interval(min_seconds: float, max_seconds: float) -> float:
    """Return an interval drawn uniformly from ``[min_seconds, max_seconds]``.

    Spreading intervals keeps many caches started at the same moment from
    refreshing on the same tick.
    """
    return random.uniform(min_seconds, max_seconds)


class RefreshScheduler:
    """Fires *on_tick* every *interval_seconds* until :meth:`cancel`.

    Parameters
    ----------
    interval_seconds:
        Delay between ticks.  The first tick fires one interval after
        :meth:`start`.
    on_tick:
        Synchronous callable; it must not block.  Exceptions it raises are
        logged and the timer keeps running.
    name:
        Cache name, used for the task name and log context.
    """

    def __init__(
        self,
        interval_seconds: float,
        on_tick: Callable[[], object],
        name: str = "",
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._interval = interval_seconds
        self._on_tick = on_tick
        self._name = name
        self._task: asyncio.Task[None] | None = None
        self._ticks = 0
        self._logger: structlog.BoundLogger = get_logger(__name__, cache=name)

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Arm the timer on the running event loop (no-op if already armed)."""
        if self._task is not None:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name=f"querycache-timer-{self._name}"
        )
        self._logger.debug("refresh_timer_armed", interval_seconds=round(self._interval, 3))

    def cancel(self) -> bool:
        """Cancel the timer.  Returns ``True`` if it was running."""
        if self._task is None or self._task.done():
            return False
        self._task.cancel()
        self._logger.debug("refresh_timer_cancelled", ticks=self._ticks)
        return True

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            self._ticks += 1
            try:
                self._on_tick()
            except Exception as exc:
                self._logger.error("refresh_tick_failed", error=str(exc))
