"""Cache notifications with callback-based listener dispatch.

Carries the two notifications a cache emits -- ``update`` after every
accepted Index swap and ``error`` after every failed refresh or snapshot
operation -- to the callbacks registered for them.

# ─── HOW NOTIFICATIONS WORK ────────────────────────────────────────────
#
#   QueryCache ──emit(UPDATE)──→ EventNotifier ──callback()──→ metrics hook
#              ──emit(ERROR, exc)─→            ──callback(exc)─→ alerting
#
#   - Listeners are keyed by event, each called in registration order.
#   - Both sync and async callbacks are supported.
#   - A listener that raises is logged and skipped; the others still run.
#   - Events are not replayed: a listener registered after an event fired
#     does not receive it.
#   - An ``error`` with no listener is logged at error level and dropped,
#     never raised into the refresh loop.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import structlog

from querycache.models.cache import CacheEvent
from querycache.utils.logging import get_logger


class EventNotifier:
    """Dispatches cache events to registered listeners."""

    def __init__(self, cache_name: str = "") -> None:
        self._cache_name = cache_name
        self._listeners: dict[CacheEvent, list[Callable]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__, cache=cache_name)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def register_listener(self, event: CacheEvent | str, callback: Callable) -> None:
        """Register *callback* for *event*.

        Parameters
        ----------
        event:
            ``CacheEvent.UPDATE`` / ``"update"`` (called with no arguments) or
            ``CacheEvent.ERROR`` / ``"error"`` (called with the exception).
        callback:
            A sync or async callable.  Registering the same callback twice
            for one event has no effect.
        """
        event = CacheEvent(event)
        listeners = self._listeners.setdefault(event, [])
        if callback not in listeners:
            listeners.append(callback)
            self._logger.debug(
                "listener_registered",
                cache_event=event.value,
                total_listeners=len(listeners),
            )

    def unregister_listener(self, event: CacheEvent | str, callback: Callable) -> None:
        """Remove a previously registered callback (no-op if absent)."""
        listeners = self._listeners.get(CacheEvent(event), [])
        if callback in listeners:
            listeners.remove(callback)
            self._logger.debug(
                "listener_unregistered",
                cache_event=CacheEvent(event).value,
                remaining_listeners=len(listeners),
            )

    def listener_count(self, event: CacheEvent | str) -> int:
        return len(self._listeners.get(CacheEvent(event), []))

    async def emit(self, event: CacheEvent | str, *args: Any) -> None:
        """Invoke every listener for *event* with *args*."""
        event = CacheEvent(event)
        listeners = list(self._listeners.get(event, []))

        if event is CacheEvent.ERROR:
            error = args[0] if args else None
            log = self._logger.warning if listeners else self._logger.error
            log(
                "cache_error" if listeners else "cache_error_unobserved",
                error=str(error),
                error_type=type(error).__name__,
            )

        for callback in listeners:
            try:
                result = callback(*args)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    cache_event=event.value,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
