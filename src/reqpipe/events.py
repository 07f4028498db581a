"""Explicit pub/sub used for lifecycle observability.

Every :class:`~reqpipe.requestor.Requestor` exposes an
:class:`EventEmitter` through ``on`` / ``off`` / ``emit``. The transport
owns the emitter; decorators share their inner requestor's emitter so a
handler registered anywhere in a chain sees the events of the whole chain.

Handlers run in registration order. A handler that raises is logged and
skipped so that observability can never fail a request. Handlers that
return an awaitable are scheduled on the running event loop.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

EventHandler = Callable[..., Any]

# Transport lifecycle
BEFORE_REQUEST = "before_request"
RESPONSE = "response"
RESPONSE_ERROR = "response_error"
REQUEST_ERROR = "request_error"

# Decorator lifecycle
CACHE_HIT = "cache_hit"
STORE_ERROR = "store_error"
RETRY = "retry"
DUPLICATE = "duplicate"


class EventEmitter:
    """Map of event name to an ordered set of handlers."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}
        self._pending: set[asyncio.Task[Any]] = set()

    def on(self, event: str, handler: EventHandler) -> None:
        """Register *handler* for *event*. Registering twice is a no-op."""
        handlers = self._handlers.setdefault(event, [])
        if handler not in handlers:
            handlers.append(handler)

    def off(self, event: str, handler: EventHandler) -> None:
        """Unregister *handler*; unknown handlers are ignored."""
        handlers = self._handlers.get(event)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def emit(self, event: str, *args: Any) -> None:
        """Call every handler registered for *event* with *args*."""
        for handler in list(self._handlers.get(event, ())):
            try:
                result = handler(*args)
            except Exception:
                logger.exception("Error in event handler for %r", event)
                continue
            if inspect.isawaitable(result):
                self._schedule(event, result)

    def handlers(self, event: str) -> list[EventHandler]:
        """Return a snapshot of the handlers registered for *event*."""
        return list(self._handlers.get(event, ()))

    def _schedule(self, event: str, awaitable: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No running loop to drive the handler.
            logger.warning("Dropped async handler for %r: no running event loop", event)
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return
        task = asyncio.ensure_future(awaitable, loop=loop)
        self._pending.add(task)
        task.add_done_callback(self._settled(event))

    def _settled(self, event: str) -> Callable[[asyncio.Task[Any]], None]:
        def _done(task: asyncio.Task[Any]) -> None:
            self._pending.discard(task)
            if not task.cancelled() and task.exception() is not None:
                logger.error(
                    "Error in async event handler for %r",
                    event,
                    exc_info=task.exception(),
                )

        return _done
