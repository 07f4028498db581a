"""Concurrency-limiting decorator with FIFO admission.

:class:`ParallelRequestor` keeps at most ``max_count`` inner calls in
flight. Every request is appended to an unbounded queue and the queue is
drained whenever a slot may be free: after an enqueue and after each
settled call. A freed slot always goes to the longest-waiting item, so
admission follows arrival order. Completion order is whatever the inner
requestor produces.

Retries issued by an outer :class:`~reqpipe.decorators.RetryRequestor`
arrive as new requests and queue behind everything already waiting.

There is no queue-level timeout: a call that never settles holds its slot
until the transport gives up on it.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass

from reqpipe.models import RequestConfig, Response
from reqpipe.requestor import Requestor, RequestorDecorator

logger = logging.getLogger(__name__)


@dataclass
class QueueItem:
    """A waiting request and the future its caller awaits."""

    config: RequestConfig
    future: asyncio.Future[Response]


class ParallelRequestor(RequestorDecorator):
    """Admit at most *max_count* concurrent inner calls.

    Args:
        inner: Requestor whose concurrency is limited.
        max_count: Maximum number of in-flight inner calls.

    Example::

        limited = ParallelRequestor(transport, max_count=4)
        await asyncio.gather(*(limited.get(f"/items/{i}") for i in range(20)))
    """

    def __init__(self, inner: Requestor, max_count: int = 4) -> None:
        super().__init__(inner)
        if max_count < 1:
            raise ValueError(f"max_count must be >= 1, got {max_count}")
        self._max_count = max_count
        self._queue: deque[QueueItem] = deque()
        self._running = 0
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def max_count(self) -> int:
        return self._max_count

    @property
    def running(self) -> int:
        """Number of inner calls currently in flight."""
        return self._running

    @property
    def pending(self) -> int:
        """Number of requests waiting for a slot."""
        return len(self._queue)

    async def request(self, config: RequestConfig) -> Response:
        future: asyncio.Future[Response] = asyncio.get_running_loop().create_future()
        self._queue.append(QueueItem(config, future))
        self._drain()
        return await future

    def _drain(self) -> None:
        while self._running < self._max_count and self._queue:
            item = self._queue.popleft()
            if item.future.done():
                # Caller was cancelled while waiting.
                continue
            self._running += 1
            logger.debug(
                "Admitted %s %s (%d/%d in flight, %d queued)",
                item.config.method.value, item.config.url,
                self._running, self._max_count, len(self._queue),
            )
            task = asyncio.ensure_future(self._dispatch(item))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _dispatch(self, item: QueueItem) -> None:
        try:
            response = await self._inner.request(item.config)
        except asyncio.CancelledError:
            if not item.future.done():
                item.future.cancel()
            raise
        except Exception as exc:
            if not item.future.done():
                item.future.set_exception(exc)
        else:
            if not item.future.done():
                item.future.set_result(response)
        finally:
            self._running -= 1
            self._drain()
