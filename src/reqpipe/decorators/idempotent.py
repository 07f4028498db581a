"""Duplicate-suppression decorator.

:class:`IdempotentRequestor` is a :class:`~reqpipe.decorators.CacheRequestor`
keyed by the request fingerprint (:func:`~reqpipe.keys.hash_request`) with
a short, volatile window. A request identical to one answered within the
window is served the earlier response instead of reaching the server
again, which collapses double submissions such as repeated form posts.

Identical requests that arrive while the first one is still in flight
wait for that call and share its outcome.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from reqpipe.decorators.cache import CacheRequestor, KeyFunc
from reqpipe.events import DUPLICATE
from reqpipe.keys import hash_request
from reqpipe.models import RequestConfig, Response
from reqpipe.requestor import Requestor
from reqpipe.stores import MemoryStore

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 60.0


class IdempotentRequestor(CacheRequestor):
    """Send each distinct request at most once per window.

    Args:
        inner: Requestor that receives first occurrences.
        gen_key: Custom fingerprint function. Defaults to
            :func:`~reqpipe.keys.hash_request`.
        duration: Deduplication window in seconds.

    Example::

        once = IdempotentRequestor(transport)
        await asyncio.gather(
            once.post("/orders", {"sku": 1}),
            once.post("/orders", {"sku": 1}),
        )  # a single POST reaches the server
    """

    def __init__(
        self,
        inner: Requestor,
        gen_key: Optional[KeyFunc] = None,
        duration: float = DEFAULT_WINDOW,
    ) -> None:
        super().__init__(
            inner,
            key=gen_key or hash_request,
            persist=False,
            duration=duration,
            store=MemoryStore(),
        )
        self._in_flight: dict[str, asyncio.Future[Response]] = {}

    async def request(self, config: RequestConfig) -> Response:
        key = self.key_for(config)

        pending = self._in_flight.get(key)
        if pending is not None:
            logger.debug("Joining in-flight duplicate: %s", key)
            self.emit(DUPLICATE, key, config)
            return await asyncio.shield(pending)

        task = asyncio.ensure_future(super().request(config))
        self._in_flight[key] = task

        def _release(done: asyncio.Future[Response]) -> None:
            if self._in_flight.get(key) is done:
                del self._in_flight[key]

        task.add_done_callback(_release)
        return await asyncio.shield(task)
