"""Response caching decorator.

:class:`CacheRequestor` derives a key for each request and answers from
its :class:`~reqpipe.stores.CacheStore` when a fresh, valid entry exists.
A hit is a full short-circuit: the inner requestor is not called at all.
On a miss the request is forwarded and a successful response is stored;
failures propagate unchanged and are never cached.

The store holds :meth:`~reqpipe.models.Response.to_plain` projections,
never the request config, which may carry values that cannot be
serialised.

Store problems are soft failures. They are logged and emitted as
``store_error`` and the request continues to the inner requestor as if
the entry were absent.
"""

from __future__ import annotations

import inspect
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional, Union

from pydantic import ValidationError

from reqpipe.events import CACHE_HIT, STORE_ERROR
from reqpipe.keys import generate_cache_key
from reqpipe.models import RequestConfig, Response
from reqpipe.requestor import Requestor, RequestorDecorator
from reqpipe.stores import CacheStore, create_store

logger = logging.getLogger(__name__)

KeyFunc = Callable[[RequestConfig], str]
ValidityCheck = Callable[[str, RequestConfig], Union[bool, Awaitable[bool]]]

DEFAULT_DURATION = 300.0


def _always_valid(key: str, config: RequestConfig) -> bool:
    return True


class CacheRequestor(RequestorDecorator):
    """Serve repeated requests from a TTL cache.

    Args:
        inner: Requestor that handles cache misses.
        key: Key function. Defaults to
            :func:`~reqpipe.keys.generate_cache_key`.
        persist: Use a durable :class:`~reqpipe.stores.DiskStore` instead
            of a :class:`~reqpipe.stores.MemoryStore`. Ignored when
            *store* is given.
        duration: Lifetime of stored responses in seconds.
        is_valid: Extra predicate ``(key, config) -> bool`` consulted on
            every hit; may be a coroutine function.
        store: Explicit store instance. Each decorator owns its store
            unless one is shared deliberately.
        directory: Directory for the durable store.

    Example::

        cached = CacheRequestor(transport, duration=60)
        await cached.get("/users")   # forwarded
        await cached.get("/users")   # served from cache
    """

    def __init__(
        self,
        inner: Requestor,
        key: Optional[KeyFunc] = None,
        persist: bool = False,
        duration: float = DEFAULT_DURATION,
        is_valid: Optional[ValidityCheck] = None,
        store: Optional[CacheStore] = None,
        directory: Optional[str | Path] = None,
    ) -> None:
        super().__init__(inner)
        self._key = key or generate_cache_key
        self._duration = duration
        self._is_valid = is_valid or _always_valid
        self._store = store if store is not None else create_store(persist, directory)

    @property
    def store(self) -> CacheStore:
        """The store holding cached projections."""
        return self._store

    @property
    def duration(self) -> float:
        """Lifetime of stored responses in seconds."""
        return self._duration

    def key_for(self, config: RequestConfig) -> str:
        """Return the cache key this decorator uses for *config*."""
        return self._key(config)

    async def request(self, config: RequestConfig) -> Response:
        key = self._key(config)

        cached = await self._lookup(key, config)
        if cached is not None:
            logger.debug("Cache hit: %s", key)
            self.emit(CACHE_HIT, key, cached)
            return cached

        response = await self._inner.request(config)
        await self._save(key, response)
        return response

    async def invalidate(self, config: RequestConfig) -> None:
        """Drop the cached entry for *config*, if any."""
        key = self._key(config)
        try:
            await self._store.delete(key)
        except Exception as exc:
            self._soft_failure("delete", key, exc)

    async def clear(self) -> None:
        """Drop every cached entry."""
        try:
            await self._store.clear()
        except Exception as exc:
            self._soft_failure("clear", None, exc)

    async def _lookup(self, key: str, config: RequestConfig) -> Optional[Response]:
        try:
            if not await self._store.has(key):
                return None
        except Exception as exc:
            self._soft_failure("has", key, exc)
            return None

        valid = self._is_valid(key, config)
        if inspect.isawaitable(valid):
            valid = await valid
        if not valid:
            return None

        try:
            plain = await self._store.get(key)
        except Exception as exc:
            self._soft_failure("get", key, exc)
            return None
        if not plain:
            return None

        try:
            return Response.from_plain(plain, config)
        except (KeyError, TypeError, AttributeError, ValidationError) as exc:
            self._soft_failure("decode", key, exc)
            return None

    async def _save(self, key: str, response: Response) -> None:
        try:
            await self._store.set(key, response.to_plain(), self._duration)
        except Exception as exc:
            self._soft_failure("set", key, exc)

    def _soft_failure(self, operation: str, key: Optional[str], exc: Exception) -> None:
        logger.warning("Cache store %s failed for %r: %s", operation, key, exc)
        self.emit(STORE_ERROR, exc, key)

    async def aclose(self) -> None:
        """Close the owned store."""
        await self._store.close()
