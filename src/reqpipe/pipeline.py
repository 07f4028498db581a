"""Composition root -- assembles decorators around a transport.

:func:`build_pipeline` nests decorators in the recommended order,
innermost first::

    transport -> ParallelRequestor -> RetryRequestor -> CacheRequestor -> IdempotentRequestor

* The concurrency limit sits next to the transport, so every network
  attempt, retries included, queues for a slot.
* Retries wrap the limit, so a retry re-enters the queue as a new item.
* The cache sits outside the retries, so hits never touch the queue and
  only the eventual success is stored.
* Duplicate suppression is outermost and uses its own volatile store,
  keeping its keys apart from the cache's.

Layers switched off in :class:`~reqpipe.models.PipelineConfig` are
skipped. Nothing enforces this order; callers can nest decorators by hand.

:class:`Pipeline` packages a built chain with the resources it owns
(transport client, durable store) behind an async context manager.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from pathlib import Path
from typing import Iterator, Optional

from reqpipe.decorators import (
    CacheRequestor,
    IdempotentRequestor,
    ParallelRequestor,
    RetryRequestor,
)
from reqpipe.decorators.retry import Sleep
from reqpipe.keys import DEFAULT_ORIGIN, generate_cache_key
from reqpipe.models import PipelineConfig, RequestConfig, Response
from reqpipe.requestor import Requestor, RequestorDecorator
from reqpipe.stores import CacheStore, create_store

logger = logging.getLogger(__name__)


def build_pipeline(
    transport: Requestor,
    config: Optional[PipelineConfig] = None,
    cache_store: Optional[CacheStore] = None,
    cache_directory: Optional[str | Path] = None,
    sleep: Sleep = asyncio.sleep,
) -> Requestor:
    """Wrap *transport* in the decorators enabled by *config*.

    Args:
        transport: Innermost requestor that performs network calls.
        config: Pipeline settings; defaults to :class:`PipelineConfig`.
        cache_store: Store for the cache layer. Built from
            ``config.cache`` when omitted.
        cache_directory: Directory for a durable cache store.
        sleep: Sleep used by the retry layer between attempts.

    Returns:
        The outermost requestor, or *transport* itself when every layer
        is disabled.
    """
    config = config or PipelineConfig()
    requestor = transport

    if config.parallel.enabled:
        requestor = ParallelRequestor(requestor, max_count=config.parallel.max_count)

    if config.retry.enabled:
        requestor = RetryRequestor(
            requestor,
            max_count=config.retry.max_count,
            delay=config.retry.delay,
            sleep=sleep,
        )

    if config.cache.enabled:
        store = cache_store if cache_store is not None else create_store(
            config.cache.persist,
            directory=cache_directory,
            prefix=config.cache.prefix,
        )
        requestor = CacheRequestor(
            requestor,
            key=functools.partial(
                generate_cache_key, base_url=config.base_url or DEFAULT_ORIGIN
            ),
            duration=config.cache.duration,
            store=store,
        )

    if config.idempotent.enabled:
        requestor = IdempotentRequestor(requestor, duration=config.idempotent.duration)

    logger.debug("Built pipeline: %s", " -> ".join(type(r).__name__ for r in iter_layers(requestor)))
    return requestor


def iter_layers(requestor: Requestor) -> Iterator[Requestor]:
    """Yield *requestor* and every requestor it wraps, outermost first."""
    current: Optional[Requestor] = requestor
    while current is not None:
        yield current
        current = current.inner if isinstance(current, RequestorDecorator) else None


class Pipeline(RequestorDecorator):
    """A built chain that owns its transport and stores.

    Args:
        transport: Innermost requestor. Closed by :meth:`aclose` when it
            has an ``aclose`` method.
        config: Pipeline settings.
        **kwargs: Forwarded to :func:`build_pipeline`.

    Example::

        async with Pipeline.from_config(resolve_config()) as pipeline:
            response = await pipeline.get("/users")
    """

    def __init__(
        self,
        transport: Requestor,
        config: Optional[PipelineConfig] = None,
        **kwargs: object,
    ) -> None:
        self._config = config or PipelineConfig()
        self._transport = transport
        super().__init__(build_pipeline(transport, self._config, **kwargs))  # type: ignore[arg-type]

    @classmethod
    def from_config(
        cls,
        config: PipelineConfig,
        transport: Optional[Requestor] = None,
        **kwargs: object,
    ) -> Pipeline:
        """Build a pipeline over an :class:`~reqpipe.transport.HttpxRequestor` for *config*."""
        if transport is None:
            from reqpipe.transport import HttpxRequestor

            transport = HttpxRequestor.from_config(config)
        return cls(transport, config, **kwargs)

    @property
    def config(self) -> PipelineConfig:
        return self._config

    @property
    def transport(self) -> Requestor:
        return self._transport

    def layers(self) -> list[Requestor]:
        """Return the chain below this pipeline, outermost first."""
        return list(iter_layers(self._inner))

    def find(self, kind: type[Requestor]) -> Optional[Requestor]:
        """Return the first layer that is an instance of *kind*."""
        for layer in iter_layers(self._inner):
            if isinstance(layer, kind):
                return layer
        return None

    async def request(self, config: RequestConfig) -> Response:
        return await self._inner.request(config)

    async def aclose(self) -> None:
        """Close cache stores and the transport."""
        for layer in iter_layers(self._inner):
            if isinstance(layer, CacheRequestor):
                await layer.aclose()
        closer = getattr(self._transport, "aclose", None)
        if closer is not None:
            await closer()

    async def __aenter__(self) -> Pipeline:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()
