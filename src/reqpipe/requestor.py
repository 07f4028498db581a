"""The ``Requestor`` contract shared by transports and decorators.

A requestor turns a :class:`~reqpipe.models.RequestConfig` into a
:class:`~reqpipe.models.Response`. Subclasses implement :meth:`Requestor.request`
only; the verb helpers build a config and hand it to ``request`` so that no
verb can bypass the behaviour a decorator adds there.

:class:`RequestorDecorator` is the base for every decorator: it is
constructed around an explicit inner requestor and shares that requestor's
:class:`~reqpipe.events.EventEmitter`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from reqpipe.events import EventEmitter, EventHandler
from reqpipe.models import HTTPMethod, RequestConfig, Response, build_request_config


class Requestor(ABC):
    """Uniform async request-issuing contract.

    Args:
        emitter: Event emitter exposed through :meth:`on`, :meth:`off` and
            :meth:`emit`. A fresh one is created when omitted.
    """

    def __init__(self, emitter: Optional[EventEmitter] = None) -> None:
        self._emitter = emitter if emitter is not None else EventEmitter()

    @property
    def events(self) -> EventEmitter:
        """The emitter this requestor publishes to."""
        return self._emitter

    @abstractmethod
    async def request(self, config: RequestConfig) -> Response:
        """Send *config* and return the response.

        Raises:
            RequestError: When the call fails; ``error.response`` is set
                when the server replied with an error status.
        """

    async def get(self, url: str, **options: Any) -> Response:
        """Send a GET request. *options* become :class:`RequestConfig` fields."""
        return await self.request(build_request_config(HTTPMethod.GET, url, **options))

    async def post(self, url: str, data: Any = None, **options: Any) -> Response:
        """Send a POST request with body *data*."""
        return await self.request(build_request_config(HTTPMethod.POST, url, data, **options))

    async def put(self, url: str, data: Any = None, **options: Any) -> Response:
        """Send a PUT request with body *data*."""
        return await self.request(build_request_config(HTTPMethod.PUT, url, data, **options))

    async def delete(self, url: str, **options: Any) -> Response:
        """Send a DELETE request."""
        return await self.request(build_request_config(HTTPMethod.DELETE, url, **options))

    async def patch(self, url: str, data: Any = None, **options: Any) -> Response:
        """Send a PATCH request with body *data*."""
        return await self.request(build_request_config(HTTPMethod.PATCH, url, data, **options))

    def on(self, event: str, handler: EventHandler) -> None:
        """Subscribe *handler* to *event*."""
        self._emitter.on(event, handler)

    def off(self, event: str, handler: EventHandler) -> None:
        """Unsubscribe *handler* from *event*."""
        self._emitter.off(event, handler)

    def emit(self, event: str, *args: Any) -> None:
        """Publish *event* to every subscribed handler."""
        self._emitter.emit(event, *args)


class RequestorDecorator(Requestor):
    """A requestor that wraps another requestor and forwards to it.

    Args:
        inner: The requestor that receives forwarded calls.
    """

    def __init__(self, inner: Requestor) -> None:
        super().__init__(inner.events)
        self._inner = inner

    @property
    def inner(self) -> Requestor:
        """The wrapped requestor."""
        return self._inner

    async def request(self, config: RequestConfig) -> Response:
        return await self._inner.request(config)
