"""Asynchronous ``httpx`` transport implementing the ``Requestor`` contract.

:class:`HttpxRequestor` wraps :class:`httpx.AsyncClient`. For each
:class:`~reqpipe.models.RequestConfig` it:

1. publishes ``before_request``;
2. sends the request, encoding ``data`` as JSON unless it is already
   ``str``/``bytes``;
3. converts the reply into a :class:`~reqpipe.models.Response`;
4. publishes ``response`` for statuses below 400, or raises the typed
   :class:`~reqpipe.exceptions.RequestError` for the status family after
   publishing ``response_error``.

Network-level failures (connection refused, DNS, timeouts) become
:class:`~reqpipe.exceptions.ConnectionError_` with ``response=None``.

The transport does not retry; wrap it in
:class:`~reqpipe.decorators.RetryRequestor` for that.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx

from reqpipe.events import BEFORE_REQUEST, REQUEST_ERROR, RESPONSE, RESPONSE_ERROR, EventEmitter
from reqpipe.exceptions import ConnectionError_, RequestError, error_for_response
from reqpipe.models import PipelineConfig, RequestConfig, Response
from reqpipe.requestor import Requestor

logger = logging.getLogger(__name__)


def extract_response_data(response: httpx.Response) -> Any:
    """Extract the body from an HTTP response.

    Attempts JSON first and falls back to the raw text. Returns ``None``
    for responses with no content.
    """
    if not response.content:
        return None
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.text


def _error_message(status: int, data: Any) -> str:
    """Build ``"HTTP <status>: <detail>"`` from a decoded error body."""
    if isinstance(data, dict):
        detail = data.get("message") or data.get("error") or data.get("detail") or ""
    elif data is None:
        detail = ""
    else:
        detail = str(data)[:200]
    prefix = f"HTTP {status}"
    return f"{prefix}: {detail}" if detail else prefix


class HttpxRequestor(Requestor):
    """Network transport backed by :class:`httpx.AsyncClient`.

    Use as an async context manager, or pass an already-open *client*
    whose lifecycle the caller manages.

    Args:
        base_url: Base URL relative request URLs are joined to.
        timeout: Default timeout in seconds; ``config.timeout`` overrides
            it per request.
        headers: Headers sent with every request.
        client: Pre-built client. When given, *base_url*, *timeout* and
            *headers* are ignored and :meth:`aclose` leaves it open.
        transport: Optional :class:`httpx.AsyncBaseTransport`, e.g.
            :class:`httpx.MockTransport` in tests.
        emitter: Event emitter to publish lifecycle events to.

    Example::

        async with HttpxRequestor(base_url="https://api.example.com") as transport:
            response = await transport.get("/users", params={"page": 1})
    """

    def __init__(
        self,
        base_url: str = "",
        timeout: float = 30.0,
        headers: Optional[dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        emitter: Optional[EventEmitter] = None,
    ) -> None:
        super().__init__(emitter)
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers=headers,
            transport=transport,
            follow_redirects=True,
        )

    @classmethod
    def from_config(
        cls,
        config: PipelineConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> HttpxRequestor:
        """Build a transport using the base URL, timeout and headers in *config*."""
        return cls(
            base_url=config.base_url or "",
            timeout=config.timeout,
            headers=config.headers,
            transport=transport,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        """The underlying client."""
        return self._client

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> HttpxRequestor:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying client if this requestor created it."""
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------ #
    # Requestor contract
    # ------------------------------------------------------------------ #

    async def request(self, config: RequestConfig) -> Response:
        self.emit(BEFORE_REQUEST, config)

        try:
            raw = await self._client.request(**self._build_kwargs(config))
        except httpx.HTTPError as exc:
            logger.debug("Transport failure for %s %s: %s", config.method.value, config.url, exc)
            failure = ConnectionError_(f"Request failed: {exc}", config=config)
            self.emit(REQUEST_ERROR, failure)
            self.emit(RESPONSE_ERROR, failure)
            raise failure from exc

        response = self._to_response(raw, config)

        if raw.status_code >= 400:
            error: RequestError = error_for_response(
                response, _error_message(raw.status_code, response.data)
            )
            self.emit(RESPONSE_ERROR, error)
            raise error

        self.emit(RESPONSE, response)
        return response

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _build_kwargs(self, config: RequestConfig) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "method": config.method.value,
            "url": config.url,
        }
        if config.headers:
            kwargs["headers"] = dict(config.headers)
        if config.params:
            kwargs["params"] = dict(config.params)
        if config.timeout is not None:
            kwargs["timeout"] = config.timeout

        if isinstance(config.data, (str, bytes)):
            kwargs["content"] = config.data
        elif config.data is not None:
            kwargs["json"] = config.data
        return kwargs

    def _to_response(self, raw: httpx.Response, config: RequestConfig) -> Response:
        return Response(
            data=extract_response_data(raw),
            status=raw.status_code,
            status_text=raw.reason_phrase or "",
            headers=dict(raw.headers.items()),
            config=config,
        )
