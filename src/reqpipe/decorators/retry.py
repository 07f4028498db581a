"""Retry-with-backoff decorator.

:class:`RetryRequestor` re-issues a failed call while a predicate allows
it, waiting ``delay * (attempt + 1)`` seconds before retry number
``attempt + 1``. With ``max_count`` retries a request is tried at most
``max_count + 1`` times. When the budget runs out or the predicate
declines, the last error is raised unchanged so callers see the same
shape as a first-attempt failure.

Every failure is logged and published as a ``retry`` event before the
next attempt, so flaky dependencies stay visible even when the caller
eventually succeeds.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from reqpipe.events import RETRY
from reqpipe.models import RequestConfig, Response
from reqpipe.requestor import Requestor, RequestorDecorator

logger = logging.getLogger(__name__)

RetryPredicate = Callable[[BaseException, int], bool]
Sleep = Callable[[float], Awaitable[Any]]


def default_should_retry(error: BaseException, attempt: int) -> bool:
    """Retry network failures (no response) and 5xx responses.

    Args:
        error: The exception raised by the inner requestor.
        attempt: Zero-based index of the attempt that failed.
    """
    response = getattr(error, "response", None)
    if response is None:
        return True
    status = getattr(response, "status", None)
    return isinstance(status, int) and 500 <= status < 600


class RetryRequestor(RequestorDecorator):
    """Retry failed calls with linear backoff.

    Args:
        inner: Requestor whose failures are retried.
        max_count: Retries allowed after the first attempt.
        delay: Base delay in seconds.
        should_retry: Predicate ``(error, attempt) -> bool``. Defaults to
            :func:`default_should_retry`.
        sleep: Awaitable sleep used between attempts.

    Example::

        retrying = RetryRequestor(transport, max_count=3, delay=0.5)
        await retrying.get("/flaky")   # waits 0.5 s, 1 s, 1.5 s between tries
    """

    def __init__(
        self,
        inner: Requestor,
        max_count: int = 3,
        delay: float = 1.0,
        should_retry: Optional[RetryPredicate] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        super().__init__(inner)
        if max_count < 0:
            raise ValueError(f"max_count must be >= 0, got {max_count}")
        self._max_count = max_count
        self._delay = delay
        self._should_retry = should_retry or default_should_retry
        self._sleep = sleep

    @property
    def max_count(self) -> int:
        return self._max_count

    async def request(self, config: RequestConfig) -> Response:
        attempt = 0
        while True:
            try:
                return await self._inner.request(config)
            except Exception as exc:
                if attempt >= self._max_count or not self._should_retry(exc, attempt):
                    raise

                attempt += 1
                wait = self._delay * attempt
                logger.info(
                    "Retrying %s %s (%d/%d) in %.2fs: %s",
                    config.method.value, config.url, attempt, self._max_count, wait, exc,
                )
                self.emit(RETRY, exc, attempt, config)
                await self._sleep(wait)
