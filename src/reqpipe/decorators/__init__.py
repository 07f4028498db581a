"""Behavioural decorators for :class:`~reqpipe.requestor.Requestor`.

Each decorator wraps an explicit inner requestor and adds one behaviour:

* :class:`CacheRequestor` -- answer repeated requests from a TTL cache.
* :class:`RetryRequestor` -- retry failures with linear backoff.
* :class:`ParallelRequestor` -- cap in-flight calls, FIFO admission.
* :class:`IdempotentRequestor` -- suppress duplicate submissions.

Decorators know nothing about each other, so any nesting order works.
Order changes behaviour: a cache outside a retry never retries hits,
while a cache inside a retry is consulted on every attempt.
"""

from reqpipe.decorators.cache import CacheRequestor
from reqpipe.decorators.idempotent import IdempotentRequestor
from reqpipe.decorators.parallel import ParallelRequestor, QueueItem
from reqpipe.decorators.retry import RetryRequestor, default_should_retry

__all__ = [
    "CacheRequestor",
    "IdempotentRequestor",
    "ParallelRequestor",
    "QueueItem",
    "RetryRequestor",
    "default_should_retry",
]
