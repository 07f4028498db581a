"""Deterministic cache-key and fingerprint derivation.

Two derivations are provided, both pure functions of a
:class:`~reqpipe.models.RequestConfig`:

* :func:`generate_cache_key` -- the default key for response caching,
  ``"{METHOD}:{path}{?query}"``. Headers and body are deliberately left
  out; endpoints whose responses vary by header or body need a custom key
  function.
* :func:`hash_request` -- the fingerprint used for idempotency. It covers
  URL, method, headers (sorted by name), body and query parameters, and
  compresses them with :func:`simple_hash` into a short base-36 string.

The fingerprint lives in a 32-bit space. Two different requests can
collide; that risk is accepted and not corrected.
"""

from __future__ import annotations

import json
import struct
from typing import Any

import httpx

from reqpipe.models import RequestConfig

DEFAULT_ORIGIN = "http://localhost"
"""Origin that relative request URLs are resolved against for cache keys."""

PART_DELIMITER = "|"

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36_DIGITS[rem])
    return "".join(reversed(digits))


def simple_hash(text: str) -> str:
    """Hash *text* with the 32-bit ``h = h * 31 + unit`` rolling hash.

    The hash runs over UTF-16 code units and wraps to a signed 32-bit
    integer after every step. The absolute value is rendered in base 36.

    Example::

        >>> simple_hash("a")
        '2p'
    """
    encoded = text.encode("utf-16-le")
    units = struct.unpack(f"<{len(encoded) // 2}H", encoded)
    h = 0
    for unit in units:
        h = (h * 31 + unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return _to_base36(abs(h))


def _serialise(value: Any) -> str:
    """JSON-encode *value* compactly, falling back to ``str()``."""
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError):
        # Circular references and non-JSON types.
        return str(value)


def hash_request(config: RequestConfig) -> str:
    """Return the idempotency fingerprint of *config*.

    Header order does not matter; body and parameter differences do.
    """
    parts: list[str] = [config.url, config.method.value]

    for name in sorted(config.headers):
        parts.append(f"{name}:{config.headers[name]}")

    if config.data:
        parts.append(_serialise(config.data))

    if config.params:
        parts.append(_serialise(config.params))

    return simple_hash(PART_DELIMITER.join(parts))


def generate_cache_key(config: RequestConfig, base_url: str = DEFAULT_ORIGIN) -> str:
    """Return the default cache key ``"{METHOD}:{path}{?query}"`` for *config*.

    The URL is resolved against *base_url* so relative and absolute URLs
    for the same resource produce the same key. ``config.params`` are
    merged into the query string in sorted order.

    Example::

        >>> generate_cache_key(RequestConfig(url="/api/user?page=1"))
        'GET:/api/user?page=1'
    """
    method = config.method.value
    try:
        url = httpx.URL(base_url).join(config.url)
        if config.params:
            url = url.copy_merge_params(dict(sorted(config.params.items())))
    except (httpx.InvalidURL, TypeError, ValueError):
        return f"{method}:{config.url}"
    return f"{method}:{url.raw_path.decode('ascii')}"
