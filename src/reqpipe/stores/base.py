"""The :class:`CacheStore` contract and the entry bookkeeping shared by backends."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

Clock = Callable[[], float]


@dataclass(frozen=True)
class CacheEntry:
    """A stored value and the absolute time after which it is stale.

    Attributes:
        value: The stored value.
        expire_at: Absolute timestamp in seconds, or ``None`` to keep the
            entry until it is deleted explicitly.
    """

    value: Any
    expire_at: Optional[float] = None

    @classmethod
    def create(cls, value: Any, ttl: Optional[float], now: float) -> CacheEntry:
        """Build an entry that expires *ttl* seconds after *now*."""
        return cls(value=value, expire_at=None if ttl is None else now + ttl)

    def is_expired(self, now: float) -> bool:
        """Return ``True`` once *now* is strictly past :attr:`expire_at`."""
        return self.expire_at is not None and now > self.expire_at


class CacheStore(ABC):
    """Key/value table with per-entry expiry.

    Expiry is lazy: ``has`` and ``get`` delete a stale entry when they
    find it and report it as absent. Implementations serialise their own
    mutations; callers never need external locking.

    Args:
        clock: Returns the current time in seconds. Defaults to
            :func:`time.time`.
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock: Clock = clock or time.time

    @abstractmethod
    async def has(self, key: str) -> bool:
        """Return ``True`` if a fresh entry exists for *key*."""

    @abstractmethod
    async def get(self, key: str) -> Any:
        """Return the fresh value stored under *key*, or ``None``."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store *value* under *key* for *ttl* seconds (forever when ``None``)."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove *key*; missing keys are ignored."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every entry owned by this store."""

    async def close(self) -> None:
        """Release backend resources. The default has nothing to release."""
