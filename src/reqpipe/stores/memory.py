"""Volatile in-process cache store."""

from __future__ import annotations

import asyncio
from typing import Any, Optional

from reqpipe.stores.base import CacheEntry, CacheStore, Clock


class MemoryStore(CacheStore):
    """Dictionary-backed store whose contents last as long as the process.

    Example::

        store = MemoryStore()
        await store.set("GET:/users", {"status": 200}, ttl=300)
        await store.get("GET:/users")
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        super().__init__(clock)
        self._entries: dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    async def has(self, key: str) -> bool:
        async with self._lock:
            return self._lookup(key) is not None

    async def get(self, key: str) -> Any:
        async with self._lock:
            entry = self._lookup(key)
            return entry.value if entry is not None else None

    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        async with self._lock:
            self._entries[key] = CacheEntry.create(value, ttl, self._clock())

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._entries.pop(key, None)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    def _lookup(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        return entry
