"""Durable cache store backed by :mod:`diskcache`.

Entries survive process restarts. Every key is namespaced with a string
prefix so the store can share a :class:`diskcache.Cache` directory with
unrelated data, and :meth:`DiskStore.clear` only touches its own keys.

Records are stored as JSON text ``{"value": ..., "expire_at": ...}``.
Expiry is tracked in the record rather than through diskcache's own
``expire=`` so that the store's clock decides freshness.

The store never raises from its public operations: backend errors and
malformed records are logged, malformed records are removed, and the
entry is reported as absent.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

import diskcache

from reqpipe.stores.base import CacheEntry, CacheStore, Clock

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "request_cache_"


def _decode(raw: Any) -> CacheEntry:
    """Parse a stored record, raising ``ValueError`` when it is malformed."""
    if not isinstance(raw, str):
        raise ValueError(f"expected JSON text, got {type(raw).__name__}")
    record = json.loads(raw)
    if not isinstance(record, dict) or "value" not in record:
        raise ValueError("record has no 'value' field")
    expire_at = record.get("expire_at")
    if expire_at is not None and not isinstance(expire_at, (int, float)):
        raise ValueError(f"invalid expire_at: {expire_at!r}")
    return CacheEntry(value=record["value"], expire_at=expire_at)


class DiskStore(CacheStore):
    """Prefix-namespaced persistent store.

    Args:
        directory: Directory of the underlying :class:`diskcache.Cache`.
        prefix: Namespace prepended to every key.
        clock: Returns the current time in seconds.

    Example::

        store = DiskStore(get_cache_dir() / "responses")
        await store.set("GET:/users", {"status": 200}, ttl=300)
        await store.close()
    """

    def __init__(
        self,
        directory: str | Path,
        prefix: str = DEFAULT_PREFIX,
        clock: Optional[Clock] = None,
    ) -> None:
        super().__init__(clock)
        self._directory = Path(directory)
        self._prefix = prefix
        self._cache: Optional[diskcache.Cache] = diskcache.Cache(str(self._directory))
        self._lock = asyncio.Lock()

    @property
    def directory(self) -> Path:
        """Directory of the underlying cache."""
        return self._directory

    @property
    def prefix(self) -> str:
        """Namespace prepended to every key."""
        return self._prefix

    # ------------------------------------------------------------------ #
    # CacheStore contract
    # ------------------------------------------------------------------ #

    async def has(self, key: str) -> bool:
        async with self._lock:
            return await asyncio.to_thread(self._load, key) is not None

    async def get(self, key: str) -> Any:
        async with self._lock:
            entry = await asyncio.to_thread(self._load, key)
            return entry.value if entry is not None else None

    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        async with self._lock:
            await asyncio.to_thread(self._store, key, value, ttl)

    async def delete(self, key: str) -> None:
        async with self._lock:
            await asyncio.to_thread(self._remove, self._storage_key(key))

    async def clear(self) -> None:
        async with self._lock:
            await asyncio.to_thread(self._clear)

    async def close(self) -> None:
        async with self._lock:
            if self._cache is not None:
                self._cache.close()
                self._cache = None

    # ------------------------------------------------------------------ #
    # Maintenance
    # ------------------------------------------------------------------ #

    async def sweep(self) -> int:
        """Delete expired and malformed entries, returning how many were removed."""
        async with self._lock:
            return await asyncio.to_thread(self._sweep)

    async def stats(self) -> dict[str, Any]:
        """Return ``directory``, ``prefix`` and ``size`` (number of own entries)."""
        async with self._lock:
            size = await asyncio.to_thread(lambda: len(self._own_keys()))
        return {
            "directory": str(self._directory),
            "prefix": self._prefix,
            "size": size,
        }

    # ------------------------------------------------------------------ #
    # Blocking helpers (run in a worker thread)
    # ------------------------------------------------------------------ #

    def _storage_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _backend(self) -> diskcache.Cache:
        if self._cache is None:
            raise RuntimeError(f"DiskStore at {self._directory} is closed")
        return self._cache

    def _load(self, key: str) -> Optional[CacheEntry]:
        entry, _ = self._inspect(self._storage_key(key))
        return entry

    def _inspect(self, storage_key: str) -> tuple[Optional[CacheEntry], bool]:
        """Return the live entry under *storage_key* and whether a stale record was deleted."""
        try:
            raw = self._backend().get(storage_key)
        except Exception as exc:
            logger.warning("DiskStore.get failed for %r: %s", storage_key, exc)
            return None, False
        if raw is None:
            return None, False

        try:
            entry = _decode(raw)
        except ValueError as exc:
            logger.warning("Discarding malformed cache record %r: %s", storage_key, exc)
            return None, self._remove(storage_key)

        if entry.is_expired(self._clock()):
            return None, self._remove(storage_key)
        return entry, False

    def _store(self, key: str, value: Any, ttl: Optional[float]) -> None:
        entry = CacheEntry.create(value, ttl, self._clock())
        try:
            record = json.dumps({"value": entry.value, "expire_at": entry.expire_at})
            self._backend().set(self._storage_key(key), record)
        except Exception as exc:
            logger.warning("DiskStore.set failed for %r: %s", key, exc)

    def _remove(self, storage_key: str) -> bool:
        try:
            return bool(self._backend().delete(storage_key))
        except Exception as exc:
            logger.warning("DiskStore.delete failed for %r: %s", storage_key, exc)
            return False

    def _own_keys(self) -> list[str]:
        try:
            return [
                k for k in self._backend().iterkeys()
                if isinstance(k, str) and k.startswith(self._prefix)
            ]
        except Exception as exc:
            logger.warning("DiskStore key enumeration failed: %s", exc)
            return []

    def _clear(self) -> None:
        for storage_key in self._own_keys():
            self._remove(storage_key)

    def _sweep(self) -> int:
        # Only records this call deleted count; read failures are skipped.
        return sum(1 for storage_key in self._own_keys() if self._inspect(storage_key)[1])
