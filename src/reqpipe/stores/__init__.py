"""Cache stores with TTL semantics.

Two interchangeable backends implement :class:`CacheStore`:

* :class:`MemoryStore` -- volatile, in-process, lost on restart.
* :class:`DiskStore` -- durable, :mod:`diskcache`-backed, namespaced by
  a key prefix.

:func:`create_store` picks one from a ``persist`` flag, the way the cache
decorator does.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from reqpipe.stores.base import CacheEntry, CacheStore, Clock
from reqpipe.stores.disk import DEFAULT_PREFIX, DiskStore
from reqpipe.stores.memory import MemoryStore


def create_store(
    persist: bool,
    directory: Optional[str | Path] = None,
    prefix: Optional[str] = None,
    clock: Optional[Clock] = None,
) -> CacheStore:
    """Return a new store: a :class:`DiskStore` when *persist*, else a :class:`MemoryStore`.

    Args:
        persist: Select the durable backend.
        directory: Durable store directory. Defaults to
            ``<cache dir>/responses``.
        prefix: Durable key namespace. Defaults to ``request_cache_``.
        clock: Time source for expiry.
    """
    if not persist:
        return MemoryStore(clock=clock)

    if directory is None:
        from reqpipe.config import get_cache_dir

        directory = get_cache_dir() / "responses"
    return DiskStore(directory, prefix=prefix or DEFAULT_PREFIX, clock=clock)


__all__ = [
    "CacheEntry",
    "CacheStore",
    "DEFAULT_PREFIX",
    "DiskStore",
    "MemoryStore",
    "create_store",
]
