"""``reqpipe cache`` -- inspect and prune the durable response store.

Operates on the :class:`~reqpipe.stores.DiskStore` under
``<cache dir>/responses`` that pipelines use when ``cache.persist`` is
enabled.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import typer

from reqpipe.config import get_cache_dir, resolve_config
from reqpipe.output import info, print_table, success
from reqpipe.stores import DiskStore

cache_app = typer.Typer(no_args_is_help=True)


def _open_store() -> DiskStore:
    config = resolve_config()
    return DiskStore(get_cache_dir() / "responses", prefix=config.cache.prefix)


def _with_store(action: Callable[[DiskStore], Awaitable[Any]]) -> Any:
    async def _run() -> Any:
        store = _open_store()
        try:
            return await action(store)
        finally:
            await store.close()

    return asyncio.run(_run())


@cache_app.command("stats")
def cache_stats() -> None:
    """Show the location and size of the durable store."""
    stats = _with_store(lambda store: store.stats())
    print_table(
        ["directory", "prefix", "size"],
        [[str(stats["directory"]), str(stats["prefix"]), str(stats["size"])]],
        title="Response cache",
    )


@cache_app.command("clear")
def cache_clear() -> None:
    """Remove every cached response."""
    _with_store(lambda store: store.clear())
    success("Response cache cleared.")


@cache_app.command("sweep")
def cache_sweep() -> None:
    """Remove expired and malformed entries."""
    removed = _with_store(lambda store: store.sweep())
    info(f"Removed {removed} stale entr{'y' if removed == 1 else 'ies'}.")
