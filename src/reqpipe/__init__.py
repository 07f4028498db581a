"""reqpipe -- Composable async HTTP request pipeline.

Every component speaks the same :class:`~reqpipe.requestor.Requestor`
contract, so behaviours are added by wrapping one requestor in another:

    transport = HttpxRequestor(base_url="https://api.example.com")
    requestor = CacheRequestor(RetryRequestor(ParallelRequestor(transport)))
    response = await requestor.get("/users")

Each decorator intercepts ``request()``, either resolves the call itself
(cache hit, queue wait) or forwards it to its inner requestor.

Modules:
    requestor: The ``Requestor`` contract and the decorator base class.
    events: Explicit pub/sub used for lifecycle observability.
    models: Pydantic request/response envelopes and pipeline settings.
    keys: Deterministic cache-key and fingerprint derivation.
    stores: Volatile and durable TTL cache stores.
    decorators: Cache, retry, concurrency-limit and idempotency decorators.
    transport: ``httpx``-backed transport requestor.
    pipeline: Composition root assembling decorators from configuration.
    config: XDG-aware configuration loading and precedence resolution.
    app: Typer CLI entry point.
"""

__version__ = "0.1.0"
