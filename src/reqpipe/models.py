"""Canonical Pydantic models shared across all reqpipe modules.

The models fall into two groups:

**Envelopes** -- the values that flow through a requestor chain:
    :class:`HTTPMethod`, :class:`RequestConfig` and :class:`Response`.
    Both envelopes are frozen; a decorator that needs a different request
    builds a copy with ``model_copy(update=...)`` so that queued siblings
    never observe a shared object changing under them.

**Configuration models** -- serialised as JSON in the user's config
directory and consumed by :func:`reqpipe.pipeline.build_pipeline`:
    :class:`CacheSettings`, :class:`RetrySettings`,
    :class:`ParallelSettings`, :class:`IdempotentSettings`,
    :class:`OutputSettings` and :class:`PipelineConfig`.

Durations are expressed in seconds throughout.
"""

from __future__ import annotations

import enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# --- Envelopes ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods a :class:`RequestConfig` may carry."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"


class RequestConfig(BaseModel):
    """Description of one request, immutable once dispatched.

    Unknown keyword arguments are kept as extension fields and are
    available through ``model_extra``; they travel with the request but
    are ignored by key derivation.

    Example::

        RequestConfig(
            url="/users",
            method="get",
            params={"page": 2},
            headers={"Accept": "application/json"},
        )
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    url: str
    method: HTTPMethod = HTTPMethod.GET
    headers: dict[str, str] = Field(default_factory=dict)
    params: dict[str, Any] = Field(default_factory=dict)
    data: Any = Field(default=None, description="Opaque request body")
    timeout: Optional[float] = Field(
        default=None, description="Advisory timeout, enforced by the transport"
    )

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.upper()
        return value


class Response(BaseModel):
    """A completed response produced by a transport or replayed from a cache.

    ``config`` holds the request that produced the envelope. It is never
    part of :meth:`to_plain`, because extension fields may hold values
    that cannot be serialised.
    """

    model_config = ConfigDict(frozen=True)

    data: Any = None
    status: int
    status_text: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    config: RequestConfig

    @property
    def ok(self) -> bool:
        """``True`` for 2xx statuses."""
        return 200 <= self.status < 300

    def to_plain(self) -> dict[str, Any]:
        """Project the envelope onto its storable parts."""
        return {
            "data": self.data,
            "status": self.status,
            "status_text": self.status_text,
            "headers": dict(self.headers),
        }

    @classmethod
    def from_plain(cls, plain: dict[str, Any], config: RequestConfig) -> Response:
        """Rebuild an envelope from a :meth:`to_plain` projection.

        Raises:
            KeyError: If *plain* lacks the ``status`` key.
            pydantic.ValidationError: If the stored values have the wrong types.
        """
        return cls(
            data=plain.get("data"),
            status=plain["status"],
            status_text=plain.get("status_text", ""),
            headers=plain.get("headers") or {},
            config=config,
        )


def build_request_config(
    method: HTTPMethod | str,
    url: str,
    data: Any = None,
    **options: Any,
) -> RequestConfig:
    """Assemble a :class:`RequestConfig` for the verb helpers.

    Options override nothing but themselves: ``headers``, ``params`` and
    ``timeout`` map onto the declared fields, anything else becomes an
    extension field.
    """
    if data is not None:
        options["data"] = data
    return RequestConfig(url=url, method=method, **options)


# --- Configuration ---


class CacheSettings(BaseModel):
    """Response caching applied by :class:`~reqpipe.decorators.CacheRequestor`."""

    enabled: bool = Field(default=True, description="Enable response caching")
    persist: bool = Field(
        default=False, description="Use the durable disk store instead of memory"
    )
    duration: float = Field(default=300.0, description="Entry lifetime in seconds")
    prefix: str = Field(
        default="request_cache_", description="Key namespace in the durable store"
    )


class RetrySettings(BaseModel):
    """Retry-with-backoff applied by :class:`~reqpipe.decorators.RetryRequestor`."""

    enabled: bool = Field(default=True, description="Enable retries")
    max_count: int = Field(default=3, ge=0, description="Retries after the first try")
    delay: float = Field(default=1.0, ge=0, description="Base delay in seconds")


class ParallelSettings(BaseModel):
    """Concurrency limit applied by :class:`~reqpipe.decorators.ParallelRequestor`."""

    enabled: bool = Field(default=True, description="Enable the concurrency limit")
    max_count: int = Field(default=4, ge=1, description="Maximum in-flight requests")


class IdempotentSettings(BaseModel):
    """Duplicate suppression applied by :class:`~reqpipe.decorators.IdempotentRequestor`."""

    enabled: bool = Field(default=False, description="Enable duplicate suppression")
    duration: float = Field(default=60.0, description="Deduplication window in seconds")


class OutputSettings(BaseModel):
    """Default output preferences for the CLI."""

    format: Literal["auto", "json", "plain", "rich"] = Field(
        default="auto", description="Used when neither --json nor --plain is given"
    )


class PipelineConfig(BaseModel):
    """Root configuration persisted as ``config.json``.

    Example::

        PipelineConfig(
            base_url="https://api.example.com",
            retry=RetrySettings(max_count=5),
            parallel=ParallelSettings(max_count=6),
        )
    """

    base_url: Optional[str] = Field(
        default=None, description="Base URL prepended to relative request URLs"
    )
    timeout: float = Field(default=30.0, description="Transport timeout in seconds")
    headers: dict[str, str] = Field(
        default_factory=dict, description="Headers sent with every request"
    )
    cache: CacheSettings = Field(default_factory=CacheSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    parallel: ParallelSettings = Field(default_factory=ParallelSettings)
    idempotent: IdempotentSettings = Field(default_factory=IdempotentSettings)
    output: OutputSettings = Field(default_factory=OutputSettings)
