"""``reqpipe request`` -- send requests through the configured pipeline.

The command resolves the effective :class:`~reqpipe.models.PipelineConfig`,
builds a :class:`~reqpipe.pipeline.Pipeline` over an ``httpx`` transport
and prints each response: the status line to stderr, the body to stdout.

``--repeat N`` issues N identical requests concurrently, which makes the
cache, concurrency limit and duplicate suppression observable from the
shell.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Optional

import typer

from reqpipe.config import resolve_config
from reqpipe.events import CACHE_HIT, RETRY
from reqpipe.exceptions import InvalidUsageError, ReqpipeError
from reqpipe.models import HTTPMethod, PipelineConfig, RequestConfig, Response
from reqpipe.output import debug, error, format_api_response
from reqpipe.pipeline import Pipeline
from reqpipe.requestor import Requestor
from reqpipe.transport import HttpxRequestor


def create_transport(config: PipelineConfig) -> Requestor:
    """Return the network transport for *config*.

    The client takes its base URL, timeout and default headers from the
    resolved configuration.
    """
    return HttpxRequestor.from_config(config)


def _parse_pairs(values: list[str], separator: str, label: str) -> dict[str, str]:
    pairs: dict[str, str] = {}
    for raw in values:
        name, sep, value = raw.partition(separator)
        if not sep or not name.strip():
            raise InvalidUsageError(f"Invalid {label} {raw!r}, expected NAME{separator}VALUE")
        pairs[name.strip()] = value.strip()
    return pairs


def _parse_body(body: Optional[str]) -> Any:
    """Parse *body* as JSON if possible, returning the raw string on failure."""
    if body is None:
        return None
    try:
        return json.loads(body)
    except json.JSONDecodeError:
        return body


def build_request(
    method: str,
    url: str,
    data: Optional[str],
    headers: list[str],
    params: list[str],
) -> RequestConfig:
    """Translate CLI arguments into a :class:`RequestConfig`.

    Raises:
        InvalidUsageError: On an unknown method or a malformed pair.
    """
    try:
        verb = HTTPMethod(method.upper())
    except ValueError:
        allowed = ", ".join(m.value for m in HTTPMethod)
        raise InvalidUsageError(f"Unsupported method {method!r} (expected one of {allowed})") from None
    return RequestConfig(
        url=url,
        method=verb,
        headers=_parse_pairs(headers, ":", "header"),
        params=_parse_pairs(params, "=", "param"),
        data=_parse_body(data),
    )


async def send_requests(
    config: PipelineConfig,
    request: RequestConfig,
    repeat: int = 1,
) -> list[Response]:
    """Send *request* *repeat* times concurrently through a fresh pipeline."""
    async with Pipeline.from_config(config, transport=create_transport(config)) as pipeline:
        pipeline.on(CACHE_HIT, lambda key, _response: debug(f"Cache hit: {key}"))
        pipeline.on(RETRY, lambda exc, attempt, _cfg: debug(f"Retry {attempt}: {exc}"))
        return list(await asyncio.gather(*(pipeline.request(request) for _ in range(repeat))))


def request_command(
    ctx: typer.Context,
    method: str = typer.Argument(help="HTTP method: GET, POST, PUT, PATCH or DELETE."),
    url: str = typer.Argument(help="Absolute URL, or a path relative to the base URL."),
    data: Optional[str] = typer.Option(
        None, "--data", "-d", help="Request body; parsed as JSON when possible."
    ),
    header: list[str] = typer.Option(
        [], "--header", "-H", help="Header as 'Name: value'. Repeatable."
    ),
    param: list[str] = typer.Option(
        [], "--param", "-P", help="Query parameter as 'name=value'. Repeatable."
    ),
    repeat: int = typer.Option(
        1, "--repeat", "-r", min=1, help="Send the request N times concurrently."
    ),
) -> None:
    """Send a request through the cache, retry and concurrency pipeline.

    Example::

        reqpipe request GET /users -P page=2
        reqpipe request POST /orders -d '{"sku": 1}' --repeat 2
    """
    obj = ctx.obj or {}
    try:
        config = resolve_config(cli_base_url=obj.get("base_url"))
        request = build_request(method, url, data, header, param)
        responses = asyncio.run(send_requests(config, request, repeat))
    except ReqpipeError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    for response in responses:
        format_api_response(response)
