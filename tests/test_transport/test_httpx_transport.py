"""Tests for the httpx transport."""

from __future__ import annotations

import json
from typing import Callable

import httpx
import pytest

from reqpipe.events import BEFORE_REQUEST, REQUEST_ERROR, RESPONSE, RESPONSE_ERROR
from reqpipe.exceptions import (
    AuthError,
    ClientError,
    ConnectionError_,
    NotFoundError,
    ServerError,
)
from reqpipe.models import PipelineConfig, RequestConfig
from reqpipe.transport import HttpxRequestor, extract_response_data


BASE_URL = "https://api.example.com"


def _transport(handler: Callable[[httpx.Request], httpx.Response]) -> HttpxRequestor:
    return HttpxRequestor(base_url=BASE_URL, transport=httpx.MockTransport(handler))


# ------------------------------------------------------------------ #
# extract_response_data
# ------------------------------------------------------------------ #


class TestExtractResponseData:
    def test_json_body(self) -> None:
        assert extract_response_data(httpx.Response(200, json={"id": 1})) == {"id": 1}

    def test_text_body(self) -> None:
        assert extract_response_data(httpx.Response(200, text="hello")) == "hello"

    def test_empty_body(self) -> None:
        assert extract_response_data(httpx.Response(204)) is None


# ------------------------------------------------------------------ #
# Successful requests
# ------------------------------------------------------------------ #


class TestRequests:
    @pytest.mark.asyncio
    async def test_get_returns_envelope(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"users": []}, headers={"X-Total": "0"})

        async with _transport(handler) as transport:
            response = await transport.get("/users")

        assert response.ok
        assert response.status == 200
        assert response.status_text == "OK"
        assert response.data == {"users": []}
        assert response.headers["x-total"] == "0"
        assert response.config.url == "/users"

    @pytest.mark.asyncio
    async def test_params_and_headers_are_sent(self) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200)

        async with _transport(handler) as transport:
            await transport.get("/search", params={"q": "cats"}, headers={"X-Trace": "abc"})

        request = captured[0]
        assert str(request.url) == f"{BASE_URL}/search?q=cats"
        assert request.headers["x-trace"] == "abc"

    @pytest.mark.asyncio
    async def test_structured_body_is_sent_as_json(self) -> None:
        bodies: list[bytes] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(request.content)
            return httpx.Response(201, json={"id": 7})

        async with _transport(handler) as transport:
            response = await transport.post("/orders", {"sku": 1})

        assert json.loads(bodies[0]) == {"sku": 1}
        assert response.status == 201

    @pytest.mark.asyncio
    async def test_string_body_is_sent_verbatim(self) -> None:
        bodies: list[bytes] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(request.content)
            return httpx.Response(200)

        async with _transport(handler) as transport:
            await transport.put("/notes/1", "plain text")

        assert bodies == [b"plain text"]

    @pytest.mark.asyncio
    async def test_every_verb_reaches_the_server(self) -> None:
        methods: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            methods.append(request.method)
            return httpx.Response(200)

        async with _transport(handler) as transport:
            await transport.get("/r")
            await transport.post("/r")
            await transport.put("/r")
            await transport.patch("/r")
            await transport.delete("/r")
            await transport.request(RequestConfig(url="/r", method="patch"))

        assert methods == ["GET", "POST", "PUT", "PATCH", "DELETE", "PATCH"]


# ------------------------------------------------------------------ #
# Error mapping
# ------------------------------------------------------------------ #


class TestErrors:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "error_type"),
        [
            (401, AuthError),
            (403, AuthError),
            (404, NotFoundError),
            (422, ClientError),
            (500, ServerError),
            (503, ServerError),
        ],
    )
    async def test_status_maps_to_typed_error(self, status: int, error_type: type) -> None:
        async with _transport(lambda request: httpx.Response(status)) as transport:
            with pytest.raises(error_type) as excinfo:
                await transport.get("/x")

        assert excinfo.value.status == status
        assert excinfo.value.response is not None
        assert excinfo.value.config.url == "/x"

    @pytest.mark.asyncio
    async def test_error_message_uses_body_detail(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"message": "no such user"})

        async with _transport(handler) as transport:
            with pytest.raises(NotFoundError, match="HTTP 404: no such user"):
                await transport.get("/users/9")

    @pytest.mark.asyncio
    async def test_network_failure_has_no_response(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        seen: list[str] = []
        async with _transport(handler) as transport:
            transport.on(REQUEST_ERROR, lambda error: seen.append("request_error"))
            transport.on(RESPONSE_ERROR, lambda error: seen.append("response_error"))
            with pytest.raises(ConnectionError_) as excinfo:
                await transport.get("/x")

        assert excinfo.value.response is None
        assert excinfo.value.status is None
        assert seen == ["request_error", "response_error"]


# ------------------------------------------------------------------ #
# Lifecycle events and client ownership
# ------------------------------------------------------------------ #


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_events_in_order(self) -> None:
        seen: list[str] = []
        async with _transport(lambda request: httpx.Response(200)) as transport:
            transport.on(BEFORE_REQUEST, lambda config: seen.append(f"before {config.url}"))
            transport.on(RESPONSE, lambda response: seen.append(f"response {response.status}"))
            await transport.get("/ping")
        assert seen == ["before /ping", "response 200"]

    @pytest.mark.asyncio
    async def test_error_status_publishes_response_error(self) -> None:
        errors: list[int] = []
        async with _transport(lambda request: httpx.Response(500)) as transport:
            transport.on(RESPONSE_ERROR, lambda error: errors.append(error.status))
            with pytest.raises(ServerError):
                await transport.get("/x")
        assert errors == [500]

    @pytest.mark.asyncio
    async def test_external_client_is_left_open(self) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        transport = HttpxRequestor(client=client)
        await transport.aclose()
        assert not client.is_closed
        await client.aclose()

    @pytest.mark.asyncio
    async def test_from_config_applies_connection_settings(self) -> None:
        sent: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            sent.append(request)
            return httpx.Response(200)

        config = PipelineConfig(base_url=BASE_URL, timeout=2.5, headers={"X-Api-Key": "secret"})
        async with HttpxRequestor.from_config(config, transport=httpx.MockTransport(handler)) as transport:
            assert transport.client.timeout.connect == 2.5
            await transport.get("/ping")

        assert transport.client.is_closed
        assert str(sent[0].url) == f"{BASE_URL}/ping"
        assert sent[0].headers["X-Api-Key"] == "secret"
