"""Tests for reqpipe.models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from reqpipe.models import (
    HTTPMethod,
    ParallelSettings,
    PipelineConfig,
    RequestConfig,
    Response,
    RetrySettings,
    build_request_config,
)


class TestRequestConfig:
    def test_defaults(self) -> None:
        config = RequestConfig(url="/a")
        assert config.method is HTTPMethod.GET
        assert config.headers == {}
        assert config.params == {}
        assert config.data is None
        assert config.timeout is None

    def test_method_is_case_insensitive(self) -> None:
        assert RequestConfig(url="/a", method="post").method is HTTPMethod.POST

    def test_unknown_method_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RequestConfig(url="/a", method="TRACE")

    def test_extension_fields_are_kept(self) -> None:
        config = RequestConfig(url="/a", retry_tag="x")
        assert config.model_extra == {"retry_tag": "x"}

    def test_is_frozen(self) -> None:
        config = RequestConfig(url="/a")
        with pytest.raises(ValidationError):
            config.url = "/b"

    def test_copy_with_update(self) -> None:
        config = RequestConfig(url="/a", headers={"A": "1"})
        changed = config.model_copy(update={"url": "/b"})
        assert changed.url == "/b"
        assert config.url == "/a"


class TestBuildRequestConfig:
    def test_data_and_options(self) -> None:
        config = build_request_config("put", "/items/1", {"n": 1}, params={"v": 2}, timeout=5)
        assert config.method is HTTPMethod.PUT
        assert config.data == {"n": 1}
        assert config.params == {"v": 2}
        assert config.timeout == 5

    def test_no_data(self) -> None:
        assert build_request_config(HTTPMethod.DELETE, "/items/1").data is None


class TestResponse:
    def test_ok(self) -> None:
        config = RequestConfig(url="/a")
        assert Response(status=204, config=config).ok
        assert not Response(status=302, config=config).ok
        assert not Response(status=500, config=config).ok

    def test_plain_projection_excludes_config(self) -> None:
        response = Response(
            data={"id": 1}, status=200, status_text="OK",
            headers={"ETag": "abc"}, config=RequestConfig(url="/a"),
        )
        plain = response.to_plain()
        assert plain == {
            "data": {"id": 1},
            "status": 200,
            "status_text": "OK",
            "headers": {"ETag": "abc"},
        }
        restored = Response.from_plain(plain, RequestConfig(url="/b"))
        assert restored.data == {"id": 1}
        assert restored.config.url == "/b"

    def test_from_plain_requires_status(self) -> None:
        with pytest.raises(KeyError):
            Response.from_plain({"data": 1}, RequestConfig(url="/a"))


class TestSettings:
    def test_defaults(self) -> None:
        config = PipelineConfig()
        assert config.cache.enabled and not config.cache.persist
        assert config.cache.duration == 300.0
        assert config.cache.prefix == "request_cache_"
        assert config.retry.max_count == 3
        assert config.retry.delay == 1.0
        assert config.parallel.max_count == 4
        assert not config.idempotent.enabled
        assert config.idempotent.duration == 60.0

    def test_negative_retry_budget_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RetrySettings(max_count=-1)

    def test_parallel_limit_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            ParallelSettings(max_count=0)

    def test_json_round_trip(self) -> None:
        config = PipelineConfig(base_url="https://api.example.com", headers={"A": "1"})
        assert PipelineConfig.model_validate(config.model_dump(mode="json")) == config
