"""Tests for reqpipe.keys -- cache keys and request fingerprints."""

from __future__ import annotations

from reqpipe.keys import generate_cache_key, hash_request, simple_hash
from reqpipe.models import RequestConfig


class TestSimpleHash:
    def test_known_values(self) -> None:
        assert simple_hash("") == "0"
        assert simple_hash("a") == "2p"
        assert simple_hash("ab") == "2e9"

    def test_is_deterministic(self) -> None:
        text = "https://api.example.com/users|GET|Accept:application/json"
        assert simple_hash(text) == simple_hash(text)

    def test_output_is_base36(self) -> None:
        digest = simple_hash("x" * 500)
        assert digest
        assert set(digest) <= set("0123456789abcdefghijklmnopqrstuvwxyz")

    def test_non_ascii_input(self) -> None:
        """Characters outside the BMP hash as two UTF-16 code units."""
        assert simple_hash("\U0001F600") != simple_hash("\u00e9")


class TestGenerateCacheKey:
    def test_relative_path(self) -> None:
        config = RequestConfig(url="/api/user?page=1")
        assert generate_cache_key(config) == "GET:/api/user?page=1"

    def test_method_is_part_of_the_key(self) -> None:
        get = RequestConfig(url="/api/user")
        delete = RequestConfig(url="/api/user", method="DELETE")
        assert generate_cache_key(get) == "GET:/api/user"
        assert generate_cache_key(delete) == "DELETE:/api/user"

    def test_absolute_and_relative_urls_agree(self) -> None:
        base = "https://api.example.com"
        relative = RequestConfig(url="/users")
        absolute = RequestConfig(url="https://api.example.com/users")
        assert generate_cache_key(relative, base) == generate_cache_key(absolute, base)

    def test_params_are_merged_in_sorted_order(self) -> None:
        config = RequestConfig(url="/search", params={"b": 2, "a": 1})
        assert generate_cache_key(config) == "GET:/search?a=1&b=2"

    def test_params_merge_with_existing_query(self) -> None:
        config = RequestConfig(url="/search?page=1", params={"q": "x"})
        assert generate_cache_key(config) == "GET:/search?page=1&q=x"

    def test_headers_and_body_are_ignored(self) -> None:
        one = RequestConfig(url="/items", method="POST", data={"a": 1}, headers={"X": "1"})
        two = RequestConfig(url="/items", method="POST", data={"a": 2})
        assert generate_cache_key(one) == generate_cache_key(two)


class TestHashRequest:
    def test_header_order_does_not_matter(self) -> None:
        one = RequestConfig(url="/a", headers={"A": "1", "B": "2"})
        two = RequestConfig(url="/a", headers={"B": "2", "A": "1"})
        assert hash_request(one) == hash_request(two)

    def test_body_changes_the_fingerprint(self) -> None:
        one = RequestConfig(url="/orders", method="POST", data={"sku": 1})
        two = RequestConfig(url="/orders", method="POST", data={"sku": 2})
        assert hash_request(one) != hash_request(two)

    def test_method_changes_the_fingerprint(self) -> None:
        assert hash_request(RequestConfig(url="/a")) != hash_request(
            RequestConfig(url="/a", method="PUT")
        )

    def test_params_change_the_fingerprint(self) -> None:
        one = RequestConfig(url="/a", params={"page": 1})
        two = RequestConfig(url="/a", params={"page": 2})
        assert hash_request(one) != hash_request(two)

    def test_empty_params_equal_no_params(self) -> None:
        assert hash_request(RequestConfig(url="/a", params={})) == hash_request(
            RequestConfig(url="/a")
        )

    def test_empty_bodies_equal_no_body(self) -> None:
        bare = hash_request(RequestConfig(url="/a", method="POST"))
        for body in ({}, "", [], 0):
            config = RequestConfig(url="/a", method="POST", data=body)
            assert hash_request(config) == bare

    def test_extension_fields_are_ignored(self) -> None:
        plain = RequestConfig(url="/a")
        tagged = RequestConfig(url="/a", trace_id="abc")
        assert hash_request(plain) == hash_request(tagged)

    def test_unserialisable_body_falls_back_to_str(self) -> None:
        body: dict = {}
        body["self"] = body
        config = RequestConfig(url="/a", method="POST", data=body)
        assert hash_request(config) == hash_request(config)
