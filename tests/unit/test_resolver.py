"""Unit tests for SourceResolver."""

import asyncio

import pytest

from image_resizer.core.exceptions import (
    FetchError,
    ResolutionError,
    ResolutionErrorKind,
)
from image_resizer.core.resolver import HEADER_CONSTRAINTS, SourceResolver, as_bytes
from image_resizer.core.sources import RemoteURL, StoreRef
from image_resizer.testing.fakes import (
    FakeBlobStore,
    FakeFetcher,
    FakeHeaderGenerator,
)


def _resolve(resolver, source):
    return asyncio.run(resolver.resolve(source))


class TestSourceResolver:
    """Tests for SourceResolver.resolve."""

    def setup_method(self):
        self.fetcher = FakeFetcher()
        self.store = FakeBlobStore()
        self.headers = FakeHeaderGenerator({"User-Agent": "UA/1.0"})
        self.resolver = SourceResolver(
            fetcher=self.fetcher,
            store=self.store,
            header_generator=self.headers,
            fetch_timeout=12,
            fetch_retries=3,
        )

    def test_remote_url(self):
        self.fetcher.add_response("http://x/ok.png", b"png-bytes")

        assert _resolve(self.resolver, RemoteURL("http://x/ok.png")) == b"png-bytes"

        url, headers, timeout, retries = self.fetcher.calls[0]
        assert url == "http://x/ok.png"
        assert headers == {"User-Agent": "UA/1.0"}
        assert (timeout, retries) == (12, 3)
        assert self.headers.calls == [HEADER_CONSTRAINTS]

    def test_fresh_headers_per_request(self):
        self.fetcher.add_response("http://x/a", b"a")
        self.fetcher.add_response("http://x/b", b"b")

        _resolve(self.resolver, RemoteURL("http://x/a"))
        _resolve(self.resolver, RemoteURL("http://x/b"))

        assert len(self.headers.calls) == 2

    def test_remote_failure(self):
        self.fetcher.add_response(
            "http://x/gone", FetchError("Response code 410 (Gone)", status_code=410)
        )

        with pytest.raises(ResolutionError, match="Failed to fetch image from URL") as exc_info:
            _resolve(self.resolver, RemoteURL("http://x/gone"))
        assert exc_info.value.kind == ResolutionErrorKind.FETCH_FAILED

    def test_remote_non_binary_body(self):
        self.fetcher.add_response("http://x/text", "not bytes")

        with pytest.raises(ResolutionError, match="not binary") as exc_info:
            _resolve(self.resolver, RemoteURL("http://x/text"))
        assert exc_info.value.kind == ResolutionErrorKind.FETCH_FAILED

    def test_store_bytes(self):
        self.store.add_value("storeA", "photo.jpg", b"\xff\xd8jpeg")
        assert _resolve(self.resolver, StoreRef("storeA", "photo.jpg")) == b"\xff\xd8jpeg"

    def test_store_string_is_latin1(self):
        self.store.add_value("storeA", "raw", "\xff\xd8\x00A")
        assert _resolve(self.resolver, StoreRef("storeA", "raw")) == b"\xff\xd8\x00A"

    def test_store_missing_key(self):
        with pytest.raises(ResolutionError, match="not found") as exc_info:
            _resolve(self.resolver, StoreRef("storeA", "missingKey"))
        assert exc_info.value.kind == ResolutionErrorKind.NOT_FOUND
        assert str(exc_info.value) == 'Key "missingKey" not found in store "storeA"'

    def test_store_wrong_value_type(self):
        self.store.add_value("storeA", "meta", {"width": 10})

        with pytest.raises(ResolutionError) as exc_info:
            _resolve(self.resolver, StoreRef("storeA", "meta"))
        assert exc_info.value.kind == ResolutionErrorKind.UNSUPPORTED_VALUE_TYPE

    def test_store_failure(self):
        self.store.set_failure_mode(fail_get=True, message="connection reset")

        with pytest.raises(ResolutionError, match="connection reset") as exc_info:
            _resolve(self.resolver, StoreRef("storeA", "photo.jpg"))
        assert exc_info.value.kind == ResolutionErrorKind.FETCH_FAILED

    def test_unknown_source_type(self):
        with pytest.raises(ResolutionError) as exc_info:
            _resolve(self.resolver, "http://x/raw-string")
        assert exc_info.value.kind == ResolutionErrorKind.UNSUPPORTED_SOURCE


class TestAsBytes:
    """Tests for as_bytes value coercion."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (b"abc", b"abc"),
            (bytearray(b"abc"), b"abc"),
            (memoryview(b"abc"), b"abc"),
            ("abc", b"abc"),
            ("\xe9", b"\xe9"),
        ],
    )
    def test_supported_values(self, value, expected):
        assert as_bytes(value) == expected

    @pytest.mark.parametrize("value", [123, 1.5, ["a"], {"a": 1}, "snow ☃"])
    def test_unsupported_values(self, value):
        with pytest.raises(ResolutionError) as exc_info:
            as_bytes(value)
        assert exc_info.value.kind == ResolutionErrorKind.UNSUPPORTED_VALUE_TYPE
