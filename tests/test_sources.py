"""Tests for source descriptor parsing."""

import pytest

from image_resizer.core.exceptions import ResolutionError, ResolutionErrorKind
from image_resizer.core.sources import RemoteURL, StoreRef, parse_source, parse_sources


class TestParseSource:
    """Tests for parse_source."""

    @pytest.mark.parametrize(
        "descriptor",
        ["http://x/ok.png", "https://cdn.example.com/a/b.jpg?size=large"],
    )
    def test_http_urls(self, descriptor):
        source = parse_source(descriptor)
        assert source == RemoteURL(descriptor)
        assert str(source) == descriptor

    def test_store_reference(self):
        assert parse_source("key-value://storeA/photo.jpg") == StoreRef("storeA", "photo.jpg")

    def test_store_key_may_contain_slashes(self):
        source = parse_source("key-value://storeA/nested/dir/photo.jpg")
        assert source == StoreRef("storeA", "nested/dir/photo.jpg")
        assert str(source) == "key-value://storeA/nested/dir/photo.jpg"

    @pytest.mark.parametrize("descriptor", ["key-value://storeOnly", "key-value://"])
    def test_store_reference_without_separator(self, descriptor):
        with pytest.raises(ResolutionError) as exc_info:
            parse_source(descriptor)
        assert exc_info.value.kind == ResolutionErrorKind.MALFORMED_REFERENCE

    @pytest.mark.parametrize("descriptor", ["key-value:///key", "key-value://store/"])
    def test_store_reference_with_empty_part(self, descriptor):
        with pytest.raises(ResolutionError, match="must be non-empty") as exc_info:
            parse_source(descriptor)
        assert exc_info.value.kind == ResolutionErrorKind.MALFORMED_REFERENCE

    @pytest.mark.parametrize("descriptor", ["ftp://bad", "s3://bucket/key", "/local/file.png"])
    def test_unsupported_scheme(self, descriptor):
        with pytest.raises(ResolutionError, match="Unsupported image source format") as exc_info:
            parse_source(descriptor)
        assert exc_info.value.kind == ResolutionErrorKind.UNSUPPORTED_SOURCE

    @pytest.mark.parametrize("descriptor", ["", None, 42, {"url": "http://x"}])
    def test_invalid_descriptor(self, descriptor):
        with pytest.raises(ResolutionError) as exc_info:
            parse_source(descriptor)
        assert exc_info.value.kind == ResolutionErrorKind.INVALID_SOURCE


def test_parse_sources_keeps_errors_in_place():
    parsed = parse_sources(["http://x/a.png", "ftp://bad", "key-value://s/k"])

    assert parsed[0] == RemoteURL("http://x/a.png")
    assert isinstance(parsed[1], ResolutionError)
    assert parsed[1].kind == ResolutionErrorKind.UNSUPPORTED_SOURCE
    assert parsed[2] == StoreRef("s", "k")
