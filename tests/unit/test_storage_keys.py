"""
Tests for storage key derivation and media type parsing.
"""

import re

import pytest

from src.core.errors import InvalidMediaTypeError
from src.core.media.keys import (
    build_object_url,
    extension_for_media_type,
    generate_storage_key,
    parse_media_type,
)

KEY_PATTERN = re.compile(r"^(landscape|portrait|other)/[A-Za-z0-9_-]{43}\.mp4$")


class TestParseMediaType:

    def test_plain_media_type(self):
        assert parse_media_type("video/mp4") == "video/mp4"

    def test_strips_parameters_and_normalizes_case(self):
        assert parse_media_type('Video/MP4; codecs="avc1.42E01E"') == "video/mp4"

    @pytest.mark.parametrize("value", [None, "", "mp4", "video/", "/mp4", "video/mp4/extra"])
    def test_rejects_malformed_values(self, value):
        with pytest.raises(InvalidMediaTypeError):
            parse_media_type(value)

    def test_malformed_media_type_is_a_bad_request(self):
        with pytest.raises(InvalidMediaTypeError) as exc_info:
            parse_media_type("garbage")
        assert exc_info.value.status_code == 400


class TestGenerateStorageKey:

    def test_extension_comes_from_media_type(self):
        assert extension_for_media_type("video/mp4") == "mp4"
        assert extension_for_media_type("image/png") == "png"

    @pytest.mark.parametrize("prefix", ["landscape", "portrait", "other"])
    def test_key_shape(self, prefix):
        key = generate_storage_key(prefix, "video/mp4")
        assert KEY_PATTERN.match(key)
        assert key.startswith(f"{prefix}/")

    def test_token_has_no_padding(self):
        key = generate_storage_key("other", "video/mp4")
        assert "=" not in key

    def test_keys_are_never_reused(self):
        keys = {generate_storage_key("landscape", "video/mp4") for _ in range(500)}
        assert len(keys) == 500

    def test_without_prefix_key_is_just_the_filename(self):
        key = generate_storage_key(None, "image/jpeg")
        assert "/" not in key
        assert key.endswith(".jpeg")


class TestBuildObjectUrl:

    def test_virtual_hosted_style_url(self):
        url = build_object_url("tubely-media", "us-east-2", "portrait/abc.mp4")
        assert url == "https://tubely-media.s3.us-east-2.amazonaws.com/portrait/abc.mp4"
