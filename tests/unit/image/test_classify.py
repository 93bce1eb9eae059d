"""Tests for imagegate.image.classify."""

from __future__ import annotations

import pytest

from imagegate.image.classify import classify_image
from imagegate.models import ImageKind


class TestClassifyImage:
    def test_png_envelope_is_inline(self):
        assert classify_image("data:image/png;base64,iVBORw0KGgo=") == ImageKind.INLINE

    def test_unsupported_subtype_is_still_inline(self):
        # Subtype checks belong to the validator.
        assert classify_image("data:image/gif;base64,R0lGOD") == ImageKind.INLINE

    def test_malformed_envelope_is_still_inline(self):
        assert classify_image("data:image/png,notbase64") == ImageKind.INLINE

    def test_prefix_is_case_insensitive(self):
        assert classify_image("DATA:IMAGE/PNG;base64,AAAA") == ImageKind.INLINE

    @pytest.mark.parametrize("url", [
        "https://cdn.example/a.jpg",
        "http://cdn.example/a.jpg",
        "HTTPS://CDN.EXAMPLE/A.JPG",
        "https://res.cloudinary.com/demo/image/upload/v1/x.webp",
    ])
    def test_http_urls_are_external(self, url):
        assert classify_image(url) == ImageKind.EXTERNAL_REFERENCE

    @pytest.mark.parametrize("value", [
        "ftp://x/y.png",
        "/uploads/a.png",
        "cdn.example/a.jpg",
        "data:text/plain;base64,aGVsbG8=",
        "",
        " https://cdn.example/a.jpg",
    ])
    def test_other_strings_are_invalid(self, value):
        assert classify_image(value) == ImageKind.INVALID

    @pytest.mark.parametrize("value", [None, 42, b"data:image/png;base64,AA", {"src": "x"}])
    def test_non_strings_are_invalid(self, value):
        assert classify_image(value) == ImageKind.INVALID
