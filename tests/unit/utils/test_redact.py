"""Tests for: redact, truncate_src."""

from imagegate.utils.redact import redact, truncate_src

SECRET = "test_secret_abcd1234"


# ---------------------------------------------------------------------------
# redact tests
# ---------------------------------------------------------------------------

class TestRedact:
    """Tests for redact utility."""

    def test_signature_masked_to_last_four(self):
        result = redact({"signature": "0123456789abcdef"})
        assert result["signature"] == "<redacted:...cdef>"

    def test_short_credential_fully_masked(self):
        assert redact({"api_key": "123"})["api_key"] == "<redacted>"

    def test_key_match_is_case_insensitive(self):
        result = redact({"API_SECRET": "abcdefghijkl"})
        assert result["API_SECRET"] == "<redacted:...ijkl>"

    def test_sensitive_key_non_string_redacted(self):
        assert redact({"token": 12345})["token"] == "<redacted>"

    def test_secret_scrubbed_from_values(self):
        result = redact({"error": f"bad signature for {SECRET}"}, secret=SECRET)
        assert SECRET not in result["error"]
        assert "<redacted>" in result["error"]

    def test_data_uri_replaced(self):
        uri = "data:image/png;base64," + "A" * 40
        assert redact({"file": uri})["file"] == "<data_uri:30_bytes>"

    def test_data_uri_inside_text(self):
        result = redact({"note": "got data:image/webp;base64,AAAA here"})
        assert result["note"] == "got <data_uri:3_bytes> here"

    def test_bytes_value_redacted(self):
        assert redact({"blob": b"\x00" * 10})["blob"] == "<binary:10_bytes>"

    def test_nested_dict_redacted(self):
        result = redact({"outer": {"signature": "0123456789abcdef", "folder": "a/b"}})
        assert result["outer"]["signature"] == "<redacted:...cdef>"
        assert result["outer"]["folder"] == "a/b"

    def test_list_values_redacted(self):
        result = redact({"items": [SECRET, "ok"]}, secret=SECRET)
        assert result["items"] == ["<redacted>", "ok"]

    def test_original_not_mutated(self):
        payload = {"signature": "0123456789abcdef", "nested": {"api_key": "12345678"}}
        redact(payload)
        assert payload == {"signature": "0123456789abcdef", "nested": {"api_key": "12345678"}}

    def test_plain_values_untouched(self):
        payload = {"folder": "marketplace/products", "timestamp": 1700000000}
        assert redact(payload) == payload


class TestTruncateSrc:
    def test_short_string_unchanged(self):
        assert truncate_src("https://cdn.example/a.jpg") == "https://cdn.example/a.jpg"

    def test_long_string_truncated(self):
        result = truncate_src("x" * 500)
        assert result == "x" * 120 + "..."

    def test_custom_length(self):
        assert truncate_src("abcdef", max_len=3) == "abc..."

    def test_non_string(self):
        assert truncate_src(None) == "<NoneType>"
        assert truncate_src(42) == "<int>"
