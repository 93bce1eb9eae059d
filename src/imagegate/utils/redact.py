"""Payload redaction for safe logging.

Before any store request or response is written to logs or debug dumps,
:func:`redact` must be applied.  It enforces the following rules:

* **Credential fields** (``api_secret``, ``signature``, ``api_key`` and
  similar) are replaced with a masked placeholder that shows only the last
  four characters.
* **Base64 data URIs** (``data:<mime>;base64,...``) are replaced with a
  human-readable placeholder: ``<data_uri:N_bytes>``.
* **Binary values** are replaced with ``<binary:N_bytes>``.
* The full API **secret is never present** in the output.

:func:`truncate_src` shortens an image value for error contexts.
"""

from __future__ import annotations

import copy
import re
from typing import Any

# Matches RFC 2397 data URIs with base64 encoding.
_DATA_URI_RE = re.compile(
    r"data:[a-zA-Z0-9_.+-]+/[a-zA-Z0-9_.+-]+;base64,[A-Za-z0-9+/=]+"
)

# If any of these appear in a key name (case-insensitive), the value is
# redacted.
_SENSITIVE_KEY_PATTERNS: frozenset[str] = frozenset({
    "secret",
    "signature",
    "password",
    "token",
    "credential",
    "authorization",
    "api_key",
    "api-key",
})

_BINARY_LENGTH_THRESHOLD = 256


def _mask(value: str) -> str:
    """Replace a credential string with a safe placeholder."""
    if len(value) >= 8:
        return f"<redacted:...{value[-4:]}>"
    return "<redacted>"


def _estimate_data_uri_bytes(uri: str) -> int:
    """Return the approximate decoded byte length of a data URI."""
    b64_part = uri.split(";base64,", 1)[-1]
    return len(b64_part) * 3 // 4 - b64_part[-2:].count("=")


def _looks_binary(value: str) -> bool:
    """Heuristic: return True if *value* appears to be raw binary data."""
    if len(value) < _BINARY_LENGTH_THRESHOLD:
        return False
    non_printable = sum(
        1
        for ch in value[:512]
        if not ch.isprintable() and ch not in ("\n", "\r", "\t")
    )
    return non_printable > len(value[:512]) * 0.1


def _redact_value(value: Any, secret: str | None) -> Any:
    if isinstance(value, dict):
        return _redact_dict(value, secret)
    if isinstance(value, (list, tuple)):
        return [_redact_value(item, secret) for item in value]
    if isinstance(value, str):
        if _DATA_URI_RE.search(value):
            value = _DATA_URI_RE.sub(
                lambda m: f"<data_uri:{_estimate_data_uri_bytes(m.group(0))}_bytes>",
                value,
            )
        if _looks_binary(value):
            return f"<binary:{len(value.encode('utf-8'))}_bytes>"
        if secret and secret in value:
            value = value.replace(secret, "<redacted>")
        return value
    if isinstance(value, (bytes, bytearray)):
        return f"<binary:{len(value)}_bytes>"
    return value


def _redact_dict(d: dict, secret: str | None) -> dict:
    result: dict = {}
    for key, value in d.items():
        key_lower = key.lower() if isinstance(key, str) else ""
        if any(pat in key_lower for pat in _SENSITIVE_KEY_PATTERNS):
            if isinstance(value, str):
                result[key] = _mask(value)
            else:
                result[key] = "<redacted>"
        else:
            result[key] = _redact_value(value, secret)
    return result


def redact(payload: dict, secret: str | None = None) -> dict:
    """Return a deep copy of *payload* with sensitive data redacted.

    Parameters
    ----------
    payload:
        The dictionary to sanitize (typically a store request form or
        response body).
    secret:
        The API secret.  If supplied, any occurrence of this exact string
        anywhere in the payload is replaced.

    Returns
    -------
    dict
        A new dictionary; the original *payload* is never mutated.

    Examples
    --------
    >>> redact({"signature": "0123456789abcdef"})
    {'signature': '<redacted:...cdef>'}
    """
    safe = copy.deepcopy(payload)
    return _redact_dict(safe, secret)


def truncate_src(src: object, max_len: int = 120) -> str:
    """Truncate an image value for inclusion in error context or logs."""
    if not isinstance(src, str):
        return f"<{type(src).__name__}>"
    if len(src) <= max_len:
        return src
    return src[:max_len] + "..."
