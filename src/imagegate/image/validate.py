"""Inline image validation: envelope, subtype and size.

Parses a ``data:image/<subtype>;base64,<payload>`` envelope, checks the
declared subtype against the configured allow-list and decodes the
payload so its size can be compared against the policy budget.  The
pipeline decides what to do with an over-budget image; this module only
measures it.
"""

from __future__ import annotations

import base64
import binascii
import re

from imagegate.config import ImagegateConfig
from imagegate.errors import (
    ImagegateInvalidEnvelopeError,
    ImagegateUnsupportedFormatError,
)
from imagegate.models import ValidatedImage
from imagegate.utils.redact import truncate_src

# data:image/<subtype>;base64,<payload>
_ENVELOPE_RE = re.compile(
    r"^data:image/(?P<subtype>[A-Za-z0-9.+-]+);base64,(?P<payload>.+)$",
    re.IGNORECASE | re.DOTALL,
)

_BYTES_PER_MB = 1024 * 1024

# Map of magic bytes to format names for sniffing.
_MAGIC_BYTES: list[tuple[bytes, str]] = [
    (b"\x89PNG\r\n\x1a\n", "png"),
    (b"\xff\xd8\xff", "jpeg"),
    (b"GIF87a", "gif"),
    (b"GIF89a", "gif"),
    (b"RIFF", "webp"),  # RIFF....WEBP (check further)
    (b"BM", "bmp"),
]


def sniff_format(data: bytes) -> str | None:
    """Detect the image format from the first bytes of *data*."""
    for magic, fmt in _MAGIC_BYTES:
        if data[:len(magic)] == magic:
            if magic == b"RIFF" and data[8:12] != b"WEBP":
                continue
            return fmt
    return None


def estimate_decoded_size_mb(payload: str) -> float:
    """Estimate the decoded size of a base64 *payload* in megabytes.

    Uses the 4-encoded-to-3-raw expansion ratio without decoding.  The
    pipeline compares exact sizes; this is for logging and quick checks.
    """
    return (len(payload) * 3 / 4) / _BYTES_PER_MB


def validate_inline(src: str, config: ImagegateConfig) -> ValidatedImage:
    """Validate an inline image and decode its payload.

    Parameters
    ----------
    src:
        A value already classified as :attr:`ImageKind.INLINE`.
    config:
        Pipeline configuration providing ``allowed_formats``.

    Returns
    -------
    ValidatedImage
        Subtype, payload, decoded bytes, sniffed format and exact decoded
        size in megabytes.

    Raises
    ------
    ImagegateInvalidEnvelopeError
        If the envelope is malformed (missing ``;base64`` marker, missing
        comma, empty payload) or the payload is not valid base64.
    ImagegateUnsupportedFormatError
        If the declared subtype is not in ``config.allowed_formats``.
    """
    match = _ENVELOPE_RE.match(src)
    if not match:
        raise ImagegateInvalidEnvelopeError(
            message="Invalid base64 image format",
            context={"src": truncate_src(src), "reason": "envelope_no_match"},
        )

    subtype = match.group("subtype").lower()
    payload = match.group("payload")

    if subtype not in config.allowed_formats:
        raise ImagegateUnsupportedFormatError(
            message=(
                f"Invalid image type {subtype!r}. "
                f"Allowed: {', '.join(config.allowed_formats)}"
            ),
            context={"subtype": subtype, "allowed_formats": list(config.allowed_formats)},
        )

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ImagegateInvalidEnvelopeError(
            message="Failed to decode base64 image payload",
            context={"src": truncate_src(src), "reason": "base64_decode_error"},
            cause=exc,
        ) from exc

    return ValidatedImage(
        subtype=subtype,
        payload=payload,
        data=data,
        detected_format=sniff_format(data),
        decoded_size_mb=len(data) / _BYTES_PER_MB,
    )
