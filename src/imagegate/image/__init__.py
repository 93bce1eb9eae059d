"""Image stages: classification, validation, transcoding and ref helpers.

Exports
-------
classify_image
    Classify a submitted value as inline data, external URL, or invalid.
validate_inline
    Parse an inline envelope, check its subtype and decode its payload.
estimate_decoded_size_mb
    Size estimate of a base64 payload without decoding it.
sniff_format
    Detect an image format from its magic bytes.
transcode
    Shrink and re-encode an oversized image.
fit_within
    Compute a bounded, aspect-preserving size.
separate_images / superseded_refs
    Split submitted lists and diff reference lists.
"""

from .classify import classify_image
from .refs import separate_images, superseded_refs
from .transcode import fit_within, transcode
from .validate import estimate_decoded_size_mb, sniff_format, validate_inline

__all__ = [
    "classify_image",
    "estimate_decoded_size_mb",
    "fit_within",
    "separate_images",
    "sniff_format",
    "superseded_refs",
    "transcode",
    "validate_inline",
]
