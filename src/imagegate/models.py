"""Public data models for the imagegate pipeline.

This module contains the classification enum, the transient values that
flow between pipeline stages, and the delete result type.  All types are
plain dataclasses with no behaviour beyond what is needed for structural
equality and hashing (where frozen).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

HostedImageRef = str
"""A publicly resolvable image URL, as stored in a product's image list."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ImageKind(str, Enum):
    """Classification of a single submitted image value."""

    INLINE = "inline"
    """The image is embedded as a ``data:image/...;base64,`` envelope."""

    EXTERNAL_REFERENCE = "external_reference"
    """The image is referenced by an ``http://`` or ``https://`` URL."""

    INVALID = "invalid"
    """The value is neither; the pipeline rejects the batch."""


class DeleteStatus(str, Enum):
    """Outcome of a best-effort delete against remote storage."""

    DELETED = "deleted"
    """The store confirmed removal."""

    NOT_FOUND = "not_found"
    """The store had no object under the derived key."""

    SKIPPED = "skipped"
    """No storage key could be derived (e.g. an externally hosted image)."""

    FAILED = "failed"
    """The delete request failed.  Logged, never raised."""


# ---------------------------------------------------------------------------
# Pipeline values
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ValidatedImage:
    """An inline image whose envelope, subtype and payload have been checked.

    Exists only within one pipeline invocation.

    Attributes
    ----------
    subtype:
        Declared subtype, lower-cased (e.g. ``"png"``).
    payload:
        The base64 payload substring of the envelope.
    data:
        Decoded image bytes.
    detected_format:
        Format sniffed from the leading bytes, or ``None`` when the magic
        number is not recognised.  Informational only.
    decoded_size_mb:
        ``len(data) / (1024 * 1024)``.
    """

    subtype: str
    payload: str
    data: bytes
    detected_format: str | None
    decoded_size_mb: float


@dataclass(frozen=True)
class TranscodeResult:
    """Output of the transcoder.

    Attributes
    ----------
    data_uri:
        New inline envelope wrapping the re-encoded bytes, tagged with
        *format*.
    data:
        Re-encoded bytes.
    format:
        Target format (``"webp"``, ``"jpeg"`` or ``"png"``).
    width, height:
        Pixel dimensions after resizing.
    size_mb:
        ``len(data) / (1024 * 1024)``.
    """

    data_uri: str
    data: bytes
    format: str
    width: int
    height: int
    size_mb: float


@dataclass(frozen=True)
class DeleteResult:
    """Result of :meth:`RemoteStore.delete`.

    Attributes
    ----------
    ref:
        The reference that deletion was requested for.
    status:
        The outcome.
    key:
        Storage key derived from *ref*, or ``None`` when none matched.
    error:
        Failure description when *status* is ``FAILED``.
    """

    ref: str
    status: DeleteStatus
    key: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        """``True`` when the object is gone from the store."""
        return self.status in (DeleteStatus.DELETED, DeleteStatus.NOT_FOUND)
