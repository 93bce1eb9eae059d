"""Full error hierarchy for the imagegate pipeline.

Every public error class inherits from ImagegateError. Each carries a
machine-readable ``code`` (from :class:`ErrorCode`), a human-readable
``message``, an optional structured ``context`` dict, and an optional
``cause`` (chained exception).

Error codes are defined as a :class:`str` enum so that they serialise
naturally to JSON and can be matched with simple ``==`` comparisons.
Callers map these to protocol-level responses; the pipeline itself never
does.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Error code enum
# ---------------------------------------------------------------------------

class ErrorCode(str, Enum):
    """Machine-readable error codes for every error the pipeline can raise."""

    TOO_MANY_IMAGES = "TOO_MANY_IMAGES"
    IMAGE_ERROR = "IMAGE_ERROR"
    INVALID_IMAGE_FORMAT = "INVALID_IMAGE_FORMAT"
    INVALID_ENVELOPE = "INVALID_ENVELOPE"
    UNSUPPORTED_FORMAT = "UNSUPPORTED_FORMAT"
    IMAGE_TOO_LARGE = "IMAGE_TOO_LARGE"
    DECODE_ERROR = "DECODE_ERROR"
    UPLOAD_ERROR = "UPLOAD_ERROR"
    STORE_ERROR = "STORE_ERROR"
    STORE_NETWORK_ERROR = "STORE_NETWORK_ERROR"


# ---------------------------------------------------------------------------
# Base error
# ---------------------------------------------------------------------------

class ImagegateError(Exception):
    """Base exception for all imagegate errors.

    Parameters
    ----------
    code:
        A value from :class:`ErrorCode` (or any string) identifying the
        error category.
    message:
        A developer-friendly description of what went wrong.
    context:
        Arbitrary structured data providing extra diagnostic detail.
        Keys and expected types are documented per subclass.  The
        pipeline adds ``index`` (position in the batch) before an error
        leaves :meth:`ImagePipeline.process`.
    cause:
        The underlying exception, if this error wraps another.
    """

    def __init__(
        self,
        code: str,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.code: str = code
        self.message: str = message
        self.context: dict[str, Any] = context or {}
        self.cause: Exception | None = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    def __repr__(self) -> str:
        ctx = f", context={self.context!r}" if self.context else ""
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r}{ctx})"

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly view of the error for response mapping."""
        code = self.code.value if isinstance(self.code, ErrorCode) else str(self.code)
        return {
            "code": code,
            "message": self.message,
            "context": dict(self.context),
        }


# ---------------------------------------------------------------------------
# Batch errors
# ---------------------------------------------------------------------------

class ImagegateTooManyImagesError(ImagegateError):
    """The batch holds more images than the configured policy maximum.

    Context keys: ``count``, ``max_images``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.TOO_MANY_IMAGES,
            message=message,
            context=context,
            cause=cause,
        )


# ---------------------------------------------------------------------------
# Image errors
# ---------------------------------------------------------------------------

class ImagegateImageError(ImagegateError):
    """Base class for errors tied to a single image in a batch.

    Context varies by subclass.
    """

    def __init__(
        self,
        code: str = ErrorCode.IMAGE_ERROR,
        message: str = "Image error",
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            context=context,
            cause=cause,
        )


class ImagegateInvalidImageFormatError(ImagegateImageError):
    """The input is neither an inline image nor an ``http(s)`` URL.

    Context keys: ``src`` (truncated), ``reason``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
        code: str = ErrorCode.INVALID_IMAGE_FORMAT,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            context=context,
            cause=cause,
        )


class ImagegateInvalidEnvelopeError(ImagegateInvalidImageFormatError):
    """An inline image envelope could not be parsed or its payload decoded.

    Context keys: ``src`` (truncated), ``reason``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            message=message,
            context=context,
            cause=cause,
            code=ErrorCode.INVALID_ENVELOPE,
        )


class ImagegateUnsupportedFormatError(ImagegateImageError):
    """The declared image subtype is not in the configured allow-list.

    Context keys: ``subtype``, ``allowed_formats``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.UNSUPPORTED_FORMAT,
            message=message,
            context=context,
            cause=cause,
        )


class ImagegateImageTooLargeError(ImagegateImageError):
    """The image exceeds the size budget even after transcoding.

    Not retryable: the image cannot be admitted under the current policy.

    Context keys: ``size_mb``, ``max_size_mb``, ``width``, ``height``,
    ``format``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.IMAGE_TOO_LARGE,
            message=message,
            context=context,
            cause=cause,
        )


class ImagegateDecodeError(ImagegateImageError):
    """The image bytes could not be decoded to a raster image.

    Context keys: ``subtype``, ``size_bytes``, ``reason``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.DECODE_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


# ---------------------------------------------------------------------------
# Upload / store errors
# ---------------------------------------------------------------------------

class ImagegateUploadError(ImagegateImageError):
    """Uploading an image to remote storage failed.

    Context keys: ``folder``, ``status_code`` (when the store answered).
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.UPLOAD_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class ImagegateStoreError(ImagegateError):
    """The storage API answered with a non-success status.

    Raised by the storage transport only; the store client translates it
    into :class:`ImagegateUploadError` (upload) or a failed
    :class:`~imagegate.models.DeleteResult` (delete).

    Context keys: ``status_code``, ``path``, ``store_message``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
        code: str = ErrorCode.STORE_ERROR,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            context=context,
            cause=cause,
        )


class ImagegateStoreNetworkError(ImagegateStoreError):
    """A transport-level failure occurred (timeout, DNS, connection reset).

    Context keys: ``path``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            message=message,
            context=context,
            cause=cause,
            code=ErrorCode.STORE_NETWORK_ERROR,
        )
