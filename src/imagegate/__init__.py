"""imagegate: image ingestion pipeline for marketplace product listings.

Public re-exports
-----------------

* **Pipelines:** :class:`ImagePipeline`, :class:`AsyncImagePipeline`
* **Stores:** :class:`CloudinaryStore`, :class:`AsyncCloudinaryStore` and
  the :class:`RemoteStore` protocols
* **Configuration:** :class:`ImagegateConfig`
* **Errors:** Every :class:`ImagegateError` subclass and :class:`ErrorCode`
* **Models:** Classification enums and stage result dataclasses

Usage::

    from imagegate import CloudinaryStore, ImagegateConfig, ImagePipeline

    config = ImagegateConfig.from_env()
    with CloudinaryStore(config) as store:
        refs = ImagePipeline(config, store).process(
            ["data:image/png;base64,iVBORw0KGgo...", "https://cdn.example/a.jpg"]
        )
"""

from __future__ import annotations

# ── Pipelines ──────────────────────────────────────────────────────────
from imagegate.async_pipeline import AsyncImagePipeline

# ── Configuration ───────────────────────────────────────────────────────
from imagegate.config import (
    DEFAULT_ALLOWED_FORMATS,
    DEFAULT_UPLOAD_TRANSFORMATION,
    ImagegateConfig,
)

# ── Errors ──────────────────────────────────────────────────────────────
from imagegate.errors import (
    ErrorCode,
    ImagegateDecodeError,
    ImagegateError,
    ImagegateImageError,
    ImagegateImageTooLargeError,
    ImagegateInvalidEnvelopeError,
    ImagegateInvalidImageFormatError,
    ImagegateStoreError,
    ImagegateStoreNetworkError,
    ImagegateTooManyImagesError,
    ImagegateUnsupportedFormatError,
    ImagegateUploadError,
)

# ── Image stages ────────────────────────────────────────────────────────
from imagegate.image import classify_image, transcode, validate_inline

# ── Models ──────────────────────────────────────────────────────────────
from imagegate.models import (
    DeleteResult,
    DeleteStatus,
    HostedImageRef,
    ImageKind,
    TranscodeResult,
    ValidatedImage,
)
from imagegate.pipeline import ImagePipeline

# ── Stores ──────────────────────────────────────────────────────────────
from imagegate.storage import (
    AsyncCloudinaryStore,
    AsyncRemoteStore,
    CloudinaryStore,
    RemoteStore,
    extract_key,
)

# ── Public surface ──────────────────────────────────────────────────────

__all__ = [
    # Pipelines
    "ImagePipeline",
    "AsyncImagePipeline",
    # Stores
    "RemoteStore",
    "AsyncRemoteStore",
    "CloudinaryStore",
    "AsyncCloudinaryStore",
    "extract_key",
    # Configuration
    "ImagegateConfig",
    "DEFAULT_ALLOWED_FORMATS",
    "DEFAULT_UPLOAD_TRANSFORMATION",
    # Error base + code enum
    "ImagegateError",
    "ErrorCode",
    # Batch errors
    "ImagegateTooManyImagesError",
    # Image errors
    "ImagegateImageError",
    "ImagegateInvalidImageFormatError",
    "ImagegateInvalidEnvelopeError",
    "ImagegateUnsupportedFormatError",
    "ImagegateImageTooLargeError",
    "ImagegateDecodeError",
    "ImagegateUploadError",
    # Store errors
    "ImagegateStoreError",
    "ImagegateStoreNetworkError",
    # Image stages
    "classify_image",
    "validate_inline",
    "transcode",
    # Models
    "HostedImageRef",
    "ImageKind",
    "DeleteStatus",
    "ValidatedImage",
    "TranscodeResult",
    "DeleteResult",
]
