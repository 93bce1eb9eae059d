"""Synchronous image ingestion pipeline.

:class:`ImagePipeline` turns a submitted list of images (inline envelopes
and/or hosted URLs) into the ordered list of hosted references that the
caller writes into a product record.

Usage::

    from imagegate import CloudinaryStore, ImagegateConfig, ImagePipeline

    config = ImagegateConfig.from_env()
    with CloudinaryStore(config) as store:
        pipeline = ImagePipeline(config, store)
        product["images"] = pipeline.process_for_product(payload["images"])

A batch is processed in two phases.  First every item is classified and
inline items are validated; nothing touches the network until the whole
batch has passed.  Then, in input order, URLs pass through unchanged and
inline images are transcoded (when over budget) and uploaded.  The first
failure aborts the batch.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from imagegate.config import ImagegateConfig
from imagegate.errors import (
    ImagegateError,
    ImagegateInvalidImageFormatError,
    ImagegateTooManyImagesError,
)
from imagegate.image.classify import classify_image
from imagegate.image.refs import superseded_refs
from imagegate.image.transcode import transcode
from imagegate.image.validate import validate_inline
from imagegate.models import (
    DeleteResult,
    HostedImageRef,
    ImageKind,
    TranscodeResult,
    ValidatedImage,
)
from imagegate.observability import get_logger, resolve_metrics
from imagegate.storage.base import RemoteStore
from imagegate.utils.redact import truncate_src

log = get_logger("imagegate.pipeline")


# ---------------------------------------------------------------------------
# Planning (shared with the async pipeline)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PlannedImage:
    """One batch item after classification and validation."""

    index: int
    kind: ImageKind
    src: str
    image: ValidatedImage | None = None

    def oversized(self, config: ImagegateConfig) -> ValidatedImage | None:
        """Return the validated image when it exceeds the size budget."""
        if self.image is not None and self.image.decoded_size_mb > config.max_image_size_mb:
            return self.image
        return None


def attach_index(exc: ImagegateError, index: int) -> ImagegateError:
    """Record the offending batch position on *exc*."""
    exc.context.setdefault("index", index)
    return exc


def check_batch(batch: object, config: ImagegateConfig) -> Sequence[Any]:
    """Reject non-list input and batches over ``config.max_images``."""
    if isinstance(batch, (str, bytes)) or not isinstance(batch, Sequence):
        raise ImagegateInvalidImageFormatError(
            message="Images must be an array",
            context={"reason": "not_a_list", "type": type(batch).__name__},
        )
    if len(batch) > config.max_images:
        raise ImagegateTooManyImagesError(
            message=f"Maximum {config.max_images} images allowed per product",
            context={"count": len(batch), "max_images": config.max_images},
        )
    return batch


def plan_batch(batch: object, config: ImagegateConfig, metrics: Any) -> list[PlannedImage]:
    """Classify and validate every item without any I/O.

    Raises the error of the lowest-index failing item, with ``index`` in
    its context.
    """
    items = check_batch(batch, config)
    metrics.gauge("imagegate.batch_size", len(items))
    planned: list[PlannedImage] = []
    for index, value in enumerate(items):
        kind = classify_image(value)
        metrics.increment("imagegate.images_total", tags={"kind": kind.value})

        if kind == ImageKind.INVALID:
            raise ImagegateInvalidImageFormatError(
                message="Invalid image format. Must be base64 or valid URL",
                context={"index": index, "src": truncate_src(value), "reason": "unrecognised"},
            )

        if kind == ImageKind.EXTERNAL_REFERENCE:
            planned.append(PlannedImage(index=index, kind=kind, src=value))
            continue

        try:
            image = validate_inline(value, config)
        except ImagegateError as exc:
            attach_index(exc, index)
            raise
        planned.append(PlannedImage(index=index, kind=kind, src=value, image=image))
    return planned


def log_transcoded(item: PlannedImage, result: TranscodeResult, elapsed_ms: float) -> None:
    log.info(
        "Image transcoded",
        extra={
            "extra_fields": {
                "op": "transcode",
                "index": item.index,
                "original_mb": round(item.image.decoded_size_mb, 3) if item.image else None,
                "size_mb": round(result.size_mb, 3),
                "width": result.width,
                "height": result.height,
                "format": result.format,
                "duration_ms": round(elapsed_ms, 1),
            }
        },
    )


def log_batch_failure(exc: ImagegateError, metrics: Any, uploaded: int) -> None:
    code = exc.code.value if hasattr(exc.code, "value") else str(exc.code)
    metrics.increment("imagegate.batch_failure_total", tags={"code": code})
    log.warning(
        "Image batch rejected",
        extra={
            "extra_fields": {
                "op": "process",
                "code": code,
                "index": exc.context.get("index"),
                "error": exc.message,
                "orphaned_uploads": uploaded,
            }
        },
    )


def log_delete_outcome(result: DeleteResult, reason: str) -> None:
    if result.ok:
        return
    log.warning(
        "Image cleanup did not complete",
        extra={
            "extra_fields": {
                "op": "delete",
                "reason": reason,
                "ref": result.ref,
                "status": result.status.value,
                "error": result.error,
            }
        },
    )


def reject_empty(batch: Sequence[Any], config: ImagegateConfig) -> None:
    if len(batch) == 0:
        raise ImagegateInvalidImageFormatError(
            message=f"Product must have between 1 and {config.max_images} images",
            context={"count": 0, "max_images": config.max_images, "reason": "empty"},
        )


# ---------------------------------------------------------------------------
# Sync pipeline
# ---------------------------------------------------------------------------

class ImagePipeline:
    """Synchronous image ingestion pipeline.

    Parameters
    ----------
    config:
        Policy and behaviour settings.  Read-only after construction.
    store:
        Any :class:`~imagegate.storage.base.RemoteStore`.
    """

    def __init__(self, config: ImagegateConfig, store: RemoteStore) -> None:
        self._config = config
        self._store = store
        self._metrics = resolve_metrics(config.metrics)

    @property
    def config(self) -> ImagegateConfig:
        return self._config

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def process(self, batch: Sequence[object]) -> list[HostedImageRef]:
        """Turn a batch of submitted images into hosted references.

        Parameters
        ----------
        batch:
            Ordered list of inline envelopes and/or ``http(s)`` URLs.

        Returns
        -------
        list[str]
            One hosted reference per input item, in input order.  URLs are
            returned byte-for-byte unchanged.

        Raises
        ------
        ImagegateTooManyImagesError
            If the batch exceeds ``max_images``; the store is not called.
        ImagegateInvalidImageFormatError
            For non-list input, unrecognised items or malformed envelopes
            (:class:`ImagegateInvalidEnvelopeError`).
        ImagegateUnsupportedFormatError
            If an inline subtype is not allowed.
        ImagegateDecodeError
            If an over-budget image cannot be decoded.
        ImagegateImageTooLargeError
            If an image is still over budget after transcoding.
        ImagegateUploadError
            If the store fails.  Earlier uploads from this batch are kept
            unless ``cleanup_on_failure`` is set.
        """
        uploaded: list[HostedImageRef] = []
        try:
            planned = plan_batch(batch, self._config, self._metrics)
            refs: list[HostedImageRef] = []
            for item in planned:
                try:
                    ref = self._ingest(item)
                except ImagegateError as exc:
                    attach_index(exc, item.index)
                    raise
                if item.kind == ImageKind.INLINE:
                    uploaded.append(ref)
                refs.append(ref)
        except ImagegateError as exc:
            log_batch_failure(exc, self._metrics, len(uploaded))
            if self._config.cleanup_on_failure:
                self._delete_all(uploaded, reason="cleanup_on_failure")
            raise

        log.info(
            "Image batch processed",
            extra={
                "extra_fields": {
                    "op": "process",
                    "images": len(refs),
                    "uploaded": len(uploaded),
                }
            },
        )
        return refs

    def process_for_product(self, batch: Sequence[object]) -> list[HostedImageRef]:
        """Like :meth:`process`, but a product needs at least one image."""
        reject_empty(check_batch(batch, self._config), self._config)
        return self.process(batch)

    def update_images(
        self,
        current: Sequence[HostedImageRef],
        submitted: Sequence[object] | None,
    ) -> list[HostedImageRef]:
        """Compute a product's image list for an update request.

        ``None`` or an empty *submitted* list keeps *current* untouched.
        Otherwise *submitted* is processed and replaces it; with
        ``delete_superseded`` the references dropped by the update are
        deleted best-effort afterwards.
        """
        if submitted is None or not check_batch(submitted, self._config):
            return list(current)
        refs = self.process(submitted)
        if self._config.delete_superseded:
            self._delete_all(superseded_refs(current, refs), reason="superseded")
        return refs

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _ingest(self, item: PlannedImage) -> HostedImageRef:
        if item.kind == ImageKind.EXTERNAL_REFERENCE:
            return item.src

        payload = item.src
        image = item.oversized(self._config)
        if image is not None:
            payload = self._transcode(item, image).data_uri
        return self._upload(item, payload)

    def _transcode(self, item: PlannedImage, image: ValidatedImage) -> TranscodeResult:
        t0 = time.monotonic()
        try:
            result = transcode(image.data, self._config)
        except ImagegateError:
            self._metrics.increment("imagegate.transcode_total", tags={"status": "failed"})
            raise
        elapsed_ms = (time.monotonic() - t0) * 1000
        self._metrics.increment("imagegate.transcode_total", tags={"status": "ok"})
        self._metrics.timing("imagegate.transcode_duration_ms", elapsed_ms)
        log_transcoded(item, result, elapsed_ms)
        return result

    def _upload(self, item: PlannedImage, payload: str) -> HostedImageRef:
        folder = self._config.storage_folder
        t0 = time.monotonic()
        try:
            ref = self._store.upload(payload, folder)
        except ImagegateError:
            self._metrics.increment("imagegate.upload_failure_total")
            raise
        self._metrics.increment("imagegate.upload_success_total")
        self._metrics.timing("imagegate.upload_duration_ms", (time.monotonic() - t0) * 1000)
        log.debug(
            "Image uploaded",
            extra={"extra_fields": {"op": "upload", "index": item.index, "folder": folder}},
        )
        return ref

    def _delete_all(self, refs: Sequence[HostedImageRef], reason: str) -> None:
        for ref in refs:
            log_delete_outcome(self._store.delete(ref), reason)
