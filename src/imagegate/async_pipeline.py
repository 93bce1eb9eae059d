"""Asynchronous image ingestion pipeline.

:class:`AsyncImagePipeline` mirrors :class:`~imagegate.pipeline.ImagePipeline`
but all I/O methods are coroutines.  Transcoding runs in the default
executor so Pillow work does not block the event loop.

Usage::

    from imagegate import AsyncCloudinaryStore, AsyncImagePipeline, ImagegateConfig

    config = ImagegateConfig.from_env()
    async with AsyncCloudinaryStore(config) as store:
        pipeline = AsyncImagePipeline(config, store)
        refs = await pipeline.process_for_product(images)

With ``max_concurrent_uploads`` above one, the items of a batch are
transcoded and uploaded concurrently under an ``asyncio.Semaphore``.  The
result order still follows the input order, and on failure the error of
the lowest failing index is raised.  Items still queued when a failure is
seen are not started.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence

from imagegate.config import ImagegateConfig
from imagegate.errors import ImagegateError
from imagegate.image.refs import superseded_refs
from imagegate.image.transcode import transcode
from imagegate.models import HostedImageRef, ImageKind, TranscodeResult, ValidatedImage
from imagegate.observability import get_logger, resolve_metrics
from imagegate.pipeline import (
    PlannedImage,
    attach_index,
    check_batch,
    log_batch_failure,
    log_delete_outcome,
    log_transcoded,
    plan_batch,
    reject_empty,
)
from imagegate.storage.base import AsyncRemoteStore

log = get_logger("imagegate.pipeline")

_NOT_STARTED = object()


class AsyncImagePipeline:
    """Asynchronous image ingestion pipeline.

    Parameters
    ----------
    config:
        Policy and behaviour settings.  Read-only after construction.
    store:
        Any :class:`~imagegate.storage.base.AsyncRemoteStore`.
    """

    def __init__(self, config: ImagegateConfig, store: AsyncRemoteStore) -> None:
        self._config = config
        self._store = store
        self._metrics = resolve_metrics(config.metrics)

    @property
    def config(self) -> ImagegateConfig:
        return self._config

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def process(self, batch: Sequence[object]) -> list[HostedImageRef]:
        """Turn a batch of submitted images into hosted references (async).

        See :meth:`ImagePipeline.process` for full documentation.
        """
        uploaded: list[HostedImageRef] = []
        try:
            planned = plan_batch(batch, self._config, self._metrics)
            if self._config.max_concurrent_uploads > 1:
                refs = await self._ingest_concurrently(planned, uploaded)
            else:
                refs = await self._ingest_in_order(planned, uploaded)
        except ImagegateError as exc:
            log_batch_failure(exc, self._metrics, len(uploaded))
            if self._config.cleanup_on_failure:
                await self._delete_all(uploaded, reason="cleanup_on_failure")
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

    async def process_for_product(self, batch: Sequence[object]) -> list[HostedImageRef]:
        """Like :meth:`process`, but a product needs at least one image."""
        reject_empty(check_batch(batch, self._config), self._config)
        return await self.process(batch)

    async def update_images(
        self,
        current: Sequence[HostedImageRef],
        submitted: Sequence[object] | None,
    ) -> list[HostedImageRef]:
        """Compute a product's image list for an update request (async).

        See :meth:`ImagePipeline.update_images`.
        """
        if submitted is None or not check_batch(submitted, self._config):
            return list(current)
        refs = await self.process(submitted)
        if self._config.delete_superseded:
            await self._delete_all(superseded_refs(current, refs), reason="superseded")
        return refs

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _ingest_in_order(
        self,
        planned: list[PlannedImage],
        uploaded: list[HostedImageRef],
    ) -> list[HostedImageRef]:
        refs: list[HostedImageRef] = []
        for item in planned:
            try:
                ref = await self._ingest(item)
            except ImagegateError as exc:
                attach_index(exc, item.index)
                raise
            if item.kind == ImageKind.INLINE:
                uploaded.append(ref)
            refs.append(ref)
        return refs

    async def _ingest_concurrently(
        self,
        planned: list[PlannedImage],
        uploaded: list[HostedImageRef],
    ) -> list[HostedImageRef]:
        semaphore = asyncio.Semaphore(self._config.max_concurrent_uploads)
        failed = asyncio.Event()

        async def _ingest_one(item: PlannedImage) -> object:
            async with semaphore:
                if failed.is_set():
                    return _NOT_STARTED
                try:
                    return await self._ingest(item)
                except BaseException:
                    failed.set()
                    raise

        results = await asyncio.gather(
            *(_ingest_one(item) for item in planned),
            return_exceptions=True,
        )

        # Successful uploads are recorded even when a sibling failed, so
        # cleanup_on_failure can see them.
        for item, result in zip(planned, results):
            if item.kind == ImageKind.INLINE and isinstance(result, str):
                uploaded.append(result)

        for item, result in zip(planned, results):
            if isinstance(result, BaseException):
                if isinstance(result, ImagegateError):
                    attach_index(result, item.index)
                raise result

        return [result for result in results if isinstance(result, str)]

    async def _ingest(self, item: PlannedImage) -> HostedImageRef:
        if item.kind == ImageKind.EXTERNAL_REFERENCE:
            return item.src

        payload = item.src
        image = item.oversized(self._config)
        if image is not None:
            payload = (await self._transcode(item, image)).data_uri
        return await self._upload(item, payload)

    async def _transcode(self, item: PlannedImage, image: ValidatedImage) -> TranscodeResult:
        loop = asyncio.get_running_loop()
        t0 = time.monotonic()
        try:
            result = await loop.run_in_executor(
                None, transcode, image.data, self._config,
            )
        except ImagegateError:
            self._metrics.increment("imagegate.transcode_total", tags={"status": "failed"})
            raise
        elapsed_ms = (time.monotonic() - t0) * 1000
        self._metrics.increment("imagegate.transcode_total", tags={"status": "ok"})
        self._metrics.timing("imagegate.transcode_duration_ms", elapsed_ms)
        log_transcoded(item, result, elapsed_ms)
        return result

    async def _upload(self, item: PlannedImage, payload: str) -> HostedImageRef:
        folder = self._config.storage_folder
        t0 = time.monotonic()
        try:
            ref = await self._store.upload(payload, folder)
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

    async def _delete_all(self, refs: Sequence[HostedImageRef], reason: str) -> None:
        for ref in refs:
            log_delete_outcome(await self._store.delete(ref), reason)
