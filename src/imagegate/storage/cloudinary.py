"""Cloudinary-backed image store.

:class:`CloudinaryStore` (sync) and :class:`AsyncCloudinaryStore` (async)
implement the :class:`~imagegate.storage.base.RemoteStore` protocols on
top of the Cloudinary upload API:

1. **Upload** -- ``POST /image/upload`` with the inline image as ``file``,
   the target ``folder`` and a storage-side ``transformation`` that bounds
   dimensions and negotiates quality/format.  Returns ``secure_url``.
2. **Destroy** -- ``POST /image/destroy`` with the ``public_id`` derived
   from a hosted URL by :func:`extract_key`.

Both calls are signed with the account's API secret using the official
SDK's :func:`cloudinary.utils.api_sign_request`.
"""

from __future__ import annotations

import re
import time
from typing import Any
from urllib.parse import unquote, urlparse

from cloudinary.utils import api_sign_request

from imagegate.config import ImagegateConfig
from imagegate.errors import ImagegateStoreError, ImagegateUploadError
from imagegate.models import DeleteResult, DeleteStatus, HostedImageRef
from imagegate.observability import get_logger, resolve_metrics

from .transport import AsyncStoreTransport, StoreTransport

log = get_logger("imagegate.storage")

_UPLOAD_PATH = "/image/upload"
_DESTROY_PATH = "/image/destroy"

# .../v<version>/<public_id>.<ext>
_VERSIONED_PATH_RE = re.compile(r"/v\d+/(?P<key>.+)\.\w+$")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def extract_key(url: str, delivery_host: str | None = None) -> str | None:
    """Derive the storage key (public id) from a hosted image URL.

    Parameters
    ----------
    url:
        A hosted image reference.
    delivery_host:
        When given, URLs on any other host yield ``None``.

    Returns
    -------
    str | None
        The key including its folder (e.g. ``"marketplace/products/abc"``),
        or ``None`` if *url* does not follow the versioned storage layout.

    Examples
    --------
    >>> extract_key("https://res.cloudinary.com/demo/image/upload/v17/app/products/x.webp")
    'app/products/x'
    >>> extract_key("https://cdn.example/a.jpg") is None
    True
    """
    if not isinstance(url, str):
        return None
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if delivery_host is not None and parsed.hostname != delivery_host.lower():
        return None
    match = _VERSIONED_PATH_RE.search(parsed.path)
    if not match:
        return None
    return unquote(match.group("key"))


def _check_credentials(config: ImagegateConfig) -> None:
    missing = [
        name
        for name in ("cloud_name", "api_key", "api_secret")
        if not getattr(config, name)
    ]
    if missing:
        raise ValueError(
            f"Cloudinary store requires {', '.join(missing)} to be configured"
        )


def _signed(params: dict[str, Any], config: ImagegateConfig) -> dict[str, Any]:
    """Add ``timestamp``, ``api_key`` and ``signature`` to *params*."""
    form = dict(params)
    form["timestamp"] = int(time.time())
    form["signature"] = api_sign_request(form, config.api_secret)
    form["api_key"] = config.api_key
    return form


def _upload_form(payload: str, folder: str, config: ImagegateConfig) -> dict[str, Any]:
    params: dict[str, Any] = {"folder": folder}
    if config.upload_transformation:
        params["transformation"] = config.upload_transformation
    form = _signed(params, config)
    form["file"] = payload
    return form


def _secure_url(body: dict, folder: str) -> HostedImageRef:
    url = body.get("secure_url")
    if not isinstance(url, str) or not url:
        raise ImagegateUploadError(
            message="Storage response did not include a secure_url",
            context={"folder": folder, "response_keys": sorted(body)},
        )
    return url


def _upload_failed(exc: ImagegateStoreError, folder: str) -> ImagegateUploadError:
    log.error(
        "Image upload failed",
        extra={
            "extra_fields": {
                "op": "upload",
                "folder": folder,
                "code": getattr(exc.code, "value", exc.code),
                "status_code": exc.context.get("status_code"),
                "error": exc.message,
            }
        },
    )
    return ImagegateUploadError(
        message="Failed to upload image to cloud storage",
        context={"folder": folder, "status_code": exc.context.get("status_code")},
        cause=exc,
    )


def _delete_result(body: dict, ref: str, key: str) -> DeleteResult:
    outcome = body.get("result")
    if outcome == "ok":
        return DeleteResult(ref=ref, status=DeleteStatus.DELETED, key=key)
    if outcome == "not found":
        return DeleteResult(ref=ref, status=DeleteStatus.NOT_FOUND, key=key)
    return DeleteResult(
        ref=ref,
        status=DeleteStatus.FAILED,
        key=key,
        error=f"Unexpected destroy result: {outcome!r}",
    )


def _log_delete(result: DeleteResult, metrics: Any) -> DeleteResult:
    metrics.increment("imagegate.delete_total", tags={"status": result.status.value})
    if result.status == DeleteStatus.FAILED:
        log.warning(
            "Image delete failed",
            extra={
                "extra_fields": {
                    "op": "delete",
                    "ref": result.ref,
                    "key": result.key,
                    "error": result.error,
                }
            },
        )
    else:
        log.debug(
            "Image delete finished",
            extra={
                "extra_fields": {
                    "op": "delete",
                    "ref": result.ref,
                    "key": result.key,
                    "status": result.status.value,
                }
            },
        )
    return result


# ---------------------------------------------------------------------------
# Sync store
# ---------------------------------------------------------------------------

class CloudinaryStore:
    """Synchronous Cloudinary image store.

    Parameters
    ----------
    config:
        Must provide ``cloud_name``, ``api_key`` and ``api_secret``.
    transport:
        Optional pre-built transport (defaults to a new
        :class:`StoreTransport`).

    Raises
    ------
    ValueError
        If credentials are missing.
    """

    def __init__(
        self,
        config: ImagegateConfig,
        transport: StoreTransport | None = None,
    ) -> None:
        _check_credentials(config)
        self._config = config
        self._metrics = resolve_metrics(config.metrics)
        self._transport = transport if transport is not None else StoreTransport(config)

    def upload(self, payload: str, folder: str) -> HostedImageRef:
        """Upload an inline image and return its ``secure_url``.

        Raises
        ------
        ImagegateUploadError
            On any transport or storage-side failure.
        """
        form = _upload_form(payload, folder, self._config)
        try:
            body = self._transport.request("POST", _UPLOAD_PATH, data=form)
        except ImagegateStoreError as exc:
            raise _upload_failed(exc, folder) from exc
        return _secure_url(body, folder)

    def delete(self, ref: str) -> DeleteResult:
        """Best-effort delete of a hosted image.  Never raises."""
        key = extract_key(ref, self._config.delivery_host)
        if key is None:
            return _log_delete(DeleteResult(ref=ref, status=DeleteStatus.SKIPPED), self._metrics)
        try:
            body = self._transport.request(
                "POST", _DESTROY_PATH, data=_signed({"public_id": key}, self._config),
            )
        except ImagegateStoreError as exc:
            result = DeleteResult(ref=ref, status=DeleteStatus.FAILED, key=key, error=exc.message)
        else:
            result = _delete_result(body, ref, key)
        return _log_delete(result, self._metrics)

    def close(self) -> None:
        self._transport.close()

    def __enter__(self) -> CloudinaryStore:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


# ---------------------------------------------------------------------------
# Async store
# ---------------------------------------------------------------------------

class AsyncCloudinaryStore:
    """Asynchronous Cloudinary image store.

    Mirrors :class:`CloudinaryStore` but all I/O methods are coroutines.
    """

    def __init__(
        self,
        config: ImagegateConfig,
        transport: AsyncStoreTransport | None = None,
    ) -> None:
        _check_credentials(config)
        self._config = config
        self._metrics = resolve_metrics(config.metrics)
        self._transport = (
            transport if transport is not None else AsyncStoreTransport(config)
        )

    async def upload(self, payload: str, folder: str) -> HostedImageRef:
        """Upload an inline image (async).

        See :meth:`CloudinaryStore.upload`.
        """
        form = _upload_form(payload, folder, self._config)
        try:
            body = await self._transport.request("POST", _UPLOAD_PATH, data=form)
        except ImagegateStoreError as exc:
            raise _upload_failed(exc, folder) from exc
        return _secure_url(body, folder)

    async def delete(self, ref: str) -> DeleteResult:
        """Best-effort delete of a hosted image (async).  Never raises."""
        key = extract_key(ref, self._config.delivery_host)
        if key is None:
            return _log_delete(DeleteResult(ref=ref, status=DeleteStatus.SKIPPED), self._metrics)
        try:
            body = await self._transport.request(
                "POST", _DESTROY_PATH, data=_signed({"public_id": key}, self._config),
            )
        except ImagegateStoreError as exc:
            result = DeleteResult(ref=ref, status=DeleteStatus.FAILED, key=key, error=exc.message)
        else:
            result = _delete_result(body, ref, key)
        return _log_delete(result, self._metrics)

    async def close(self) -> None:
        await self._transport.close()

    async def __aenter__(self) -> AsyncCloudinaryStore:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
