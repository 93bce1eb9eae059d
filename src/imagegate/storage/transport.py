"""Sync and async HTTP transports for the storage API.

Each transport handles one request attempt:

1. Send the form-encoded request with a bounded timeout.
2. On ``2xx`` -- return the parsed JSON response.
3. On any other status -- raise :class:`ImagegateStoreError` carrying the
   store's error message.
4. On a network-level failure, including redirect loops and undecodable
   bodies -- raise :class:`ImagegateStoreNetworkError`.

There is no retry: a failed upload fails the whole request and is left to
the caller to retry.
"""

from __future__ import annotations

import json as _json
import sys
import time
from typing import Any

import httpx

from imagegate.config import ImagegateConfig
from imagegate.errors import ImagegateStoreError, ImagegateStoreNetworkError
from imagegate.observability import get_logger, resolve_metrics

log = get_logger("imagegate.storage")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _error_message(response: httpx.Response) -> str:
    """Extract the store's error message from an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:500]
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
    return response.text[:500]


def _raise_for_status(response: httpx.Response, method: str, path: str) -> None:
    """Raise :class:`ImagegateStoreError` for any non-2xx response."""
    status = response.status_code
    store_message = _error_message(response)
    raise ImagegateStoreError(
        message=f"Storage error {status} on {method} {path}: {store_message}",
        context={"status_code": status, "path": path, "store_message": store_message},
    )


def _parse_body(response: httpx.Response, method: str, path: str) -> dict:
    if response.status_code == 204 or not response.content:
        return {}
    try:
        body = response.json()
    except ValueError as exc:
        raise ImagegateStoreError(
            message=f"Storage returned a non-JSON body on {method} {path}",
            context={"status_code": response.status_code, "path": path},
            cause=exc,
        ) from exc
    if not isinstance(body, dict):
        raise ImagegateStoreError(
            message=f"Storage returned an unexpected body on {method} {path}",
            context={"status_code": response.status_code, "path": path},
        )
    return body


def _network_error(method: str, path: str, exc: Exception) -> ImagegateStoreNetworkError:
    log.warning(
        "Storage network error",
        extra={
            "extra_fields": {
                "op": "store_request",
                "method": method,
                "path": path,
                "error": str(exc),
            }
        },
    )
    return ImagegateStoreNetworkError(
        message=f"Network error on {method} {path}: {exc}",
        context={"path": path},
        cause=exc,
    )


def _dump_payload(
    method: str,
    url: str,
    payload: dict | None,
    response_status: int | None,
    response_body: Any | None,
    secret: str | None = None,
) -> None:
    """Write a redacted debug dump of the request/response to stderr."""
    from imagegate.utils.redact import redact

    dump: dict[str, Any] = {
        "method": method,
        "url": url,
    }
    if payload is not None:
        dump["request_body"] = payload
    if response_status is not None:
        dump["response_status"] = response_status
    if response_body is not None:
        dump["response_body"] = response_body
    safe_dump = redact(dump, secret)
    print(
        _json.dumps(safe_dump, indent=2, default=str),
        file=sys.stderr,
    )


def _emit_debug_dump(
    config: ImagegateConfig,
    method: str,
    response: httpx.Response,
    form: dict | None,
) -> None:
    if not config.debug_dump_payload:
        return
    try:
        resp_body = response.json()
    except ValueError:
        resp_body = response.text[:1000]
    _dump_payload(
        method, str(response.url), form,
        response.status_code, resp_body,
        secret=config.api_secret,
    )


def _base_url(config: ImagegateConfig) -> str:
    return f"{config.api_base_url.rstrip('/')}/v1_1/{config.cloud_name}"


# ---------------------------------------------------------------------------
# Sync transport
# ---------------------------------------------------------------------------

class StoreTransport:
    """Synchronous HTTP transport for the storage API.

    Parameters
    ----------
    config:
        An :class:`ImagegateConfig` providing the API root, cloud name,
        timeout and proxy.
    """

    def __init__(self, config: ImagegateConfig) -> None:
        self._config = config
        self._metrics = resolve_metrics(config.metrics)

        proxy: httpx.URL | str | None = config.http_proxy
        self._client = httpx.Client(
            base_url=_base_url(config),
            timeout=httpx.Timeout(config.timeout_seconds),
            proxy=proxy,
        )

    def request(self, method: str, path: str, data: dict | None = None) -> dict:
        """Send a form-encoded request and return the parsed JSON body.

        Raises
        ------
        ImagegateStoreError
            On a non-2xx status or an unparseable body.
        ImagegateStoreNetworkError
            On timeouts, connection failures and any other request-level
            error raised by httpx.
        """
        t0 = time.monotonic()
        try:
            response = self._client.request(method, path, data=data)
        except httpx.RequestError as exc:
            self._metrics.increment(
                "imagegate.store_requests_total",
                tags={"method": method, "path": path, "status": "error"},
            )
            raise _network_error(method, path, exc) from exc
        elapsed_ms = (time.monotonic() - t0) * 1000

        self._metrics.increment(
            "imagegate.store_requests_total",
            tags={"method": method, "path": path, "status": str(response.status_code)},
        )
        self._metrics.timing(
            "imagegate.store_request_duration_ms",
            elapsed_ms,
            tags={"method": method, "path": path},
        )

        _emit_debug_dump(self._config, method, response, data)

        if not 200 <= response.status_code < 300:
            _raise_for_status(response, method, path)
        return _parse_body(response, method, path)

    def close(self) -> None:
        """Close the underlying HTTP client and release resources."""
        self._client.close()

    def __enter__(self) -> StoreTransport:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


# ---------------------------------------------------------------------------
# Async transport
# ---------------------------------------------------------------------------

class AsyncStoreTransport:
    """Asynchronous HTTP transport for the storage API.

    Mirrors :class:`StoreTransport` but uses ``httpx.AsyncClient``.
    """

    def __init__(self, config: ImagegateConfig) -> None:
        self._config = config
        self._metrics = resolve_metrics(config.metrics)

        proxy: httpx.URL | str | None = config.http_proxy
        self._client = httpx.AsyncClient(
            base_url=_base_url(config),
            timeout=httpx.Timeout(config.timeout_seconds),
            proxy=proxy,
        )

    async def request(self, method: str, path: str, data: dict | None = None) -> dict:
        """Send a form-encoded request (async).

        See :meth:`StoreTransport.request` for full documentation.
        """
        t0 = time.monotonic()
        try:
            response = await self._client.request(method, path, data=data)
        except httpx.RequestError as exc:
            self._metrics.increment(
                "imagegate.store_requests_total",
                tags={"method": method, "path": path, "status": "error"},
            )
            raise _network_error(method, path, exc) from exc
        elapsed_ms = (time.monotonic() - t0) * 1000

        self._metrics.increment(
            "imagegate.store_requests_total",
            tags={"method": method, "path": path, "status": str(response.status_code)},
        )
        self._metrics.timing(
            "imagegate.store_request_duration_ms",
            elapsed_ms,
            tags={"method": method, "path": path},
        )

        _emit_debug_dump(self._config, method, response, data)

        if not 200 <= response.status_code < 300:
            _raise_for_status(response, method, path)
        return _parse_body(response, method, path)

    async def close(self) -> None:
        """Close the underlying async HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> AsyncStoreTransport:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
