"""Shared test fixtures for the imagegate test suite."""

from __future__ import annotations

import base64
import io
import os
from typing import Any

import pytest
from PIL import Image

from imagegate.config import ImagegateConfig
from imagegate.errors import ImagegateUploadError
from imagegate.models import DeleteResult, DeleteStatus
from imagegate.storage.cloudinary import extract_key

# ---------------------------------------------------------------------------
# Image helpers
# ---------------------------------------------------------------------------

def _image_bytes(
    width: int,
    height: int,
    fmt: str = "PNG",
    mode: str = "RGB",
    noise: bool = False,
    **save_kwargs: Any,
) -> bytes:
    """Encode a solid (or random-noise) image of the given size."""
    if noise:
        channels = len(mode)
        img = Image.frombytes(mode, (width, height), os.urandom(width * height * channels))
    else:
        color = (200, 40, 40, 128)[: len(mode)] if len(mode) > 1 else 128
        img = Image.new(mode, (width, height), color)
    buffer = io.BytesIO()
    img.save(buffer, format=fmt, **save_kwargs)
    return buffer.getvalue()


def _data_uri(data: bytes, subtype: str = "png") -> str:
    return f"data:image/{subtype};base64,{base64.b64encode(data).decode('ascii')}"


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeStore:
    """In-memory :class:`RemoteStore` that records every call."""

    def __init__(self, fail_at: set[int] | None = None) -> None:
        self.uploads: list[tuple[str, str]] = []
        self.deleted: list[str] = []
        self._fail_at = fail_at or set()

    def _next_ref(self, folder: str) -> str:
        call = len(self.uploads) - 1
        if call in self._fail_at:
            raise ImagegateUploadError(
                message="Failed to upload image to cloud storage",
                context={"folder": folder},
            )
        return f"https://res.cloudinary.com/demo/image/upload/v1700000000/{folder}/img{call}.webp"

    def upload(self, payload: str, folder: str) -> str:
        self.uploads.append((payload, folder))
        return self._next_ref(folder)

    def delete(self, ref: str) -> DeleteResult:
        self.deleted.append(ref)
        key = extract_key(ref)
        if key is None:
            return DeleteResult(ref=ref, status=DeleteStatus.SKIPPED)
        return DeleteResult(ref=ref, status=DeleteStatus.DELETED, key=key)


class FakeAsyncStore(FakeStore):
    """Async flavour of :class:`FakeStore`."""

    async def upload(self, payload: str, folder: str) -> str:  # type: ignore[override]
        self.uploads.append((payload, folder))
        return self._next_ref(folder)

    async def delete(self, ref: str) -> DeleteResult:  # type: ignore[override]
        return FakeStore.delete(self, ref)


class RecordingMetricsHook:
    """Metrics hook that records every call for later assertions."""

    def __init__(self) -> None:
        self.increments: list[tuple[str, int, dict | None]] = []
        self.timings: list[tuple[str, float, dict | None]] = []
        self.gauges: list[tuple[str, float, dict | None]] = []

    def increment(self, name: str, value: int = 1, tags: dict | None = None) -> None:
        self.increments.append((name, value, tags))

    def timing(self, name: str, ms: float, tags: dict | None = None) -> None:
        self.timings.append((name, ms, tags))

    def gauge(self, name: str, value: float, tags: dict | None = None) -> None:
        self.gauges.append((name, value, tags))

    def names(self) -> list[str]:
        return [name for name, _, _ in self.increments]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def config() -> ImagegateConfig:
    """Default test configuration with dummy store credentials."""
    return ImagegateConfig(
        cloud_name="demo",
        api_key="123456789012345",
        api_secret="test_secret_abcd1234",
    )


@pytest.fixture
def image_bytes():
    """Factory: ``image_bytes(width, height, fmt="PNG", mode="RGB", noise=False)``."""
    return _image_bytes


@pytest.fixture
def data_uri():
    """Factory: ``data_uri(data, subtype="png")``."""
    return _data_uri


@pytest.fixture
def make_store():
    """Factory for :class:`FakeStore`; ``fail_at`` holds failing call numbers."""
    return FakeStore


@pytest.fixture
def make_async_store():
    return FakeAsyncStore


@pytest.fixture
def metrics() -> RecordingMetricsHook:
    return RecordingMetricsHook()
