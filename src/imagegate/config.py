"""Pipeline configuration for imagegate.

:class:`ImagegateConfig` is a dataclass that captures every tuneable knob
of the image ingestion pipeline: the admission policy, the transcoding
targets, the remote store credentials and the HTTP settings.  One
instance is built at process start (usually via
:meth:`ImagegateConfig.from_env`) and injected into both the pipeline and
the store client; it is treated as read-only afterwards.

:data:`DEFAULT_ALLOWED_FORMATS` is the default subtype allow-list for
inline images.
"""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from dotenv import dotenv_values

# ---------------------------------------------------------------------------
# Policy constants
# ---------------------------------------------------------------------------

DEFAULT_ALLOWED_FORMATS: list[str] = ["jpeg", "jpg", "png", "webp"]
"""Image subtypes accepted in ``data:image/<subtype>;base64,`` envelopes."""

TRANSCODE_FORMATS: tuple[str, ...] = ("webp", "jpeg", "png")
"""Formats the transcoder can re-encode to."""

DEFAULT_UPLOAD_TRANSFORMATION = "c_limit,w_1200,h_800/q_auto:good/f_auto"
"""Storage-side normalization requested with every upload."""

_SECRET_FIELDS = frozenset({"api_secret"})


# ---------------------------------------------------------------------------
# Configuration dataclass
# ---------------------------------------------------------------------------

@dataclass
class ImagegateConfig:
    """Complete configuration for an image pipeline.

    Every parameter has a default.  The store credentials are only needed
    when a :class:`~imagegate.storage.CloudinaryStore` is constructed from
    this config.

    Parameters
    ----------
    max_images:
        Maximum number of images per batch (and per product).
    max_image_size_mb:
        Per-image budget in megabytes (``bytes / (1024 * 1024)``).  Inline
        images above this are transcoded; images still above it after
        transcoding are rejected.
    allowed_formats:
        Accepted inline subtypes, compared case-insensitively.
    max_dimension:
        Bounding box (pixels) applied by the transcoder on both axes.
    transcode_format:
        Output format of the transcoder: ``"webp"``, ``"jpeg"`` or ``"png"``.
    transcode_quality:
        Encoder quality, ``0``-``100``.
    app_name:
        Namespace prefix for the default storage folder.
    folder:
        Explicit storage folder.  ``None`` means ``<app_name>/products``.
    cleanup_on_failure:
        Delete images uploaded earlier in a batch when a later item fails.
        Best-effort; off by default.
    delete_superseded:
        When :meth:`ImagePipeline.update_images` replaces a product's
        images, delete the references that are no longer used.
    max_concurrent_uploads:
        Number of items processed in parallel (async pipeline only).
        ``1`` keeps processing strictly sequential.
    cloud_name:
        Cloudinary cloud name.
    api_key:
        Cloudinary API key.
    api_secret:
        Cloudinary API secret.  Never logged.
    api_base_url:
        Root URL of the upload API.  Override for testing environments.
    delivery_host:
        Host serving uploaded images.  References on any other host are
        never deleted.  ``None`` disables the host check.
    upload_transformation:
        Incoming transformation string sent with every upload.
    timeout_seconds:
        HTTP request timeout in seconds.  Must be finite and positive.
    http_proxy:
        Optional HTTP/HTTPS proxy URL.
    metrics:
        Optional :class:`~imagegate.observability.MetricsHook`.
    debug_dump_payload:
        Write the (redacted) store request/response to *stderr*.
    """

    # ── Policy ──────────────────────────────────────────────────────────
    max_images: int = 10

    max_image_size_mb: float = 5.0

    allowed_formats: list[str] = field(
        default_factory=lambda: list(DEFAULT_ALLOWED_FORMATS),
    )

    # ── Transcoding ─────────────────────────────────────────────────────
    max_dimension: int = 1600

    transcode_format: Literal["webp", "jpeg", "png"] = "webp"

    transcode_quality: int = 80

    # ── Pipeline behaviour ──────────────────────────────────────────────
    app_name: str = "marketplace"

    folder: str | None = None

    cleanup_on_failure: bool = False

    delete_superseded: bool = False

    max_concurrent_uploads: int = 1

    # ── Store ───────────────────────────────────────────────────────────
    cloud_name: str = ""

    api_key: str = ""

    api_secret: str = ""

    api_base_url: str = "https://api.cloudinary.com"

    delivery_host: str | None = "res.cloudinary.com"

    upload_transformation: str = DEFAULT_UPLOAD_TRANSFORMATION

    # ── HTTP ────────────────────────────────────────────────────────────
    timeout_seconds: float = 30.0

    http_proxy: str | None = None

    # ── Observability ──────────────────────────────────────────────────
    metrics: Any | None = None

    # ── Debug ───────────────────────────────────────────────────────────
    debug_dump_payload: bool = False

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self.allowed_formats = [f.lower() for f in self.allowed_formats]
        self.transcode_format = self.transcode_format.lower()  # type: ignore[assignment]

        if self.max_images < 1:
            raise ValueError(f"max_images must be >= 1, got {self.max_images}")
        if self.max_image_size_mb <= 0:
            raise ValueError(f"max_image_size_mb must be > 0, got {self.max_image_size_mb}")
        if not self.allowed_formats:
            raise ValueError("allowed_formats must not be empty")
        if self.max_dimension < 1:
            raise ValueError(f"max_dimension must be >= 1, got {self.max_dimension}")
        if self.transcode_format not in TRANSCODE_FORMATS:
            raise ValueError(
                f"transcode_format must be one of {', '.join(TRANSCODE_FORMATS)}, "
                f"got {self.transcode_format!r}"
            )
        if not 0 <= self.transcode_quality <= 100:
            raise ValueError(
                f"transcode_quality must be between 0 and 100, got {self.transcode_quality}"
            )
        if self.max_concurrent_uploads < 1:
            raise ValueError(
                f"max_concurrent_uploads must be >= 1, got {self.max_concurrent_uploads}"
            )
        if not self.timeout_seconds > 0 or self.timeout_seconds == float("inf"):
            raise ValueError(
                f"timeout_seconds must be finite and > 0, got {self.timeout_seconds}"
            )

    # -- derived values ------------------------------------------------------

    @property
    def storage_folder(self) -> str:
        """Folder that uploads are namespaced under."""
        return self.folder or f"{self.app_name}/products"

    @property
    def max_image_size_bytes(self) -> int:
        return int(self.max_image_size_mb * 1024 * 1024)

    # -- construction --------------------------------------------------------

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str | None] | None = None,
        env_file: str | os.PathLike[str] | None = None,
        **overrides: Any,
    ) -> ImagegateConfig:
        """Build a config from environment variables.

        Values are read from *env_file* (a ``.env`` file parsed with
        python-dotenv) and then from *environ* (``os.environ`` when
        omitted), the latter taking precedence.  Unset variables keep the
        dataclass defaults.  Explicit *overrides* win over both.

        Recognised variables: ``MAX_IMAGES_PER_PRODUCT``,
        ``MAX_IMAGE_SIZE_MB``, ``IMAGE_MAX_DIMENSION``,
        ``IMAGE_TRANSCODE_FORMAT``, ``IMAGE_TRANSCODE_QUALITY``,
        ``APP_NAME``, ``IMAGE_UPLOAD_FOLDER``, ``CLOUDINARY_CLOUD_NAME``,
        ``CLOUDINARY_API_KEY``, ``CLOUDINARY_API_SECRET``,
        ``IMAGE_UPLOAD_TIMEOUT_SECONDS``.

        Raises
        ------
        ValueError
            If a numeric variable cannot be parsed or a value is out of
            range.
        """
        values: dict[str, str | None] = {}
        if env_file is not None:
            values.update(dotenv_values(env_file))
        values.update(os.environ if environ is None else environ)

        kwargs: dict[str, Any] = {}
        for env_name, (field_name, parse) in _ENV_FIELDS.items():
            raw = values.get(env_name)
            if raw is None or raw.strip() == "":
                continue
            try:
                kwargs[field_name] = parse(raw.strip())
            except ValueError as exc:
                raise ValueError(f"Invalid value for {env_name}: {raw!r}") from exc
        kwargs.update(overrides)
        return cls(**kwargs)

    def __repr__(self) -> str:
        """Mask the API secret to prevent accidental credential leakage."""
        parts: list[str] = []
        for f in dataclasses.fields(self):
            val = getattr(self, f.name)
            if f.name in _SECRET_FIELDS:
                masked = f"...{val[-4:]}" if len(val) >= 8 else "****"
                parts.append(f"{f.name}='{masked}'")
            else:
                parts.append(f"{f.name}={val!r}")
        return f"ImagegateConfig({', '.join(parts)})"


_ENV_FIELDS: dict[str, tuple[str, Any]] = {
    "MAX_IMAGES_PER_PRODUCT": ("max_images", int),
    "MAX_IMAGE_SIZE_MB": ("max_image_size_mb", float),
    "IMAGE_MAX_DIMENSION": ("max_dimension", int),
    "IMAGE_TRANSCODE_FORMAT": ("transcode_format", str.lower),
    "IMAGE_TRANSCODE_QUALITY": ("transcode_quality", int),
    "APP_NAME": ("app_name", str),
    "IMAGE_UPLOAD_FOLDER": ("folder", str),
    "CLOUDINARY_CLOUD_NAME": ("cloud_name", str),
    "CLOUDINARY_API_KEY": ("api_key", str),
    "CLOUDINARY_API_SECRET": ("api_secret", str),
    "IMAGE_UPLOAD_TIMEOUT_SECONDS": ("timeout_seconds", float),
}
