"""Re-encode oversized images to fit the size budget.

:func:`transcode` decodes the raw bytes with Pillow, corrects EXIF
orientation, shrinks the image to fit within a ``max_dimension`` square
(never enlarging it), re-encodes it to the configured target format and
quality, and checks the result against the size budget again.
"""

from __future__ import annotations

import base64
import io

from PIL import Image, ImageFile, ImageOps, UnidentifiedImageError

from imagegate.config import ImagegateConfig
from imagegate.errors import ImagegateDecodeError, ImagegateImageTooLargeError
from imagegate.models import TranscodeResult

_BYTES_PER_MB = 1024 * 1024

# Pillow encoder names for each target format.
_PIL_FORMATS: dict[str, str] = {
    "webp": "WEBP",
    "jpeg": "JPEG",
    "png": "PNG",
}


def _load(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    try:
        img.load()
    except Exception:
        img.close()
        raise
    return img


def _load_truncated(data: bytes) -> Image.Image:
    """Load whatever scanlines a truncated file carries.

    Pillow only exposes this as a module flag, so it is set for the duration
    of the call and restored afterwards.
    """
    previous = ImageFile.LOAD_TRUNCATED_IMAGES
    ImageFile.LOAD_TRUNCATED_IMAGES = True
    try:
        return _load(data)
    finally:
        ImageFile.LOAD_TRUNCATED_IMAGES = previous


def _decode(data: bytes) -> Image.Image:
    """Open and fully load *data*, raising :class:`ImagegateDecodeError`.

    A strict decode is tried first. Files that fail with an I/O error after
    being identified (client-side encoders occasionally emit truncated
    files) are decoded again best-effort.
    """
    try:
        try:
            img = _load(data)
        except UnidentifiedImageError:
            raise
        except OSError:
            img = _load_truncated(data)
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        SyntaxError,
        ValueError,
    ) as exc:
        raise ImagegateDecodeError(
            message=f"Could not decode image: {exc}",
            context={"size_bytes": len(data), "reason": type(exc).__name__},
            cause=exc,
        ) from exc
    return img


def _convert_mode(img: Image.Image, target: str) -> Image.Image:
    """Convert *img* to a colour mode the *target* encoder supports."""
    has_alpha = img.mode in ("RGBA", "LA", "PA") or (
        img.mode == "P" and "transparency" in img.info
    )
    if target == "jpeg":
        if has_alpha:
            # Flatten onto white; JPEG has no alpha channel.
            rgba = img.convert("RGBA")
            background = Image.new("RGB", rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.getchannel("A"))
            return background
        return img if img.mode == "RGB" else img.convert("RGB")
    if has_alpha:
        return img if img.mode == "RGBA" else img.convert("RGBA")
    return img if img.mode == "RGB" else img.convert("RGB")


def fit_within(width: int, height: int, max_dimension: int) -> tuple[int, int]:
    """Return the size of a *width* x *height* image fitted into a square box.

    Aspect ratio is preserved and images already inside the box are
    returned unchanged (no upscaling).
    """
    if width <= max_dimension and height <= max_dimension:
        return width, height
    scale = min(max_dimension / width, max_dimension / height)
    return max(1, round(width * scale)), max(1, round(height * scale))


def transcode(data: bytes, config: ImagegateConfig) -> TranscodeResult:
    """Shrink and re-encode an image so it fits the size budget.

    Parameters
    ----------
    data:
        Raw decoded image bytes.
    config:
        Supplies ``max_dimension``, ``transcode_format``,
        ``transcode_quality`` and ``max_image_size_mb``.

    Returns
    -------
    TranscodeResult
        The re-encoded image wrapped in a new inline envelope.

    Raises
    ------
    ImagegateDecodeError
        If *data* cannot be decoded, even best-effort.
    ImagegateImageTooLargeError
        If the re-encoded image still exceeds ``max_image_size_mb``.
    """
    target = config.transcode_format
    img = _decode(data)
    try:
        img = ImageOps.exif_transpose(img)
        new_size = fit_within(img.width, img.height, config.max_dimension)
        if new_size != img.size:
            img = img.resize(new_size, Image.LANCZOS)
        img = _convert_mode(img, target)

        buffer = io.BytesIO()
        save_kwargs: dict[str, object] = {"quality": config.transcode_quality}
        if target in ("jpeg", "png"):
            save_kwargs["optimize"] = True
        img.save(buffer, format=_PIL_FORMATS[target], **save_kwargs)
        width, height = img.size
    except (OSError, ValueError) as exc:
        raise ImagegateDecodeError(
            message=f"Could not re-encode image as {target}: {exc}",
            context={"size_bytes": len(data), "reason": type(exc).__name__},
            cause=exc,
        ) from exc
    finally:
        img.close()

    encoded = buffer.getvalue()
    size_mb = len(encoded) / _BYTES_PER_MB
    if size_mb > config.max_image_size_mb:
        raise ImagegateImageTooLargeError(
            message=(
                f"Image size ({size_mb:.2f}MB) exceeds maximum allowed "
                f"({config.max_image_size_mb}MB) after transcoding"
            ),
            context={
                "size_mb": round(size_mb, 4),
                "max_size_mb": config.max_image_size_mb,
                "width": width,
                "height": height,
                "format": target,
            },
        )

    payload = base64.b64encode(encoded).decode("ascii")
    return TranscodeResult(
        data_uri=f"data:image/{target};base64,{payload}",
        data=encoded,
        format=target,
        width=width,
        height=height,
        size_mb=size_mb,
    )
