"""Image input classification.

Classifies a raw submitted image value into one of the :class:`ImageKind`
variants so the pipeline knows how to route it.
"""

from __future__ import annotations

import re

from imagegate.models import ImageKind

# The envelope prefix only; full parsing happens in the validator.
_INLINE_PREFIX_RE = re.compile(r"^data:image/", re.IGNORECASE)

_URL_PREFIX_RE = re.compile(r"^https?://", re.IGNORECASE)


def classify_image(value: object) -> ImageKind:
    """Classify an image value as inline data, an external URL, or invalid.

    Parameters
    ----------
    value:
        One entry of a submitted image list.  Anything that is not a
        string is :attr:`ImageKind.INVALID`.

    Returns
    -------
    ImageKind
        The classification.  Never raises.
    """
    if not isinstance(value, str):
        return ImageKind.INVALID

    if _INLINE_PREFIX_RE.match(value):
        return ImageKind.INLINE

    if _URL_PREFIX_RE.match(value):
        return ImageKind.EXTERNAL_REFERENCE

    return ImageKind.INVALID
