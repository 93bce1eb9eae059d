"""Helpers for working with product image lists.

These operate on raw submitted values and hosted references only; no
network or decoding happens here.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from imagegate.image.classify import classify_image
from imagegate.models import ImageKind


def separate_images(images: Iterable[object]) -> tuple[list[str], list[str]]:
    """Split a submitted image list into new and existing images.

    Returns
    -------
    tuple[list[str], list[str]]
        ``(new_images, existing_images)``: inline envelopes and ``http(s)``
        references, each in submission order.  Invalid entries are
        dropped.
    """
    new_images: list[str] = []
    existing_images: list[str] = []
    for image in images:
        kind = classify_image(image)
        if kind == ImageKind.INLINE:
            new_images.append(image)  # type: ignore[arg-type]
        elif kind == ImageKind.EXTERNAL_REFERENCE:
            existing_images.append(image)  # type: ignore[arg-type]
    return new_images, existing_images


def superseded_refs(current: Sequence[str], updated: Sequence[str]) -> list[str]:
    """Return the references in *current* that *updated* no longer uses.

    Order follows *current*; duplicates are reported once.
    """
    keep = set(updated)
    seen: set[str] = set()
    result: list[str] = []
    for ref in current:
        if ref in keep or ref in seen:
            continue
        seen.add(ref)
        result.append(ref)
    return result
