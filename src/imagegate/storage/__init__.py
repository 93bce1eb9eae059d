"""imagegate.storage -- remote image store client.

This sub-package provides:

* :mod:`.base` -- :class:`RemoteStore` / :class:`AsyncRemoteStore` protocols.
* :mod:`.transport` -- single-attempt HTTP transport with a bounded timeout.
* :mod:`.cloudinary` -- Cloudinary implementation and :func:`extract_key`.
"""

from __future__ import annotations

from .base import AsyncRemoteStore, RemoteStore
from .cloudinary import AsyncCloudinaryStore, CloudinaryStore, extract_key
from .transport import AsyncStoreTransport, StoreTransport

__all__ = [
    "AsyncCloudinaryStore",
    "AsyncRemoteStore",
    "AsyncStoreTransport",
    "CloudinaryStore",
    "RemoteStore",
    "StoreTransport",
    "extract_key",
]
