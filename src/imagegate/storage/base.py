"""Remote store protocols.

The pipeline depends only on these protocols, so any object with matching
``upload`` / ``delete`` methods can stand in for the production store.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from imagegate.models import DeleteResult, HostedImageRef


@runtime_checkable
class RemoteStore(Protocol):
    """Synchronous durable image storage."""

    def upload(self, payload: str, folder: str) -> HostedImageRef:
        """Store an inline image under *folder* and return its public URL.

        Raises :class:`~imagegate.errors.ImagegateUploadError` on failure.
        """
        ...

    def delete(self, ref: str) -> DeleteResult:
        """Best-effort delete of a previously hosted image.  Never raises."""
        ...


@runtime_checkable
class AsyncRemoteStore(Protocol):
    """Asynchronous durable image storage."""

    async def upload(self, payload: str, folder: str) -> HostedImageRef:
        ...

    async def delete(self, ref: str) -> DeleteResult:
        ...
