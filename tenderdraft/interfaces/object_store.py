"""Abstract base class for binary file storage.

Uploaded reference documents are kept in an object store so the original
file can be downloaded later; only the returned URL is recorded on the
document.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: LocalObjectStore (tenderdraft/providers/object_store/)
class IObjectStore(ABC):
    """Contract for put / get-URL object storage."""

    @abstractmethod
    async def put(self, data: bytes, path: str, content_type: str | None = None) -> str:
        """Store *data* under *path* and return a retrievable URL.

        Raises
        ------
        tenderdraft.utils.errors.StorageWriteError
            If the bytes could not be stored.
        """

    @abstractmethod
    def get_url(self, path: str) -> str:
        """Return the URL at which an object stored under *path* is served."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"local"``."""
