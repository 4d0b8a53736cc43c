# Path: lookalike/storage/base.py
# Purpose: Define the BlobStorage interface for persisting uploaded product images.
# Layer: lookalike/storage.
# Details: Storage returns an opaque (url, key) pair; failures raise StorageError.

from __future__ import annotations

from abc import ABC, abstractmethod

from lookalike.models.domain import StoredBlob


class BlobStorage(ABC):
    """Abstract base class for image blob storage backends."""

    name: str

    @abstractmethod
    def store(self, data: bytes, filename: str, mime_type: str = "image/jpeg") -> StoredBlob:
        """Persist raw bytes and return where they live."""

    @abstractmethod
    def store_by_url(self, url: str) -> StoredBlob:
        """Download an image and persist a copy."""
