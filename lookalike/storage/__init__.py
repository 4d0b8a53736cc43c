# Path: lookalike/storage/__init__.py
# Purpose: Package initializer for blob storage interfaces and implementations.
# Layer: lookalike/storage.
# Details: Exposes the BlobStorage contract and the local filesystem backend.

from .base import BlobStorage
from .local_storage import LocalBlobStorage

__all__ = ["BlobStorage", "LocalBlobStorage"]
