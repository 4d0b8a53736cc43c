# Path: lookalike/storage/local_storage.py
# Purpose: Provide a filesystem-backed blob storage.
# Layer: lookalike/storage.
# Details: Blobs are written under a root directory with unique keys and exposed as file:// URLs.

from __future__ import annotations

import logging
import time
import uuid
from pathlib import Path

from lookalike.errors import StorageError
from lookalike.models.domain import StoredBlob
from lookalike.remote import fetch_image, filename_from_url
from .base import BlobStorage

logger = logging.getLogger(__name__)


class LocalBlobStorage(BlobStorage):
    """Store images in a local directory."""

    def __init__(self, root: Path | str, timeout: float = 30.0, name: str = "local") -> None:
        self.root = Path(root)
        self.timeout = timeout
        self.name = name

    def store(self, data: bytes, filename: str, mime_type: str = "image/jpeg") -> StoredBlob:
        if not data:
            raise StorageError("Refusing to store an empty image.")
        safe_name = "".join(ch if ch.isalnum() or ch in "._-" else "_" for ch in Path(filename).name) or "image.jpg"
        key = f"{uuid.uuid4().hex}_{safe_name}"
        target = (self.root / key).resolve()
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Could not write blob {key}: {exc}") from exc
        logger.debug("Stored %d bytes as %s (%s)", len(data), key, mime_type)
        return StoredBlob(url=target.as_uri(), key=key)

    def store_by_url(self, url: str) -> StoredBlob:
        try:
            fetched = fetch_image(url, timeout=self.timeout)
        except Exception as exc:  # noqa: BLE001 - any download failure is a storage failure
            raise StorageError(f"Could not download image from {url}: {exc}") from exc
        filename = filename_from_url(url) or f"image_{int(time.time() * 1000)}.jpg"
        return self.store(fetched.data, filename, fetched.content_type)

    def path_for(self, key: str) -> Path:
        """Return the local path of a stored blob."""

        return (self.root / key).resolve()
