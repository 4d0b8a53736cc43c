# Path: lookalike/embedders/pixel_embedder.py
# Purpose: Provide a deterministic offline embedder based on pixel statistics.
# Layer: lookalike/embedders.
# Details: Uses Pillow and numpy only; suited to demos, local catalogs, and tests without a hosted model.

from __future__ import annotations

import io

import numpy as np
from PIL import Image, UnidentifiedImageError

from lookalike.errors import EmbeddingError
from lookalike.remote import fetch_image
from .base import Embedder


class PixelStatsEmbedder(Embedder):
    """Embed images from a coarse thumbnail plus per-channel colour histograms."""

    def __init__(self, dim: int = 768, thumbnail: int = 8, bins: int = 16, timeout: float = 30.0) -> None:
        self.dim = dim
        self.thumbnail = thumbnail
        self.bins = bins
        self.timeout = timeout
        self.name = "pixel_stats"

    def embed_image(self, data: bytes, mime_type: str = "image/jpeg") -> np.ndarray:
        """Generate a deterministic image embedding based on pixel statistics."""

        try:
            with Image.open(io.BytesIO(data)) as image:
                rgb = image.convert("RGB")
        except (UnidentifiedImageError, OSError) as exc:
            raise EmbeddingError(f"Could not decode image: {exc}") from exc

        thumb = np.asarray(rgb.resize((self.thumbnail, self.thumbnail)), dtype=np.float64).flatten() / 255.0
        pixels = np.asarray(rgb, dtype=np.float64).reshape(-1, 3)
        histograms = [
            np.histogram(pixels[:, channel], bins=self.bins, range=(0, 255))[0].astype(np.float64) for channel in range(3)
        ]
        features = np.concatenate([thumb, *(hist / max(1.0, hist.sum()) for hist in histograms)])
        tiled = np.tile(features, self.dim // features.size + 1)
        return self._checked(self._normalize(tiled[: self.dim]))

    def embed_url(self, url: str) -> np.ndarray:
        try:
            fetched = fetch_image(url, timeout=self.timeout)
        except Exception as exc:  # noqa: BLE001 - any download failure is an embedding failure
            raise EmbeddingError(f"Could not download image from {url}: {exc}") from exc
        return self.embed_image(fetched.data, fetched.content_type)
