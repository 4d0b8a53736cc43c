# Path: lookalike/embedders/base.py
# Purpose: Define the Embedder interface that turns product images into fixed-dimension vectors.
# Layer: lookalike/embedders.
# Details: Implementations either return a vector of exactly ``dim`` components or raise EmbeddingError.

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import numpy as np

from lookalike.errors import EmbeddingError


class Embedder(ABC):
    """Abstract base class for all embedders used by ingestion and search."""

    name: str
    dim: int

    @abstractmethod
    def embed_image(self, data: bytes, mime_type: str = "image/jpeg") -> np.ndarray:
        """Return an embedding for raw image bytes."""

    @abstractmethod
    def embed_url(self, url: str) -> np.ndarray:
        """Return an embedding for the image stored at ``url``."""

    def _checked(self, vector: Any) -> np.ndarray:
        """Reject empty, wrong-length, or non-finite provider output."""

        array = np.asarray(vector if vector is not None else [], dtype=np.float64).reshape(-1)
        if array.size == 0:
            raise EmbeddingError(f"{self.name} embedder returned an empty vector.")
        if array.shape[0] != self.dim:
            raise EmbeddingError(f"{self.name} embedder returned {array.shape[0]} dimensions, expected {self.dim}.")
        if not np.all(np.isfinite(array)):
            raise EmbeddingError(f"{self.name} embedder returned non-finite values.")
        return array

    @staticmethod
    def _normalize(vector: np.ndarray) -> np.ndarray:
        """Normalize embedding vectors to unit length to simplify similarity comparisons."""

        norm = np.linalg.norm(vector)
        if norm == 0:
            return vector.astype(np.float64)
        return (vector / norm).astype(np.float64)
