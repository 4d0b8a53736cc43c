# Path: lookalike/vector_store/base.py
# Purpose: Define the VectorStore interface for indexing and searching product embeddings.
# Layer: lookalike/vector_store.
# Details: Provides abstract methods for insertion, rollback removal, filtered top-k queries, and persistence.

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

VectorLike = Union[np.ndarray, Sequence[float]]


class VectorStore(ABC):
    """Abstract base class for pluggable vector index backends.

    Implementations must keep category filtering exact; any approximation is
    only allowed in the similarity search inside the filtered set.
    """

    name: str
    dim: int

    @abstractmethod
    def insert(self, id: str, vector: VectorLike, category: str) -> None:
        """Add a vector with its filterable category. Raises DimensionError on wrong length."""

    @abstractmethod
    def remove(self, id: str) -> bool:
        """Drop a vector; used only to roll back a failed ingestion. Returns True if present."""

    @abstractmethod
    def query(self, vector: VectorLike, top_k: int, category: Optional[str] = None) -> List[Tuple[str, float]]:
        """Return up to top_k (id, score) pairs sorted by score descending."""

    @abstractmethod
    def ids(self) -> List[str]:
        """Return indexed ids in insertion order."""

    @abstractmethod
    def save(self, path: str) -> None:
        """Persist the index to disk."""

    @abstractmethod
    def load(self, path: str) -> None:
        """Load a serialized index from disk."""

    @abstractmethod
    def __len__(self) -> int:
        """Number of indexed vectors."""

    @abstractmethod
    def __contains__(self, id: object) -> bool:
        """True if the id has a vector in the index."""
