# Path: lookalike/catalog/base.py
# Purpose: Define the CatalogStore interface for durable product and search-history records.
# Layer: lookalike/catalog.
# Details: Owns identity and metadata only; similarity logic lives in the vector store.

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np

from lookalike.models.domain import Product, ProductDraft, SearchHistory


def new_id() -> str:
    """Return a fresh opaque identifier."""

    return uuid.uuid4().hex


class CatalogStore(ABC):
    """Abstract base class for catalog backends."""

    name: str

    @abstractmethod
    def insert(self, draft: ProductDraft) -> str:
        """Store a product and return its newly assigned id."""

    def bulk_insert(self, drafts: Sequence[ProductDraft]) -> List[str]:
        """Store products in order and return their ids in the same order."""

        return [self.insert(draft) for draft in drafts]

    @abstractmethod
    def get(self, product_id: str) -> Product:
        """Return the product or raise NotFound."""

    @abstractmethod
    def list(self, category: Optional[str] = None) -> List[Product]:
        """Return all products, optionally restricted to one category."""

    @abstractmethod
    def delete(self, product_id: str) -> bool:
        """Remove a product; reserved for ingestion rollback. Returns True if it existed."""

    @abstractmethod
    def count(self) -> int:
        """Number of stored products."""

    @abstractmethod
    def append_history(self, record: SearchHistory) -> None:
        """Append a search history record."""

    @abstractmethod
    def list_history(self, limit: Optional[int] = None) -> List[SearchHistory]:
        """Return history records, newest first."""

    def iter_index_entries(self) -> Iterator[Tuple[str, np.ndarray, str]]:
        """Yield (id, embedding, category) for every product; used to rebuild a vector index."""

        for product in self.list():
            yield product.id, product.embedding, product.category
