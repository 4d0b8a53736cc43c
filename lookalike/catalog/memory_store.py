# Path: lookalike/catalog/memory_store.py
# Purpose: Provide an in-process catalog for tests, demos, and ephemeral deployments.
# Layer: lookalike/catalog.
# Details: Dict-backed storage guarded by a lock; records are copied in and out.

from __future__ import annotations

import threading
from dataclasses import replace
from typing import Dict, List, Optional

from lookalike.errors import NotFound
from lookalike.models.domain import Product, ProductDraft, SearchHistory, as_vector
from .base import CatalogStore, new_id


class InMemoryCatalog(CatalogStore):
    """Catalog kept in memory; contents are lost when the process exits."""

    def __init__(self, name: str = "memory") -> None:
        self.name = name
        self._lock = threading.Lock()
        self._products: Dict[str, Product] = {}
        self._history: List[SearchHistory] = []

    def insert(self, draft: ProductDraft) -> str:
        product_id = new_id()
        product = Product.from_draft(product_id, draft)
        with self._lock:
            self._products[product_id] = product
        return product_id

    def get(self, product_id: str) -> Product:
        with self._lock:
            product = self._products.get(product_id)
        if product is None:
            raise NotFound(f"Product {product_id} not found.")
        return replace(product, embedding=product.embedding.copy())

    def list(self, category: Optional[str] = None) -> List[Product]:
        with self._lock:
            products = list(self._products.values())
        if category:
            products = [product for product in products if product.category == category]
        return [replace(product, embedding=product.embedding.copy()) for product in products]

    def delete(self, product_id: str) -> bool:
        with self._lock:
            return self._products.pop(product_id, None) is not None

    def count(self) -> int:
        with self._lock:
            return len(self._products)

    def append_history(self, record: SearchHistory) -> None:
        stored = replace(record, query_embedding=as_vector(record.query_embedding), result_ids=list(record.result_ids))
        with self._lock:
            self._history.append(stored)

    def list_history(self, limit: Optional[int] = None) -> List[SearchHistory]:
        with self._lock:
            records = list(reversed(self._history))
        return records[:limit] if limit is not None else records
