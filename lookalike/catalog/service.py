# Path: lookalike/catalog/service.py
# Purpose: Expose the catalog operations used by the application layer.
# Layer: lookalike/catalog.
# Details: Writes go through the ingestion pipeline; reads share the commit lock so half-committed items are never visible.

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, List, Optional

from lookalike.concurrency import CancellationToken
from lookalike.models.domain import BulkIngestResult, IngestItem, Product
from .base import CatalogStore

if TYPE_CHECKING:
    from lookalike.indexing.ingestion import IngestionPipeline


class CatalogService:
    """Application-facing catalog API."""

    def __init__(self, store: CatalogStore, ingestion: "IngestionPipeline") -> None:
        self.store = store
        self.ingestion = ingestion

    @property
    def guard(self):
        return self.ingestion.guard

    def add_product(self, item: IngestItem, cancel: Optional[CancellationToken] = None) -> Product:
        return self.ingestion.ingest(item, cancel=cancel)

    def bulk_add_products(
        self, items: Iterable[IngestItem], cancel: Optional[CancellationToken] = None
    ) -> BulkIngestResult:
        return self.ingestion.ingest_many(items, cancel=cancel)

    def get_product(self, product_id: str) -> Product:
        with self.guard.read():
            return self.store.get(product_id)

    def list_products(self, category: Optional[str] = None) -> List[Product]:
        with self.guard.read():
            return self.store.list(category)
