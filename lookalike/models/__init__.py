# Path: lookalike/models/__init__.py
# Purpose: Package initializer for domain model definitions.
# Layer: lookalike/models.
# Details: Exposes dataclasses used across ingestion, search, catalog, and index layers.

from .domain import (
    BulkIngestResult,
    IngestItem,
    Product,
    ProductDraft,
    ProductMetadata,
    RankedResult,
    SearchHistory,
    SearchQuery,
    StoredBlob,
    as_vector,
)

__all__ = [
    "BulkIngestResult",
    "IngestItem",
    "Product",
    "ProductDraft",
    "ProductMetadata",
    "RankedResult",
    "SearchHistory",
    "SearchQuery",
    "StoredBlob",
    "as_vector",
]
