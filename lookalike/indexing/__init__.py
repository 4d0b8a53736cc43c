# Path: lookalike/indexing/__init__.py
# Purpose: Package initializer for ingestion utilities.
# Layer: lookalike/indexing.
# Details: Exposes folder scanning, the ingestion pipeline, and catalog/index reconciliation.

from .ingestion import IngestionPipeline, sync_vector_store
from .scanner import ProductImageScanner

__all__ = ["IngestionPipeline", "ProductImageScanner", "sync_vector_store"]
