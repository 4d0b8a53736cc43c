# Path: lookalike/catalog/__init__.py
# Purpose: Package initializer for catalog stores and the application-facing catalog service.
# Layer: lookalike/catalog.
# Details: Exposes the CatalogStore contract with in-memory and SQLite backends.

from .base import CatalogStore
from .memory_store import InMemoryCatalog
from .service import CatalogService
from .sqlite_store import SqliteCatalog

__all__ = ["CatalogService", "CatalogStore", "InMemoryCatalog", "SqliteCatalog"]
