# Path: config/settings.py
# Purpose: Provide typed application configuration models.
# Layer: config.
# Details: Centralizes settings for embedders, vector index, catalog store, blob storage, and ingestion limits.

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, Field

ENV_PREFIX = "LOOKALIKE_"


class EmbedderSettings(BaseModel):
    """Settings describing which embedder implementation to use and how to reach it."""

    name: str = Field(default="gemini", description="Identifier of the embedder implementation (gemini or pixel_stats).")
    vision_model: str = Field(default="gemini-2.0-flash", description="Model used to caption product images.")
    embedding_model: str = Field(default="text-embedding-004", description="Model used to embed captions.")
    api_key: Optional[str] = Field(default=None, description="API key for the hosted embedding provider.")
    request_timeout: float = Field(default=30.0, description="Timeout in seconds for image downloads.")


class VectorStoreSettings(BaseModel):
    """Settings controlling vector index selection and persistence paths."""

    name: str = Field(default="flat", description="Identifier of the vector store implementation.")
    dim: int = Field(default=768, description="Fixed embedding dimensionality for the index.")
    index_path: Path = Field(default=Path("storage/indexes/products"), description="Base path of the serialized index files.")


class CatalogSettings(BaseModel):
    """Settings controlling the durable product catalog."""

    backend: str = Field(default="sqlite", description="Catalog backend identifier (sqlite or memory).")
    database_path: Path = Field(default=Path("storage/db/catalog.sqlite3"), description="Path to the catalog database.")


class StorageSettings(BaseModel):
    """Settings for the blob storage that keeps uploaded product images."""

    root: Path = Field(default=Path("storage/blobs"), description="Directory receiving uploaded image blobs.")
    request_timeout: float = Field(default=30.0, description="Timeout in seconds for store-by-url downloads.")


class AppSettings(BaseModel):
    """Top-level application settings shared across services and interfaces."""

    embedder: EmbedderSettings = Field(default_factory=EmbedderSettings)
    vector_store: VectorStoreSettings = Field(default_factory=VectorStoreSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    default_top_k: int = Field(default=20, description="Number of results returned when the caller does not ask.")
    default_min_score: float = Field(default=0.0, description="Minimum similarity kept when the caller does not ask.")
    bulk_concurrency: int = Field(default=4, ge=1, description="Worker count for bulk ingestion.")
    show_progress: bool = Field(default=False, description="Render a progress bar during bulk ingestion.")
    log_level: str = Field(default="INFO", description="Verbosity level for application logs.")

    @property
    def embedding_dim(self) -> int:
        return self.vector_store.dim

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "AppSettings":
        """Instantiate settings, overriding defaults with LOOKALIKE_* environment variables."""

        env = os.environ if environ is None else environ
        settings = cls()

        def pick(name: str) -> Optional[str]:
            return env.get(f"{ENV_PREFIX}{name}")

        if (value := pick("EMBEDDING_DIM")) is not None:
            settings.vector_store.dim = int(value)
        if (value := pick("INDEX_PATH")) is not None:
            settings.vector_store.index_path = Path(value)
        if (value := pick("EMBEDDER")) is not None:
            settings.embedder.name = value
        if (value := pick("CATALOG_BACKEND")) is not None:
            settings.catalog.backend = value
        if (value := pick("DATABASE_PATH")) is not None:
            settings.catalog.database_path = Path(value)
        if (value := pick("BLOB_ROOT")) is not None:
            settings.storage.root = Path(value)
        if (value := pick("BULK_CONCURRENCY")) is not None:
            settings.bulk_concurrency = max(1, int(value))
        if (value := pick("LOG_LEVEL")) is not None:
            settings.log_level = value.upper()

        settings.embedder.api_key = env.get("GEMINI_API_KEY") or env.get("GOOGLE_API_KEY") or settings.embedder.api_key
        return settings


__all__ = ["AppSettings", "CatalogSettings", "EmbedderSettings", "StorageSettings", "VectorStoreSettings"]
