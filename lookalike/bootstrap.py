# Path: lookalike/bootstrap.py
# Purpose: Wire settings into explicitly constructed collaborators and services.
# Layer: lookalike.
# Details: Every handle is built here and injected; nothing in the core reaches for a process-wide client.

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from config import AppSettings
from lookalike.catalog import CatalogService, CatalogStore, InMemoryCatalog, SqliteCatalog
from lookalike.concurrency import ReadWriteLock
from lookalike.embedders import CaptionEmbedder, Embedder, PixelStatsEmbedder
from lookalike.errors import ValidationError
from lookalike.indexing.ingestion import IngestionPipeline, sync_vector_store
from lookalike.search.pipeline import SearchPipeline
from lookalike.storage import BlobStorage, LocalBlobStorage
from lookalike.vector_store import FlatStore, VectorStore

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Bundle of wired collaborators handed to the API and scripts."""

    settings: AppSettings
    catalog_store: CatalogStore
    vector_store: VectorStore
    embedder: Optional[Embedder]
    storage: Optional[BlobStorage]
    guard: ReadWriteLock
    ingestion: IngestionPipeline
    catalog: CatalogService
    search: SearchPipeline

    def save_index(self) -> None:
        """Persist the vector index next to the catalog."""

        with self.guard.read():
            self.vector_store.save(str(self.settings.vector_store.index_path))


def build_embedder(settings: AppSettings) -> Embedder:
    name = settings.embedder.name
    if name == "gemini":
        return CaptionEmbedder(
            api_key=settings.embedder.api_key,
            vision_model=settings.embedder.vision_model,
            embedding_model=settings.embedder.embedding_model,
            dim=settings.embedding_dim,
            timeout=settings.embedder.request_timeout,
        )
    if name == "pixel_stats":
        return PixelStatsEmbedder(dim=settings.embedding_dim, timeout=settings.embedder.request_timeout)
    raise ValidationError(f"Unknown embedder: {name}")


def build_catalog_store(settings: AppSettings) -> CatalogStore:
    backend = settings.catalog.backend
    if backend == "sqlite":
        return SqliteCatalog(settings.catalog.database_path, dim=settings.embedding_dim)
    if backend == "memory":
        return InMemoryCatalog()
    raise ValidationError(f"Unknown catalog backend: {backend}")


def build_vector_store(settings: AppSettings) -> VectorStore:
    if settings.vector_store.name != "flat":
        raise ValidationError(f"Unknown vector store: {settings.vector_store.name}")
    store = FlatStore(dim=settings.embedding_dim)
    index_path = Path(settings.vector_store.index_path)
    if index_path.with_suffix(".npy").exists() and index_path.with_suffix(".json").exists():
        store.load(str(index_path))
    return store


def build_services(
    settings: Optional[AppSettings] = None,
    *,
    catalog_store: Optional[CatalogStore] = None,
    vector_store: Optional[VectorStore] = None,
    embedder: Optional[Embedder] = None,
    storage: Optional[BlobStorage] = None,
) -> Services:
    """Construct all services; explicit arguments override what settings would build."""

    settings = settings or AppSettings.from_env()
    catalog_store = catalog_store if catalog_store is not None else build_catalog_store(settings)
    vector_store = vector_store if vector_store is not None else build_vector_store(settings)
    embedder = embedder if embedder is not None else build_embedder(settings)
    storage = storage if storage is not None else LocalBlobStorage(settings.storage.root, timeout=settings.storage.request_timeout)
    if vector_store.dim != settings.embedding_dim:
        raise ValidationError(f"Vector store dimension {vector_store.dim} does not match settings {settings.embedding_dim}.")

    guard = ReadWriteLock()
    sync_vector_store(catalog_store, vector_store, guard)

    ingestion = IngestionPipeline(
        catalog=catalog_store,
        vector_store=vector_store,
        embedder=embedder,
        storage=storage,
        guard=guard,
        max_workers=settings.bulk_concurrency,
        show_progress=settings.show_progress,
    )
    search = SearchPipeline(
        catalog=catalog_store,
        vector_store=vector_store,
        embedder=embedder,
        storage=storage,
        guard=guard,
        default_top_k=settings.default_top_k,
        default_min_score=settings.default_min_score,
    )
    logger.info(
        "Services ready: catalog=%s (%d products), index=%s (%d vectors), embedder=%s",
        catalog_store.name,
        catalog_store.count(),
        vector_store.name,
        len(vector_store),
        embedder.name,
    )
    return Services(
        settings=settings,
        catalog_store=catalog_store,
        vector_store=vector_store,
        embedder=embedder,
        storage=storage,
        guard=guard,
        ingestion=ingestion,
        catalog=CatalogService(catalog_store, ingestion),
        search=search,
    )
