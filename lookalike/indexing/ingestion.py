# Path: lookalike/indexing/ingestion.py
# Purpose: Commit new products into the catalog and the vector index together.
# Layer: lookalike/indexing.
# Details: Embedding and upload happen outside any lock; the catalog+index commit is short, exclusive, and rolled back on failure.

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Iterable, List, Optional, Tuple

import numpy as np
from tqdm import tqdm

from lookalike.catalog.base import CatalogStore
from lookalike.concurrency import CancellationToken, ReadWriteLock
from lookalike.embedders.base import Embedder
from lookalike.errors import DimensionError, EmbeddingError, InternalError, LookalikeError, ValidationError
from lookalike.models.domain import BulkIngestResult, IngestItem, Product, ProductDraft, as_vector
from lookalike.storage.base import BlobStorage
from lookalike.vector_store.base import VectorStore

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """Turn images or pre-computed embeddings into committed products.

    Each item either lands in both the catalog and the vector index or in
    neither. Bulk ingestion is best-effort: items are independent and a
    failure in one does not stop the others.
    """

    def __init__(
        self,
        catalog: CatalogStore,
        vector_store: VectorStore,
        embedder: Optional[Embedder] = None,
        storage: Optional[BlobStorage] = None,
        guard: Optional[ReadWriteLock] = None,
        max_workers: int = 4,
        show_progress: bool = False,
    ) -> None:
        self.catalog = catalog
        self.vector_store = vector_store
        self.embedder = embedder
        self.storage = storage
        self.guard = guard or ReadWriteLock()
        self.max_workers = max(1, max_workers)
        self.show_progress = show_progress

    @property
    def dim(self) -> int:
        return self.vector_store.dim

    def ingest(self, item: IngestItem, cancel: Optional[CancellationToken] = None) -> Product:
        """
        Ingest a single product and return it with its assigned id.

        External calls:
        - lookalike/embedders/base.py::Embedder.embed_image / embed_url - when no embedding is supplied.
        - lookalike/storage/base.py::BlobStorage.store / store_by_url - when a storage backend is configured.
        - lookalike/catalog/base.py::CatalogStore.insert and lookalike/vector_store/base.py::VectorStore.insert.
        """

        if cancel is not None:
            cancel.raise_if_cancelled(f"Ingestion of {item.name!r}")
        draft = self._prepare(item)
        if cancel is not None:
            cancel.raise_if_cancelled(f"Ingestion of {item.name!r}")
        product_id = self._commit(draft)
        return Product.from_draft(product_id, draft)

    def ingest_many(self, items: Iterable[IngestItem], cancel: Optional[CancellationToken] = None) -> BulkIngestResult:
        """Ingest items on a bounded worker pool; ids come back in request order."""

        batch = list(items)
        if not batch:
            return BulkIngestResult()

        outcomes: List[Optional[str]] = [None] * len(batch)
        result = BulkIngestResult()
        workers = min(self.max_workers, len(batch))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ingest") as pool:
            futures = {pool.submit(self.ingest, item, cancel): index for index, item in enumerate(batch)}
            progress = tqdm(
                as_completed(futures), total=len(futures), desc="Ingesting products", unit="item", disable=not self.show_progress
            )
            for future in progress:
                index = futures[future]
                try:
                    outcomes[index] = future.result().id
                except LookalikeError as exc:
                    result.errors[index] = exc
                    logger.warning("Bulk item %d (%s) failed: %s", index, batch[index].name, exc.message)
                except Exception as exc:
                    logger.exception("Bulk item %d (%s) failed unexpectedly", index, batch[index].name)
                    error = InternalError(f"{type(exc).__name__}: {exc}")
                    error.__cause__ = exc
                    result.errors[index] = error

        result.ids = [product_id for product_id in outcomes if product_id is not None]
        result.failed = len(result.errors)
        logger.info("Bulk ingestion finished: %d committed, %d failed", len(result.ids), result.failed)
        return result

    def _prepare(self, item: IngestItem) -> ProductDraft:
        """Resolve the vector and image location for an item. Holds no locks."""

        if not isinstance(item.name, str) or not item.name.strip():
            raise ValidationError("Product name must be a non-empty string.")
        if not isinstance(item.category, str) or not item.category.strip():
            raise ValidationError("Product category must be a non-empty string.")

        image_url = item.image_url or ""
        storage_key = item.storage_key or ""

        if item.embedding is not None:
            vector = self._validated(item.embedding)
            if item.image_bytes is not None and not image_url:
                image_url, storage_key = self._upload_bytes(item)
            return self._draft(item, vector, image_url, storage_key)

        if self.embedder is None:
            raise ValidationError("No embedding supplied and no embedder is configured.")

        if item.image_bytes is not None:
            vector = self._embedded(self.embedder.embed_image(item.image_bytes, item.mime_type))
            if not image_url:
                image_url, storage_key = self._upload_bytes(item)
        elif image_url:
            if self.storage is not None and not storage_key:
                blob = self.storage.store_by_url(image_url)
                image_url, storage_key = blob.url, blob.key
            vector = self._embedded(self.embedder.embed_url(image_url))
        else:
            raise ValidationError("An embedding, image bytes, or an image URL is required.")
        return self._draft(item, vector, image_url, storage_key)

    def _upload_bytes(self, item: IngestItem) -> Tuple[str, str]:
        if self.storage is None or item.image_bytes is None:
            return "", ""
        filename = item.filename or f"image_{int(time.time() * 1000)}.jpg"
        blob = self.storage.store(item.image_bytes, filename, item.mime_type)
        return blob.url, blob.key

    def _validated(self, embedding: object) -> np.ndarray:
        try:
            vector = as_vector(embedding)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Embedding must be a sequence of numbers: {exc}") from exc
        if vector.shape[0] != self.dim:
            raise DimensionError(self.dim, int(vector.shape[0]))
        if not np.all(np.isfinite(vector)):
            raise ValidationError("Embedding contains non-finite values.")
        return vector

    def _embedded(self, vector: np.ndarray) -> np.ndarray:
        array = as_vector(vector)
        if array.shape[0] != self.dim:
            raise EmbeddingError(f"Embedder produced {array.shape[0]} dimensions, index expects {self.dim}.")
        return array

    @staticmethod
    def _draft(item: IngestItem, vector: np.ndarray, image_url: str, storage_key: str) -> ProductDraft:
        return ProductDraft(
            name=item.name,
            category=item.category,
            image_url=image_url,
            storage_key=storage_key,
            embedding=vector,
            metadata=item.metadata,
        )

    def _commit(self, draft: ProductDraft) -> str:
        """Insert into catalog then index under the write lock, undoing the catalog row on failure."""

        with self.guard.write():
            product_id = self.catalog.insert(draft)
            try:
                self.vector_store.insert(product_id, draft.embedding, draft.category)
            except Exception:
                logger.warning("Vector insert failed for %s; rolling back catalog row", product_id)
                self.catalog.delete(product_id)
                raise
        logger.info("Committed product %s (%s) in category %s", product_id, draft.name, draft.category)
        return product_id


def sync_vector_store(catalog: CatalogStore, vector_store: VectorStore, guard: Optional[ReadWriteLock] = None) -> Tuple[int, int]:
    """Reconcile a vector index with the catalog after a restart.

    Adds vectors for catalog products missing from the index and drops index
    entries with no catalog row. Returns (added, removed).
    """

    guard = guard or ReadWriteLock()
    added = removed = 0
    with guard.write():
        known = set()
        for product_id, embedding, category in catalog.iter_index_entries():
            known.add(product_id)
            if product_id not in vector_store:
                vector_store.insert(product_id, embedding, category)
                added += 1
        stale = [product_id for product_id in vector_store.ids() if product_id not in known]
        for product_id in stale:
            if vector_store.remove(product_id):
                removed += 1
    if added or removed:
        logger.info("Vector index synced with catalog: %d added, %d removed", added, removed)
    return added, removed
