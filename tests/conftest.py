"""Shared fixtures and fake collaborators for the test suite."""

import threading
import time
from typing import Dict, Iterable, Optional, Sequence

import numpy as np
import pytest

from lookalike.catalog import InMemoryCatalog
from lookalike.concurrency import ReadWriteLock
from lookalike.embedders.base import Embedder
from lookalike.errors import EmbeddingError, StorageError
from lookalike.indexing.ingestion import IngestionPipeline
from lookalike.models.domain import IngestItem, StoredBlob
from lookalike.search.pipeline import SearchPipeline
from lookalike.storage.base import BlobStorage
from lookalike.vector_store import FlatStore

DIM = 4


class FakeEmbedder(Embedder):
    """Embedder returning canned vectors keyed by image bytes or URL."""

    def __init__(
        self,
        vectors: Optional[Dict[object, Sequence[float]]] = None,
        dim: int = DIM,
        failing: Iterable[object] = (),
        delays: Optional[Dict[object, float]] = None,
    ) -> None:
        self.name = "fake"
        self.dim = dim
        self.vectors = dict(vectors or {})
        self.failing = set(failing)
        self.delays = dict(delays or {})
        self.calls = []
        self._lock = threading.Lock()

    def _lookup(self, key: object) -> np.ndarray:
        with self._lock:
            self.calls.append(key)
        time.sleep(self.delays.get(key, 0.0))
        if key in self.failing or key not in self.vectors:
            raise EmbeddingError(f"fake provider failed for {key!r}")
        return self._checked(self.vectors[key])

    def embed_image(self, data: bytes, mime_type: str = "image/jpeg") -> np.ndarray:
        return self._lookup(data)

    def embed_url(self, url: str) -> np.ndarray:
        return self._lookup(url)


class FakeStorage(BlobStorage):
    """In-memory blob storage."""

    def __init__(self, fail: bool = False) -> None:
        self.name = "fake"
        self.fail = fail
        self.blobs: Dict[str, bytes] = {}

    def store(self, data: bytes, filename: str, mime_type: str = "image/jpeg") -> StoredBlob:
        if self.fail:
            raise StorageError("fake storage is down")
        key = f"key-{len(self.blobs)}-{filename}"
        self.blobs[key] = data
        return StoredBlob(url=f"https://blobs.test/{key}", key=key)

    def store_by_url(self, url: str) -> StoredBlob:
        return self.store(url.encode("utf-8"), url.rsplit("/", 1)[-1])


@pytest.fixture
def catalog():
    return InMemoryCatalog()


@pytest.fixture
def vector_store():
    return FlatStore(dim=DIM)


@pytest.fixture
def guard():
    return ReadWriteLock()


@pytest.fixture
def embedder():
    return FakeEmbedder(
        vectors={
            b"red-shoe": [1.0, 0.0, 0.0, 0.0],
            b"pink-shoe": [0.9, 0.1, 0.0, 0.0],
            b"tote": [0.0, 1.0, 0.0, 0.0],
            "https://img.test/red-shoe.jpg": [1.0, 0.0, 0.0, 0.0],
            "https://img.test/boot.jpg": [0.7, 0.0, 0.7, 0.0],
        }
    )


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def ingestion(catalog, vector_store, embedder, storage, guard):
    return IngestionPipeline(catalog, vector_store, embedder=embedder, storage=storage, guard=guard, max_workers=3)


@pytest.fixture
def search(catalog, vector_store, embedder, storage, guard):
    return SearchPipeline(catalog, vector_store, embedder=embedder, storage=storage, guard=guard)


@pytest.fixture
def seeded(ingestion):
    """Catalog with two shoes and one bag, ingested from pre-computed embeddings."""

    shoe_a = ingestion.ingest(IngestItem(name="A", category="shoes", image_url="https://img.test/a.jpg", embedding=[1, 0, 0, 0]))
    shoe_b = ingestion.ingest(IngestItem(name="B", category="shoes", image_url="https://img.test/b.jpg", embedding=[0.9, 0.1, 0, 0]))
    bag_c = ingestion.ingest(IngestItem(name="C", category="bags", image_url="https://img.test/c.jpg", embedding=[0, 1, 0, 0]))
    return {"A": shoe_a, "B": shoe_b, "C": bag_c}
