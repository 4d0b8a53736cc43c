"""Tests for single and bulk ingestion keeping catalog and index in lockstep."""

import numpy as np
import pytest

from conftest import DIM, FakeEmbedder, FakeStorage
from lookalike.concurrency import CancellationToken
from lookalike.errors import Cancelled, DimensionError, EmbeddingError, InternalError, StorageError, ValidationError
from lookalike.indexing.ingestion import IngestionPipeline, sync_vector_store
from lookalike.models.domain import IngestItem, ProductDraft, ProductMetadata
from lookalike.vector_store import FlatStore


class ExplodingStore(FlatStore):
    """Vector store whose inserts always fail after validation."""

    def insert(self, id, vector, category):
        self._check_dim(vector)
        raise RuntimeError("index unavailable")


class FlakyStore(FlatStore):
    """Vector store that fails inserts for the ``bad`` category only."""

    def insert(self, id, vector, category):
        if category == "bad":
            raise RuntimeError("index unavailable")
        super().insert(id, vector, category)


def assert_in_lockstep(catalog, vector_store):
    catalog_ids = {product.id for product in catalog.list()}
    assert catalog_ids == set(vector_store.ids())
    assert len(vector_store) == catalog.count()


class TestSingleIngestion:
    def test_precomputed_embedding(self, ingestion, catalog, vector_store):
        product = ingestion.ingest(
            IngestItem(
                name="Runner",
                category="shoes",
                image_url="https://img.test/runner.jpg",
                storage_key="runner-key",
                embedding=[0.0, 0.0, 1.0, 0.0],
                metadata=ProductMetadata(price=10.0),
            )
        )
        stored = catalog.get(product.id)
        assert stored.image_url == "https://img.test/runner.jpg"
        assert stored.storage_key == "runner-key"
        assert stored.metadata.price == 10.0
        assert vector_store.query([0.0, 0.0, 1.0, 0.0], top_k=1)[0] == (product.id, pytest.approx(1.0))
        assert_in_lockstep(catalog, vector_store)

    def test_wrong_dimension_leaves_both_stores_unchanged(self, ingestion, catalog, vector_store, seeded):
        with pytest.raises(DimensionError):
            ingestion.ingest(IngestItem(name="Bad", category="shoes", embedding=[1.0, 0.0]))
        assert catalog.count() == 3
        assert len(vector_store) == 3
        assert_in_lockstep(catalog, vector_store)

    def test_non_finite_embedding_rejected(self, ingestion, catalog):
        with pytest.raises(ValidationError):
            ingestion.ingest(IngestItem(name="Bad", category="shoes", embedding=[1.0, float("nan"), 0.0, 0.0]))
        assert catalog.count() == 0

    @pytest.mark.parametrize("name, category", [("", "shoes"), ("Boot", ""), ("  ", "shoes")])
    def test_blank_fields_rejected(self, ingestion, name, category):
        with pytest.raises(ValidationError):
            ingestion.ingest(IngestItem(name=name, category=category, embedding=[1.0, 0.0, 0.0, 0.0]))

    def test_item_without_any_image_source(self, ingestion):
        with pytest.raises(ValidationError):
            ingestion.ingest(IngestItem(name="Ghost", category="shoes"))

    def test_image_bytes_are_embedded_and_uploaded(self, ingestion, catalog, storage, embedder):
        product = ingestion.ingest(IngestItem(name="Red", category="shoes", image_bytes=b"red-shoe", filename="red.jpg"))
        assert embedder.calls == [b"red-shoe"]
        assert product.storage_key in storage.blobs
        assert catalog.get(product.id).image_url.startswith("https://blobs.test/")
        np.testing.assert_allclose(product.embedding, [1.0, 0.0, 0.0, 0.0])

    def test_image_url_is_rehosted_then_embedded(self, catalog, vector_store, guard):
        embedder = FakeEmbedder(vectors={"https://blobs.test/key-0-boot.jpg": [0.0, 1.0, 0.0, 0.0]})
        storage = FakeStorage()
        pipeline = IngestionPipeline(catalog, vector_store, embedder=embedder, storage=storage, guard=guard)
        product = pipeline.ingest(IngestItem(name="Boot", category="shoes", image_url="https://img.test/boot.jpg"))
        assert product.image_url == "https://blobs.test/key-0-boot.jpg"
        assert product.storage_key == "key-0-boot.jpg"
        assert embedder.calls == ["https://blobs.test/key-0-boot.jpg"]

    def test_image_url_without_storage(self, catalog, vector_store, embedder):
        pipeline = IngestionPipeline(catalog, vector_store, embedder=embedder)
        product = pipeline.ingest(IngestItem(name="Boot", category="shoes", image_url="https://img.test/boot.jpg"))
        assert product.image_url == "https://img.test/boot.jpg"
        assert product.storage_key == ""

    def test_embedding_failure_stores_nothing(self, ingestion, catalog, vector_store, storage):
        with pytest.raises(EmbeddingError):
            ingestion.ingest(IngestItem(name="Broken", category="shoes", image_bytes=b"unknown-image"))
        assert catalog.count() == 0
        assert len(vector_store) == 0
        assert storage.blobs == {}

    def test_embedder_with_wrong_dimension_is_an_embedding_error(self, catalog, vector_store):
        embedder = FakeEmbedder(vectors={b"img": [1.0, 0.0]}, dim=2)
        pipeline = IngestionPipeline(catalog, vector_store, embedder=embedder)
        with pytest.raises(EmbeddingError):
            pipeline.ingest(IngestItem(name="Odd", category="shoes", image_bytes=b"img"))
        assert catalog.count() == 0

    def test_storage_failure_stores_nothing(self, catalog, vector_store, embedder):
        pipeline = IngestionPipeline(catalog, vector_store, embedder=embedder, storage=FakeStorage(fail=True))
        with pytest.raises(StorageError):
            pipeline.ingest(IngestItem(name="Red", category="shoes", image_bytes=b"red-shoe"))
        assert catalog.count() == 0
        assert len(vector_store) == 0

    def test_index_failure_rolls_back_catalog_row(self, catalog):
        pipeline = IngestionPipeline(catalog, ExplodingStore(dim=DIM))
        with pytest.raises(RuntimeError):
            pipeline.ingest(IngestItem(name="Lost", category="shoes", embedding=[1.0, 0.0, 0.0, 0.0]))
        assert catalog.count() == 0

    def test_cancelled_before_commit_leaves_no_state(self, ingestion, catalog, vector_store):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(Cancelled):
            ingestion.ingest(IngestItem(name="Late", category="shoes", embedding=[1.0, 0.0, 0.0, 0.0]), cancel=token)
        assert catalog.count() == 0
        assert len(vector_store) == 0

    def test_reingesting_same_image_creates_new_product(self, ingestion, catalog):
        first = ingestion.ingest(IngestItem(name="Red", category="shoes", image_bytes=b"red-shoe"))
        second = ingestion.ingest(IngestItem(name="Red", category="shoes", image_bytes=b"red-shoe"))
        assert first.id != second.id
        assert catalog.count() == 2


class TestBulkIngestion:
    def test_partial_failure_keeps_order(self, ingestion, catalog, vector_store):
        items = [
            IngestItem(name="Red", category="shoes", image_bytes=b"red-shoe"),
            IngestItem(name="Pink", category="shoes", image_bytes=b"pink-shoe"),
            IngestItem(name="Broken", category="shoes", image_bytes=b"unknown-image"),
            IngestItem(name="Tote", category="bags", image_bytes=b"tote"),
        ]
        result = ingestion.ingest_many(items)

        assert result.failed == 1
        assert len(result.ids) == 3
        assert [catalog.get(product_id).name for product_id in result.ids] == ["Red", "Pink", "Tote"]
        assert set(result.errors) == {2}
        assert isinstance(result.errors[2], EmbeddingError)
        assert_in_lockstep(catalog, vector_store)

    def test_returned_order_ignores_completion_order(self, catalog, vector_store, guard):
        vectors = {f"img{index}".encode(): [1.0, float(index), 0.0, 0.0] for index in range(6)}
        delays = {b"img0": 0.2, b"img1": 0.1, b"img2": 0.05}
        embedder = FakeEmbedder(vectors=vectors, delays=delays)
        pipeline = IngestionPipeline(catalog, vector_store, embedder=embedder, guard=guard, max_workers=6)

        items = [IngestItem(name=f"p{index}", category="all", image_bytes=f"img{index}".encode()) for index in range(6)]
        result = pipeline.ingest_many(items)

        assert [catalog.get(product_id).name for product_id in result.ids] == [f"p{index}" for index in range(6)]
        assert result.failed == 0

    def test_mixed_validation_and_embedding_failures(self, ingestion, catalog, vector_store):
        items = [
            IngestItem(name="Short", category="shoes", embedding=[1.0]),
            IngestItem(name="Good", category="shoes", embedding=[0.0, 0.0, 0.0, 1.0]),
            IngestItem(name="Broken", category="shoes", image_url="https://img.test/missing.jpg"),
        ]
        result = ingestion.ingest_many(items)
        assert [catalog.get(product_id).name for product_id in result.ids] == ["Good"]
        assert result.failed == 2
        assert isinstance(result.errors[0], ValidationError)
        assert isinstance(result.errors[2], EmbeddingError)
        assert result.to_dict()["errors"]["0"]["kind"] == "validation"
        assert_in_lockstep(catalog, vector_store)

    def test_index_failure_in_batch_rolls_back_only_that_item(self, catalog):
        vector_store = FlakyStore(dim=DIM)
        pipeline = IngestionPipeline(catalog, vector_store, max_workers=1)
        items = [
            IngestItem(name="First", category="shoes", embedding=[1.0, 0.0, 0.0, 0.0]),
            IngestItem(name="Lost", category="bad", embedding=[0.0, 1.0, 0.0, 0.0]),
            IngestItem(name="Third", category="bags", embedding=[0.0, 0.0, 1.0, 0.0]),
        ]
        result = pipeline.ingest_many(items)

        assert [catalog.get(product_id).name for product_id in result.ids] == ["First", "Third"]
        assert result.failed == 1
        assert isinstance(result.errors[1], InternalError)
        assert isinstance(result.errors[1].__cause__, RuntimeError)
        assert result.to_dict()["errors"]["1"]["kind"] == "internal"
        assert_in_lockstep(catalog, vector_store)

    def test_unexpected_failures_do_not_abort_concurrent_batch(self, catalog, guard):
        vector_store = FlakyStore(dim=DIM)
        pipeline = IngestionPipeline(catalog, vector_store, guard=guard, max_workers=4)
        items = [
            IngestItem(name=f"p{index}", category="bad" if index % 3 == 0 else "ok", embedding=[1.0, float(index), 0.0, 0.0])
            for index in range(9)
        ]
        result = pipeline.ingest_many(items)

        assert [catalog.get(product_id).name for product_id in result.ids] == [
            f"p{index}" for index in range(9) if index % 3
        ]
        assert sorted(result.errors) == [0, 3, 6]
        assert_in_lockstep(catalog, vector_store)

    def test_empty_batch(self, ingestion):
        result = ingestion.ingest_many([])
        assert result.ids == [] and result.failed == 0

    def test_cancelled_batch_commits_nothing(self, ingestion, catalog):
        token = CancellationToken()
        token.cancel()
        items = [IngestItem(name=f"p{index}", category="all", embedding=[1.0, 0.0, 0.0, 0.0]) for index in range(3)]
        result = ingestion.ingest_many(items, cancel=token)
        assert result.ids == []
        assert result.failed == 3
        assert all(isinstance(error, Cancelled) for error in result.errors.values())
        assert catalog.count() == 0


class TestSyncVectorStore:
    def test_rebuilds_missing_vectors_and_drops_orphans(self, catalog):
        kept_id = catalog.insert(
            ProductDraft(name="Boot", category="shoes", image_url="", storage_key="", embedding=np.array([1.0, 0.0, 0.0, 0.0]))
        )
        store = FlatStore(dim=DIM)
        store.insert("orphan", [0.0, 1.0, 0.0, 0.0], "shoes")

        added, removed = sync_vector_store(catalog, store)

        assert (added, removed) == (1, 1)
        assert store.ids() == [kept_id]
        assert sync_vector_store(catalog, store) == (0, 0)
