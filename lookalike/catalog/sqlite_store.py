# Path: lookalike/catalog/sqlite_store.py
# Purpose: Provide a durable SQLite-backed catalog for products and search history.
# Layer: lookalike/catalog.
# Details: Embeddings are stored as float64 blobs, metadata as JSON; the embedding dimension is pinned in a meta table.

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

import numpy as np

from lookalike.errors import DimensionError, NotFound
from lookalike.models.domain import Product, ProductDraft, ProductMetadata, SearchHistory, as_vector
from .base import CatalogStore, new_id

logger = logging.getLogger(__name__)


def _to_blob(vector: np.ndarray) -> bytes:
    return as_vector(vector).astype("<f8").tobytes()


def _from_blob(blob: bytes) -> np.ndarray:
    return np.frombuffer(blob, dtype="<f8").astype(np.float64)


class SqliteCatalog(CatalogStore):
    """Catalog persisted in a single SQLite file.

    Each call opens its own connection so the store can be shared between
    request threads.
    """

    def __init__(self, path: Path | str, dim: int, name: str = "sqlite") -> None:
        self.path = Path(path)
        self.dim = dim
        self.name = name
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.debug("Opened catalog %s (dim=%d)", self.path, self.dim)

    # SQLite helpers
    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection, commit on success, roll back on error, always close."""

        conn = sqlite3.connect(self.path, timeout=30)
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        """Create tables and pin the embedding dimension on first use."""

        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS catalog_meta (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS products (
                    id TEXT PRIMARY KEY,
                    seq INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    category TEXT NOT NULL,
                    image_url TEXT NOT NULL,
                    storage_key TEXT NOT NULL,
                    embedding BLOB NOT NULL,
                    metadata TEXT
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_products_category ON products(category)")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS search_history (
                    id TEXT PRIMARY KEY,
                    query_image_url TEXT NOT NULL,
                    query_embedding BLOB NOT NULL,
                    result_ids TEXT NOT NULL,
                    timestamp REAL NOT NULL
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_search_history_ts ON search_history(timestamp)")

            row = conn.execute("SELECT value FROM catalog_meta WHERE key = 'embedding_dim'").fetchone()
            if row is None:
                conn.execute("INSERT INTO catalog_meta (key, value) VALUES ('embedding_dim', ?)", (str(self.dim),))
            elif int(row[0]) != self.dim:
                # Changing the dimension requires re-embedding the whole catalog.
                raise DimensionError(int(row[0]), self.dim)

    def _insert_row(self, conn: sqlite3.Connection, draft: ProductDraft) -> str:
        product_id = new_id()
        metadata = draft.metadata.to_dict() if draft.metadata else None
        conn.execute(
            """
            INSERT INTO products (id, seq, name, category, image_url, storage_key, embedding, metadata)
            VALUES (?, (SELECT COALESCE(MAX(seq), 0) + 1 FROM products), ?, ?, ?, ?, ?, ?)
            """,
            (
                product_id,
                draft.name,
                draft.category,
                draft.image_url,
                draft.storage_key,
                _to_blob(draft.embedding),
                json.dumps(metadata) if metadata is not None else None,
            ),
        )
        return product_id

    @staticmethod
    def _row_to_product(row: sqlite3.Row | tuple) -> Product:
        product_id, name, category, image_url, storage_key, embedding, metadata = row
        return Product(
            id=product_id,
            name=name,
            category=category,
            image_url=image_url,
            storage_key=storage_key,
            embedding=_from_blob(embedding),
            metadata=ProductMetadata.from_dict(json.loads(metadata)) if metadata else None,
        )

    def insert(self, draft: ProductDraft) -> str:
        with self._connect() as conn:
            return self._insert_row(conn, draft)

    def bulk_insert(self, drafts: Sequence[ProductDraft]) -> List[str]:
        """Insert all drafts in one transaction, preserving order."""

        with self._connect() as conn:
            return [self._insert_row(conn, draft) for draft in drafts]

    def get(self, product_id: str) -> Product:
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT id, name, category, image_url, storage_key, embedding, metadata
                FROM products WHERE id = ?
                """,
                (product_id,),
            ).fetchone()
        if row is None:
            raise NotFound(f"Product {product_id} not found.")
        return self._row_to_product(row)

    def list(self, category: Optional[str] = None) -> List[Product]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT id, name, category, image_url, storage_key, embedding, metadata FROM products ORDER BY seq"
            ).fetchall()
        products = [self._row_to_product(row) for row in rows]
        return [product for product in products if product.category == category] if category else products

    def delete(self, product_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM products WHERE id = ?", (product_id,))
            return cursor.rowcount > 0

    def count(self) -> int:
        with self._connect() as conn:
            return int(conn.execute("SELECT COUNT(*) FROM products").fetchone()[0])

    def append_history(self, record: SearchHistory) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO search_history (id, query_image_url, query_embedding, result_ids, timestamp)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.query_image_url,
                    _to_blob(record.query_embedding),
                    json.dumps(list(record.result_ids)),
                    record.timestamp,
                ),
            )

    def list_history(self, limit: Optional[int] = None) -> List[SearchHistory]:
        query = "SELECT id, query_image_url, query_embedding, result_ids, timestamp FROM search_history ORDER BY timestamp DESC, rowid DESC"
        params: tuple = ()
        if limit is not None:
            query += " LIMIT ?"
            params = (int(limit),)
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [
            SearchHistory(
                id=row[0],
                query_image_url=row[1],
                query_embedding=_from_blob(row[2]),
                result_ids=list(json.loads(row[3])),
                timestamp=float(row[4]),
            )
            for row in rows
        ]

    def iter_index_entries(self) -> Iterator[tuple[str, np.ndarray, str]]:
        """Yield (id, embedding, category) for every product, in insertion order."""

        with self._connect() as conn:
            rows = conn.execute("SELECT id, embedding, category FROM products ORDER BY seq").fetchall()
        for product_id, embedding, category in rows:
            yield product_id, _from_blob(embedding), category
