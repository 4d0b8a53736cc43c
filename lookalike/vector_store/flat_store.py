# Path: lookalike/vector_store/flat_store.py
# Purpose: Provide an exact brute-force cosine vector store.
# Layer: lookalike/vector_store.
# Details: Numpy linear scan over copy-on-write snapshots; the reference baseline for any approximate backend.

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np

from lookalike.errors import DimensionError, ValidationError
from .base import VectorLike, VectorStore

logger = logging.getLogger(__name__)

_INITIAL_CAPACITY = 64


@dataclass(frozen=True)
class _Snapshot:
    """Immutable view of the first ``count`` rows of the shared buffers."""

    count: int
    ids: np.ndarray
    categories: np.ndarray
    vectors: np.ndarray
    norms: np.ndarray


def _empty_snapshot(dim: int, capacity: int = _INITIAL_CAPACITY) -> _Snapshot:
    return _Snapshot(
        count=0,
        ids=np.empty(capacity, dtype=object),
        categories=np.empty(capacity, dtype=object),
        vectors=np.zeros((capacity, dim), dtype=np.float64),
        norms=np.zeros(capacity, dtype=np.float64),
    )


class FlatStore(VectorStore):
    """Exact vector store scoring every entry by cosine similarity.

    Rows are kept in insertion order, so a stable sort on the score yields the
    earlier-inserted id first on ties. Writers append into spare capacity and
    then publish a new snapshot under a short lock; queries read whichever
    snapshot was current when they started and never take the lock.
    """

    def __init__(self, dim: int, name: str = "flat") -> None:
        self.dim = dim
        self.name = name
        self._write_lock = threading.Lock()
        self._snapshot = _empty_snapshot(dim)
        self._positions: Dict[str, int] = {}

    def _check_dim(self, vector: VectorLike) -> np.ndarray:
        array = np.asarray(vector, dtype=np.float64).reshape(-1)
        if array.shape[0] != self.dim:
            raise DimensionError(self.dim, int(array.shape[0]))
        return array

    def insert(self, id: str, vector: VectorLike, category: str) -> None:
        """Append a vector; it is visible to queries started after this returns."""

        array = self._check_dim(vector)
        with self._write_lock:
            if id in self._positions:
                # Ids come fresh from the catalog; replacing keeps a single row per id.
                self._remove_locked(id)
            current = self._snapshot
            row = current.count
            if row >= current.ids.shape[0]:
                current = self._grow(current, max(_INITIAL_CAPACITY, row * 2))
            current.ids[row] = id
            current.categories[row] = category
            current.vectors[row] = array
            current.norms[row] = float(np.linalg.norm(array))
            self._snapshot = _Snapshot(row + 1, current.ids, current.categories, current.vectors, current.norms)
            self._positions[id] = row

    def remove(self, id: str) -> bool:
        """Drop a vector by id, rebuilding buffers so older snapshots stay intact."""

        with self._write_lock:
            return self._remove_locked(id)

    def _remove_locked(self, id: str) -> bool:
        row = self._positions.pop(id, None)
        if row is None:
            return False
        current = self._snapshot
        keep = np.ones(current.count, dtype=bool)
        keep[row] = False
        rebuilt = _empty_snapshot(self.dim, max(_INITIAL_CAPACITY, current.ids.shape[0]))
        remaining = int(keep.sum())
        rebuilt.ids[:remaining] = current.ids[: current.count][keep]
        rebuilt.categories[:remaining] = current.categories[: current.count][keep]
        rebuilt.vectors[:remaining] = current.vectors[: current.count][keep]
        rebuilt.norms[:remaining] = current.norms[: current.count][keep]
        self._snapshot = _Snapshot(remaining, rebuilt.ids, rebuilt.categories, rebuilt.vectors, rebuilt.norms)
        self._positions = {str(item_id): index for index, item_id in enumerate(rebuilt.ids[:remaining])}
        return True

    def _grow(self, current: _Snapshot, capacity: int) -> _Snapshot:
        grown = _empty_snapshot(self.dim, capacity)
        count = current.count
        grown.ids[:count] = current.ids[:count]
        grown.categories[:count] = current.categories[:count]
        grown.vectors[:count] = current.vectors[:count]
        grown.norms[:count] = current.norms[:count]
        return _Snapshot(count, grown.ids, grown.categories, grown.vectors, grown.norms)

    def query(self, vector: VectorLike, top_k: int, category: Optional[str] = None) -> List[Tuple[str, float]]:
        """Return the top_k entries by cosine similarity, optionally restricted to one category."""

        query = self._check_dim(vector)
        if top_k <= 0:
            return []

        snapshot = self._snapshot
        count = snapshot.count
        if count == 0:
            return []

        rows = np.arange(count)
        if category is not None:
            rows = rows[snapshot.categories[:count] == category]
            if rows.size == 0:
                return []

        # root/lookalike/search/pipeline.py::SearchPipeline.search - uses this method to retrieve candidate ids.
        scores = self._cosine(snapshot.vectors[rows], snapshot.norms[rows], query)
        ranked = np.argsort(-scores, kind="stable")[:top_k]
        return [(str(snapshot.ids[rows[index]]), float(scores[index])) for index in ranked]

    @staticmethod
    def _cosine(matrix: np.ndarray, norms: np.ndarray, query: np.ndarray) -> np.ndarray:
        query_norm = float(np.linalg.norm(query))
        denominators = norms * query_norm
        dots = matrix @ query
        scores = np.zeros_like(dots)
        np.divide(dots, denominators, out=scores, where=denominators > 0)
        return np.clip(scores, -1.0, 1.0)

    def save(self, path: str) -> None:
        """Persist vectors and categories to disk as lightweight JSON + numpy arrays."""

        snapshot = self._snapshot
        count = snapshot.count
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        np.save(target.with_suffix(".npy"), snapshot.vectors[:count])
        metadata = {
            "dim": self.dim,
            "ids": [str(item) for item in snapshot.ids[:count]],
            "categories": [str(item) for item in snapshot.categories[:count]],
        }
        target.with_suffix(".json").write_text(json.dumps(metadata), encoding="utf-8")
        logger.info("Saved %d vectors to %s", count, target)

    def load(self, path: str) -> None:
        """Load vectors and categories previously saved by :meth:`save`."""

        target = Path(path)
        vector_path = target.with_suffix(".npy")
        metadata_path = target.with_suffix(".json")
        if not vector_path.exists() or not metadata_path.exists():
            raise FileNotFoundError(f"Missing vector store files for {path}.")

        vectors = np.load(vector_path).astype(np.float64)
        metadata = json.loads(metadata_path.read_text(encoding="utf-8"))
        stored_dim = int(metadata.get("dim", vectors.shape[1] if vectors.ndim == 2 else self.dim))
        if stored_dim != self.dim:
            raise DimensionError(self.dim, stored_dim)

        ids = list(metadata.get("ids", []))
        categories = list(metadata.get("categories", []))
        count = len(ids)
        rows = vectors.shape[0] if vectors.ndim == 2 else 0
        if rows != count or len(categories) != count:
            raise ValidationError(
                f"Corrupt vector store files for {path}: {rows} vectors, {count} ids, {len(categories)} categories."
            )
        snapshot = _empty_snapshot(self.dim, max(_INITIAL_CAPACITY, count * 2))
        snapshot.ids[:count] = ids
        snapshot.categories[:count] = categories
        if count:
            snapshot.vectors[:count] = vectors
            snapshot.norms[:count] = np.linalg.norm(vectors, axis=1)
        with self._write_lock:
            self._snapshot = _Snapshot(count, snapshot.ids, snapshot.categories, snapshot.vectors, snapshot.norms)
            self._positions = {item_id: index for index, item_id in enumerate(ids)}
        logger.info("Loaded %d vectors from %s", count, target)

    def ids(self) -> List[str]:
        """Return indexed ids in insertion order."""

        snapshot = self._snapshot
        return [str(item) for item in snapshot.ids[: snapshot.count]]

    def __len__(self) -> int:
        return self._snapshot.count

    def __contains__(self, id: object) -> bool:
        return id in self._positions
