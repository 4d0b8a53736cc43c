# Path: lookalike/search/pipeline.py
# Purpose: Orchestrate the search workflow from request to ranked, scored catalog products.
# Layer: lookalike/search.
# Details: Resolves the query vector, queries the vector store, filters by score, joins the catalog, and logs history.

from __future__ import annotations

import logging
import math
import time
from typing import Dict, List, Optional

from lookalike.catalog.base import CatalogStore, new_id
from lookalike.concurrency import CancellationToken, ReadWriteLock
from lookalike.embedders.base import Embedder
from lookalike.errors import DimensionError, InvalidRequest, NotFound, ValidationError
from lookalike.models.domain import RankedResult, SearchHistory, SearchQuery, as_vector
from lookalike.storage.base import BlobStorage
from lookalike.vector_store.base import VectorStore
from .strategies import DEFAULT_RESOLVERS, QueryResolver

logger = logging.getLogger(__name__)


class SearchPipeline:
    """High-level service bridging API/script layers with the vector store and catalog."""

    def __init__(
        self,
        catalog: CatalogStore,
        vector_store: VectorStore,
        embedder: Optional[Embedder] = None,
        storage: Optional[BlobStorage] = None,
        guard: Optional[ReadWriteLock] = None,
        resolvers: Optional[Dict[str, QueryResolver]] = None,
        default_top_k: int = 20,
        default_min_score: float = 0.0,
    ) -> None:
        self.catalog = catalog
        self.vector_store = vector_store
        self.embedder = embedder
        self.storage = storage
        self.guard = guard or ReadWriteLock()
        self.resolvers: Dict[str, QueryResolver] = resolvers or {cls.id: cls() for cls in DEFAULT_RESOLVERS}
        self.default_top_k = default_top_k
        self.default_min_score = default_min_score

    def search(
        self,
        query: SearchQuery,
        top_k: Optional[int] = None,
        min_score: Optional[float] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> List[RankedResult]:
        """
        Execute a search and record it in the search history.

        External calls:
        - lookalike/search/strategies.py::QueryResolver.resolve - builds the query vector.
        - lookalike/vector_store/flat_store.py::FlatStore.query - retrieves ranked candidate ids.
        - lookalike/catalog/base.py::CatalogStore.get - joins each id to its product.
        - lookalike/catalog/base.py::CatalogStore.append_history - audits the finished search.
        """

        top_k = self._top_k(top_k)
        min_score = self._min_score(min_score)
        kind = self._input_kind(query)
        resolver = self.resolvers.get(kind)
        if resolver is None:
            raise InvalidRequest(f"No resolver registered for {kind} queries.")

        resolved = resolver.resolve(self, query)
        raw_results = self.vector_store.query(resolved.vector, top_k, category=query.category)
        kept = [(product_id, score) for product_id, score in raw_results if score >= min_score]

        results: List[RankedResult] = []
        with self.guard.read():
            for product_id, score in kept:
                try:
                    product = self.catalog.get(product_id)
                except NotFound:
                    logger.warning("Skipping search hit %s with no catalog row", product_id)
                    continue
                results.append(RankedResult(product=product, score=score))

        if cancel is not None:
            cancel.raise_if_cancelled("Search")
        self.log_search(
            SearchHistory(
                id=new_id(),
                query_image_url=resolved.image_url,
                query_embedding=resolved.vector,
                result_ids=[result.product.id for result in results],
                timestamp=time.time(),
            )
        )
        logger.info(
            "Search via %s returned %d of %d candidates (top_k=%d, min_score=%.3f)",
            resolver.id,
            len(results),
            len(raw_results),
            top_k,
            min_score,
        )
        return results

    def log_search(self, record: SearchHistory) -> None:
        """Append a search history record after validating its embedding."""

        embedding = as_vector(record.query_embedding)
        if embedding.shape[0] != self.vector_store.dim:
            raise DimensionError(self.vector_store.dim, int(embedding.shape[0]))
        record.query_embedding = embedding
        self.catalog.append_history(record)

    @staticmethod
    def _input_kind(query: SearchQuery) -> str:
        supplied = [
            name
            for name, value in (
                ("image_bytes", query.image_bytes),
                ("image_url", query.image_url),
                ("product_id", query.product_id),
            )
            if value is not None and value != b"" and value != ""
        ]
        if not supplied:
            raise InvalidRequest("Provide image bytes, an image URL, or a product id.")
        if len(supplied) > 1:
            raise InvalidRequest(f"Provide exactly one query input, got: {', '.join(supplied)}.")
        return supplied[0]

    def _top_k(self, top_k: Optional[int]) -> int:
        if top_k is None:
            return self.default_top_k
        if isinstance(top_k, bool) or not isinstance(top_k, int):
            raise ValidationError(f"top_k must be an integer, got {top_k!r}.")
        return top_k

    def _min_score(self, min_score: Optional[float]) -> float:
        if min_score is None:
            return self.default_min_score
        try:
            value = float(min_score)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"min_score must be a number, got {min_score!r}.") from exc
        if math.isnan(value):
            raise ValidationError("min_score must not be NaN.")
        return value
