# Path: lookalike/search/strategies.py
# Purpose: Define resolvers that turn a search request into a query vector.
# Layer: lookalike/search.
# Details: One resolver per input kind: uploaded image bytes, an image URL, or an existing product.

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np

from lookalike.errors import EmbeddingError, InvalidRequest
from lookalike.models.domain import SearchQuery, as_vector

if TYPE_CHECKING:
    from .pipeline import SearchPipeline


@dataclass
class ResolvedQuery:
    """Query vector plus the image URL recorded in search history."""

    vector: np.ndarray = field(repr=False)
    image_url: str = ""


class QueryResolver(ABC):
    """Interface for resolving one kind of search input into a vector."""

    id: str
    description: str

    @abstractmethod
    def resolve(self, pipeline: "SearchPipeline", query: SearchQuery) -> ResolvedQuery:
        """Return the query vector for ``query`` using the pipeline's collaborators."""

    @staticmethod
    def _require_embedder(pipeline: "SearchPipeline"):
        if pipeline.embedder is None:
            raise InvalidRequest("Image search requires an embedder, none is configured.")
        return pipeline.embedder

    def _input(self, query: SearchQuery):
        value = getattr(query, self.id)
        if value is None or value == "" or value == b"":
            raise InvalidRequest(f"Resolver {self.id!r} needs a {self.id.replace('_', ' ')} in the query.")
        return value

    @staticmethod
    def _checked(pipeline: "SearchPipeline", vector: np.ndarray) -> np.ndarray:
        array = as_vector(vector)
        if array.shape[0] != pipeline.vector_store.dim:
            raise EmbeddingError(
                f"Embedder produced {array.shape[0]} dimensions, index expects {pipeline.vector_store.dim}."
            )
        return array


class ImageBytesQuery(QueryResolver):
    """Embed an uploaded image; keep a copy in blob storage when one is configured."""

    id = "image_bytes"
    description = "Encode uploaded image bytes using the configured embedder."

    def resolve(self, pipeline: "SearchPipeline", query: SearchQuery) -> ResolvedQuery:
        embedder = self._require_embedder(pipeline)
        image_bytes = self._input(query)
        vector = self._checked(pipeline, embedder.embed_image(image_bytes, query.mime_type))
        image_url = ""
        if pipeline.storage is not None:
            filename = query.filename or f"query_{int(time.time() * 1000)}.jpg"
            image_url = pipeline.storage.store(image_bytes, filename, query.mime_type).url
        return ResolvedQuery(vector=vector, image_url=image_url)


class ImageUrlQuery(QueryResolver):
    """Embed an image that already lives at a URL."""

    id = "image_url"
    description = "Download and encode the image at the given URL."

    def resolve(self, pipeline: "SearchPipeline", query: SearchQuery) -> ResolvedQuery:
        embedder = self._require_embedder(pipeline)
        image_url = self._input(query)
        vector = self._checked(pipeline, embedder.embed_url(image_url))
        return ResolvedQuery(vector=vector, image_url=image_url)


class ProductQuery(QueryResolver):
    """Reuse the stored vector of an existing product."""

    id = "product_id"
    description = "Search with the embedding of a catalog product."

    def resolve(self, pipeline: "SearchPipeline", query: SearchQuery) -> ResolvedQuery:
        product_id = self._input(query)
        with pipeline.guard.read():
            product = pipeline.catalog.get(product_id)
        return ResolvedQuery(vector=as_vector(product.embedding), image_url="")


DEFAULT_RESOLVERS = (ImageBytesQuery, ImageUrlQuery, ProductQuery)
