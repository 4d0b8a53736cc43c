# Path: lookalike/search/__init__.py
# Purpose: Package initializer for query resolvers and pipeline orchestration.
# Layer: lookalike/search.
# Details: Exposes resolver interfaces and the main search pipeline entrypoint.

from .pipeline import SearchPipeline
from .strategies import ImageBytesQuery, ImageUrlQuery, ProductQuery, QueryResolver, ResolvedQuery

__all__ = [
    "SearchPipeline",
    "QueryResolver",
    "ResolvedQuery",
    "ImageBytesQuery",
    "ImageUrlQuery",
    "ProductQuery",
]
