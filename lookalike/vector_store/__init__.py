# Path: lookalike/vector_store/__init__.py
# Purpose: Package initializer for vector store interfaces and implementations.
# Layer: lookalike/vector_store.
# Details: Exposes the base vector store contract and the exact flat-scan reference class.

from .base import VectorStore
from .flat_store import FlatStore

__all__ = ["VectorStore", "FlatStore"]
