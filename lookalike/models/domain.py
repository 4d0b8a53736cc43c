# Path: lookalike/models/domain.py
# Purpose: Define domain models shared across ingestion, search, catalog, and index layers.
# Layer: lookalike/models.
# Details: Lightweight dataclasses simplify serialization between the HTTP API, scripts, and core services.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from lookalike.errors import LookalikeError


def as_vector(values: Any) -> np.ndarray:
    """Return a flat float64 copy of the given sequence or array."""

    return np.asarray(values, dtype=np.float64).reshape(-1).copy()


@dataclass
class ProductMetadata:
    """Display-only attributes; never used for ranking."""

    description: Optional[str] = None
    price: Optional[float] = None
    brand: Optional[str] = None
    uploaded_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {key: value for key, value in self.__dict__.items() if value is not None}

    @classmethod
    def from_dict(cls, payload: Optional[Dict[str, Any]]) -> Optional["ProductMetadata"]:
        if not payload:
            return None
        price = payload.get("price")
        return cls(
            description=payload.get("description"),
            price=float(price) if price is not None else None,
            brand=payload.get("brand"),
            uploaded_at=payload.get("uploaded_at", payload.get("uploadedAt")),
        )


@dataclass
class ProductDraft:
    """Product fields prior to catalog insertion; the catalog assigns the id."""

    name: str
    category: str
    image_url: str
    storage_key: str
    embedding: np.ndarray = field(repr=False, compare=False)
    metadata: Optional[ProductMetadata] = None


@dataclass
class Product:
    """Catalog product bound to its embedding. Immutable once committed."""

    id: str
    name: str
    category: str
    image_url: str
    storage_key: str
    embedding: np.ndarray = field(repr=False, compare=False)
    metadata: Optional[ProductMetadata] = None

    @classmethod
    def from_draft(cls, product_id: str, draft: ProductDraft) -> "Product":
        return cls(
            id=product_id,
            name=draft.name,
            category=draft.category,
            image_url=draft.image_url,
            storage_key=draft.storage_key,
            embedding=as_vector(draft.embedding),
            metadata=draft.metadata,
        )

    def to_dict(self, include_embedding: bool = False) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "image_url": self.image_url,
            "storage_key": self.storage_key,
            "metadata": self.metadata.to_dict() if self.metadata else None,
        }
        if include_embedding:
            payload["embedding"] = self.embedding.tolist()
        return payload


@dataclass
class IngestItem:
    """One product to ingest: an image (bytes or URL) and/or a pre-computed embedding."""

    name: str
    category: str
    image_bytes: Optional[bytes] = field(default=None, repr=False)
    image_url: Optional[str] = None
    filename: Optional[str] = None
    mime_type: str = "image/jpeg"
    storage_key: Optional[str] = None
    embedding: Optional[Any] = field(default=None, repr=False)
    metadata: Optional[ProductMetadata] = None


@dataclass
class BulkIngestResult:
    """Outcome of a best-effort bulk ingestion."""

    ids: List[str] = field(default_factory=list)
    failed: int = 0
    errors: Dict[int, LookalikeError] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ids": list(self.ids),
            "failed": self.failed,
            "errors": {str(index): error.to_dict() for index, error in sorted(self.errors.items())},
        }


@dataclass
class SearchQuery:
    """Search input supplied by API/script layers. Exactly one image source must be set."""

    image_bytes: Optional[bytes] = field(default=None, repr=False)
    image_url: Optional[str] = None
    product_id: Optional[str] = None
    mime_type: str = "image/jpeg"
    filename: Optional[str] = None
    category: Optional[str] = None


@dataclass
class RankedResult:
    """Search result item combining the index score with the full catalog product."""

    product: Product
    score: float

    def to_dict(self) -> Dict[str, Any]:
        payload = self.product.to_dict()
        payload["score"] = self.score
        return payload


@dataclass
class SearchHistory:
    """Append-only audit record written once per successful search."""

    id: str
    query_image_url: str
    query_embedding: np.ndarray = field(repr=False, compare=False)
    result_ids: List[str] = field(default_factory=list)
    timestamp: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "query_image_url": self.query_image_url,
            "query_embedding_dims": int(self.query_embedding.shape[0]),
            "result_ids": list(self.result_ids),
            "timestamp": self.timestamp,
        }


@dataclass
class StoredBlob:
    """Location of an image persisted by blob storage."""

    url: str
    key: str
