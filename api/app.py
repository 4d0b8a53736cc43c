# Path: api/app.py
# Purpose: Expose a FastAPI application for catalog ingestion and visual search.
# Layer: api.
# Details: Thin routes delegating to the core services; structured core errors are mapped to HTTP statuses here.

import base64
import binascii
import re
from typing import Any, Dict, List, Optional

from lookalike.bootstrap import Services
from lookalike.errors import LookalikeError, ValidationError
from lookalike.models.domain import IngestItem, ProductMetadata, SearchQuery

from .schemas import BulkIn, ProductIn, SearchIn, UploadIn

STATUS_BY_KIND = {
    "validation": 400,
    "invalid_request": 400,
    "not_found": 404,
    "embedding": 502,
    "storage": 502,
    "cancelled": 409,
    "internal": 500,
}

_DATA_URL_PREFIX = re.compile(r"^data:image/\w+;base64,")


def decode_image_data(image_data: str) -> bytes:
    """Decode a base64 payload, accepting an optional data-URL prefix."""

    try:
        return base64.b64decode(_DATA_URL_PREFIX.sub("", image_data), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError(f"imageData is not valid base64: {exc}") from exc


def to_ingest_item(payload: ProductIn) -> IngestItem:
    metadata = None
    if payload.metadata is not None:
        metadata = ProductMetadata(**payload.metadata.model_dump(by_alias=False))
    return IngestItem(
        name=payload.name,
        category=payload.category,
        image_bytes=decode_image_data(payload.imageData) if payload.imageData else None,
        image_url=payload.imageUrl,
        filename=payload.filename,
        mime_type=payload.mimetype,
        storage_key=payload.storageKey,
        embedding=payload.embedding,
        metadata=metadata,
    )


def create_app(services: Optional[Services] = None):  # type: ignore[override]
    """Create a FastAPI app instance configured with the provided services."""

    from fastapi import FastAPI, HTTPException, Request
    from fastapi.responses import JSONResponse

    app = FastAPI(title="Lookalike API", version="0.1.0")

    def require_services() -> Services:
        if services is None:
            raise HTTPException(status_code=500, detail="Services are not configured.")
        return services

    @app.exception_handler(LookalikeError)
    async def lookalike_error_handler(request: Request, exc: LookalikeError) -> JSONResponse:
        return JSONResponse(status_code=STATUS_BY_KIND.get(exc.kind, 500), content={"error": exc.to_dict()})

    @app.get("/health")
    def health() -> Dict[str, str]:
        """Return a simple health status payload."""

        return {"status": "ok"}

    @app.post("/upload")
    def upload(payload: UploadIn) -> Dict[str, Any]:
        """Store an image and return its location with its embedding."""

        svc = require_services()
        if svc.storage is None or svc.embedder is None:
            raise HTTPException(status_code=500, detail="Storage and embedder must be configured for uploads.")
        if payload.imageData:
            data = decode_image_data(payload.imageData)
            blob = svc.storage.store(data, payload.filename or "upload.jpg", payload.mimetype)
            embedding = svc.embedder.embed_image(data, payload.mimetype)
        elif payload.imageUrl:
            blob = svc.storage.store_by_url(payload.imageUrl)
            embedding = svc.embedder.embed_url(blob.url)
        else:
            raise HTTPException(status_code=400, detail="Provide { imageData } (base64) or { imageUrl }")
        return {"url": blob.url, "key": blob.key, "embedding": embedding.tolist(), "dims": int(embedding.shape[0])}

    @app.post("/products")
    def add_product(payload: ProductIn) -> Dict[str, Any]:
        return require_services().catalog.add_product(to_ingest_item(payload)).to_dict()

    @app.post("/products/bulk")
    def bulk_add_products(payload: BulkIn) -> Dict[str, Any]:
        items = [to_ingest_item(item) for item in payload.items]
        return require_services().catalog.bulk_add_products(items).to_dict()

    @app.get("/products")
    def list_products(category: Optional[str] = None) -> List[Dict[str, Any]]:
        return [product.to_dict() for product in require_services().catalog.list_products(category)]

    @app.get("/products/{product_id}")
    def get_product(product_id: str) -> Dict[str, Any]:
        return require_services().catalog.get_product(product_id).to_dict()

    @app.post("/search")
    def search(payload: SearchIn) -> Dict[str, Any]:
        """Run a visual search using the configured services."""

        svc = require_services()
        query = SearchQuery(
            image_bytes=decode_image_data(payload.imageData) if payload.imageData else None,
            image_url=payload.imageUrl,
            product_id=payload.productId,
            mime_type=payload.mimetype,
            category=payload.category,
        )
        results = svc.search.search(query, top_k=payload.topK, min_score=payload.minScore)
        return {"results": [result.to_dict() for result in results], "queryEmbeddingDims": svc.vector_store.dim}

    return app
