# Path: api/schemas.py
# Purpose: Define request bodies accepted by the HTTP API.
# Layer: api.
# Details: Field names follow the JSON contract used by the web client (camelCase).

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class MetadataIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    description: Optional[str] = None
    price: Optional[float] = None
    brand: Optional[str] = None
    uploaded_at: Optional[str] = Field(default=None, alias="uploadedAt")


class ProductIn(BaseModel):
    name: str
    category: str
    imageUrl: Optional[str] = None
    imageData: Optional[str] = None
    filename: Optional[str] = None
    mimetype: str = "image/jpeg"
    storageKey: Optional[str] = None
    embedding: Optional[List[float]] = None
    metadata: Optional[MetadataIn] = None


class BulkIn(BaseModel):
    items: List[ProductIn]


class SearchIn(BaseModel):
    imageUrl: Optional[str] = None
    imageData: Optional[str] = None
    productId: Optional[str] = None
    mimetype: str = "image/jpeg"
    category: Optional[str] = None
    topK: Optional[int] = None
    minScore: Optional[float] = None


class UploadIn(BaseModel):
    imageUrl: Optional[str] = None
    imageData: Optional[str] = None
    filename: Optional[str] = None
    mimetype: str = "image/jpeg"
