# Path: lookalike/embedders/gemini_embedder.py
# Purpose: Provide the hosted caption-then-embed embedder backed by Gemini.
# Layer: lookalike/embedders.
# Details: A vision model describes the product image; a text-embedding model turns the caption into a vector.

from __future__ import annotations

import logging
from typing import Any, Optional

import numpy as np

from lookalike.errors import EmbeddingError
from lookalike.remote import fetch_image
from .base import Embedder

logger = logging.getLogger(__name__)

CAPTION_PROMPT = (
    "Describe this product in a short, detailed phrase highlighting visual attributes useful for retrieval."
)
FALLBACK_CAPTION = "generic product"


class CaptionEmbedder(Embedder):
    """Embed images through a Gemini caption followed by a Gemini text embedding."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        vision_model: str = "gemini-2.0-flash",
        embedding_model: str = "text-embedding-004",
        dim: int = 768,
        timeout: float = 30.0,
        client: Optional[Any] = None,
    ) -> None:
        self.vision_model = vision_model
        self.embedding_model = embedding_model
        self.dim = dim
        self.timeout = timeout
        self.name = "gemini"
        if client is None:
            import google.genai as genai

            client = genai.Client(api_key=api_key)
        self._client = client

    def caption(self, data: bytes, mime_type: str = "image/jpeg") -> str:
        """Return a short retrieval-oriented description of the image."""

        from google.genai import types

        response = self._client.models.generate_content(
            model=self.vision_model,
            contents=[types.Part.from_bytes(data=data, mime_type=mime_type), CAPTION_PROMPT],
        )
        text = (getattr(response, "text", None) or "").strip()
        return text or FALLBACK_CAPTION

    def embed_text(self, text: str) -> np.ndarray:
        """Embed a caption with the configured text-embedding model."""

        try:
            result = self._client.models.embed_content(model=self.embedding_model, contents=text)
            values = result.embeddings[0].values if result.embeddings else []
        except Exception as exc:  # noqa: BLE001 - provider errors surface as EmbeddingError
            raise EmbeddingError(f"Text embedding failed: {exc}") from exc
        logger.debug("Embedding dimensions: %d", len(values or []))
        return self._checked(values)

    def embed_image(self, data: bytes, mime_type: str = "image/jpeg") -> np.ndarray:
        try:
            caption = self.caption(data, mime_type)
        except Exception as exc:  # noqa: BLE001 - provider errors surface as EmbeddingError
            raise EmbeddingError(f"Image captioning failed: {exc}") from exc
        return self.embed_text(caption)

    def embed_url(self, url: str) -> np.ndarray:
        try:
            fetched = fetch_image(url, timeout=self.timeout)
        except Exception as exc:  # noqa: BLE001 - any download failure is an embedding failure
            raise EmbeddingError(f"Could not download image from {url}: {exc}") from exc
        return self.embed_image(fetched.data, fetched.content_type)
