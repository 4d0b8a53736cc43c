# Path: lookalike/embedders/__init__.py
# Purpose: Package initializer for embedder implementations and interfaces.
# Layer: lookalike/embedders.
# Details: Exposes the base interface, the hosted Gemini embedder, and the offline pixel-statistics embedder.

from .base import Embedder
from .gemini_embedder import CaptionEmbedder
from .pixel_embedder import PixelStatsEmbedder

__all__ = ["Embedder", "CaptionEmbedder", "PixelStatsEmbedder"]
