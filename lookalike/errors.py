# Path: lookalike/errors.py
# Purpose: Define the structured error taxonomy shared by catalog, index, ingestion, and search layers.
# Layer: lookalike.
# Details: Every error carries a stable kind and a message so outer layers can map it without string matching.

from __future__ import annotations

from typing import Dict


class LookalikeError(Exception):
    """Base class for all errors surfaced by the search core."""

    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind, "message": self.message}


class ValidationError(LookalikeError):
    """Malformed input such as a wrong-length embedding or an invalid field."""

    kind = "validation"


class DimensionError(ValidationError):
    """Vector length does not match the deployment embedding dimension."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Vector dimensionality {actual} does not match expected dimension {expected}.")
        self.expected = expected
        self.actual = actual


class EmbeddingError(LookalikeError):
    """The embedding provider failed or returned an unusable vector."""

    kind = "embedding"


class StorageError(LookalikeError):
    """Blob storage could not persist or fetch an image."""

    kind = "storage"


class NotFound(LookalikeError):
    """A referenced product does not exist."""

    kind = "not_found"


class InvalidRequest(LookalikeError):
    """Search input is missing or ambiguous."""

    kind = "invalid_request"


class Cancelled(LookalikeError):
    """The caller cancelled the operation before it committed."""

    kind = "cancelled"


class InternalError(LookalikeError):
    """An unexpected failure while processing one item of a batch."""

    kind = "internal"


__all__ = [
    "Cancelled",
    "DimensionError",
    "EmbeddingError",
    "InternalError",
    "InvalidRequest",
    "LookalikeError",
    "NotFound",
    "StorageError",
    "ValidationError",
]
