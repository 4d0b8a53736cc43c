# Path: lookalike/__init__.py
# Purpose: Package initializer for the visual catalog search core.
# Layer: lookalike.
# Details: Aggregates subpackages for embedders, vector stores, catalog, storage, ingestion, search, and models.
