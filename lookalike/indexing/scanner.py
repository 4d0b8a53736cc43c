# Path: lookalike/indexing/scanner.py
# Purpose: Scan folders and turn product image files into ingestion items.
# Layer: lookalike/indexing.
# Details: The parent directory names the category and the file stem names the product.

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List

from lookalike.models.domain import IngestItem, ProductMetadata

SUPPORTED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".webp"}
DEFAULT_CATEGORY = "uncategorized"


class ProductImageScanner:
    """Scan filesystem paths for supported product images."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def scan(self) -> List[IngestItem]:
        """Return one ingestion item per discovered image, sorted by path."""

        items: List[IngestItem] = []
        for path in sorted(self._iter_image_files()):
            relative = path.relative_to(self.root)
            category = relative.parts[0] if len(relative.parts) > 1 else DEFAULT_CATEGORY
            uploaded_at = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc).isoformat()
            items.append(
                IngestItem(
                    name=path.stem.replace("_", " "),
                    category=category,
                    image_url=path.resolve().as_uri(),
                    filename=path.name,
                    metadata=ProductMetadata(uploaded_at=uploaded_at),
                )
            )
        return items

    def _iter_image_files(self) -> Iterable[Path]:
        """Yield image files under the root directory."""

        for path in self.root.rglob("*"):
            if path.is_file() and path.suffix.lower() in SUPPORTED_EXTENSIONS:
                yield path
