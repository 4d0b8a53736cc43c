# Path: scripts/quick_search_demo.py
# Purpose: Simple CLI to run a visual search against the stored catalog.
# Layer: scripts.
# Details: Searches by a local image file or by an existing product id and prints ranked results.

from __future__ import annotations

import argparse
import mimetypes
import sys
from pathlib import Path

# Ensure project root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config import AppSettings, configure_logging
from lookalike.bootstrap import build_services
from lookalike.errors import LookalikeError
from lookalike.models.domain import SearchQuery


def main() -> None:
    """Execute a quick search from the command line."""

    parser = argparse.ArgumentParser(description="Run a quick visual search against the product catalog")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--image", type=Path, help="Path to a query image")
    source.add_argument("--product-id", type=str, help="Search with the embedding of an existing product")
    parser.add_argument("--category", type=str, default=None, help="Restrict results to one category")
    parser.add_argument("--k", type=int, default=5, help="Number of results to return")
    parser.add_argument("--min-score", type=float, default=0.0, help="Drop results scoring below this value")
    parser.add_argument("--embedder", choices=["gemini", "pixel_stats"], default=None, help="Embedder override")
    args = parser.parse_args()

    settings = AppSettings.from_env()
    if args.embedder:
        settings.embedder.name = args.embedder
    configure_logging(settings.log_level)
    services = build_services(settings)

    if args.image is not None:
        mime_type = mimetypes.guess_type(args.image.name)[0] or "image/jpeg"
        query = SearchQuery(image_bytes=args.image.read_bytes(), mime_type=mime_type, filename=args.image.name)
    else:
        query = SearchQuery(product_id=args.product_id)
    query.category = args.category

    try:
        results = services.search.search(query, top_k=args.k, min_score=args.min_score)
    except LookalikeError as exc:
        print(f"Search failed [{exc.kind}]: {exc.message}", file=sys.stderr)
        raise SystemExit(1) from exc

    for result in results:
        product = result.product
        print(f"id={product.id} score={result.score:.4f} category={product.category} name={product.name} url={product.image_url}")


if __name__ == "__main__":
    main()
