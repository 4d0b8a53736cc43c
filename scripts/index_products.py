# Path: scripts/index_products.py
# Purpose: CLI tool to scan a folder of product images and ingest them into the catalog.
# Layer: scripts.
# Details: Demonstrates how to wire scanning, embedding, catalog, and vector index components together.

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Ensure project root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config import AppSettings, configure_logging
from lookalike.bootstrap import build_services
from lookalike.indexing.scanner import ProductImageScanner


def main() -> None:
    """Run bulk ingestion over a folder of product images."""

    parser = argparse.ArgumentParser(description="Index product images for visual search")
    parser.add_argument("--folder", type=Path, default=Path("storage/images"), help="Folder with one subfolder per category")
    parser.add_argument("--embedder", choices=["gemini", "pixel_stats"], default=None, help="Embedder override")
    parser.add_argument("--workers", type=int, default=None, help="Concurrent ingestion workers")
    args = parser.parse_args()

    settings = AppSettings.from_env()
    settings.show_progress = True
    if args.embedder:
        settings.embedder.name = args.embedder
    if args.workers:
        settings.bulk_concurrency = max(1, args.workers)
    configure_logging(settings.log_level)

    items = ProductImageScanner(args.folder).scan()
    services = build_services(settings)
    result = services.catalog.bulk_add_products(items)
    services.save_index()

    print(f"Indexed {len(result.ids)} of {len(items)} images into {settings.vector_store.index_path} ({result.failed} failed)")
    for index, error in sorted(result.errors.items()):
        print(f"  failed: {items[index].image_url} [{error.kind}] {error.message}")


if __name__ == "__main__":
    main()
