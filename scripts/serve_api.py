# Path: scripts/serve_api.py
# Purpose: Run the HTTP API with uvicorn.
# Layer: scripts.
# Details: Builds services from environment settings and serves the FastAPI app.

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Ensure project root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from api import create_app
from config import AppSettings, configure_logging
from lookalike.bootstrap import build_services


def main() -> None:
    """Serve the catalog and search API."""

    parser = argparse.ArgumentParser(description="Serve the visual search API")
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind")
    args = parser.parse_args()

    import uvicorn

    settings = AppSettings.from_env()
    configure_logging(settings.log_level)
    services = build_services(settings)
    app = create_app(services)

    try:
        uvicorn.run(app, host=args.host, port=args.port, log_level=settings.log_level.lower())
    finally:
        services.save_index()


if __name__ == "__main__":
    main()
