# Path: lookalike/remote.py
# Purpose: Download remote images for embedders and blob storage.
# Layer: lookalike.
# Details: Thin wrapper over requests returning raw bytes and the advertised content type.

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote, urlparse

import requests

DEFAULT_CONTENT_TYPE = "image/jpeg"


@dataclass
class FetchedImage:
    data: bytes
    content_type: str


def fetch_image(url: str, timeout: float = 30.0) -> FetchedImage:
    """Return the bytes behind ``url``; file:// URLs are read from disk.

    Raises ``requests.RequestException`` or ``OSError``; callers translate these
    into their own error kinds.
    """

    parsed = urlparse(url)
    if parsed.scheme == "file":
        path = Path(unquote(parsed.path))
        return FetchedImage(data=path.read_bytes(), content_type=_guess_type(path.name))

    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    content_type = response.headers.get("content-type", DEFAULT_CONTENT_TYPE).split(";")[0].strip()
    return FetchedImage(data=response.content, content_type=content_type or DEFAULT_CONTENT_TYPE)


def filename_from_url(url: str) -> str | None:
    """Return the last path segment of ``url`` without its query string, if any."""

    segment = urlparse(url).path.split("/")[-1]
    return unquote(segment) or None


def _guess_type(name: str) -> str:
    suffix = Path(name).suffix.lower()
    return {
        ".png": "image/png",
        ".gif": "image/gif",
        ".webp": "image/webp",
        ".bmp": "image/bmp",
    }.get(suffix, DEFAULT_CONTENT_TYPE)
