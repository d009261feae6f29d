"""Local storage for downloaded media."""
from __future__ import annotations

import logging
import mimetypes
import re
from pathlib import Path
from typing import Protocol
from urllib.parse import unquote, urlparse

log = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]+")
_EXTENSIONS = {"video/mp4": ".mp4", "audio/mpeg": ".mp3", "image/png": ".png", "image/jpeg": ".jpg"}


class BlobStore(Protocol):
    def put(self, key: str, data: bytes, mime_type: str) -> str:
        """Store *data* and return a locally addressable URL."""
        ...

    def get(self, url: str) -> bytes:
        ...


class LocalBlobStore:
    """Writes blobs as files under *root* and addresses them by ``file://`` URI."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def put(self, key: str, data: bytes, mime_type: str) -> str:
        ext = _EXTENSIONS.get(mime_type) or mimetypes.guess_extension(mime_type) or ".bin"
        path = self.root / f"{_UNSAFE.sub('_', key)}{ext}"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        log.info("Stored %d bytes at %s", len(data), path)
        return path.resolve().as_uri()

    def get(self, url: str) -> bytes:
        parsed = urlparse(url)
        if parsed.scheme != "file":
            raise ValueError(f"Not a local blob URL: {url}")
        return Path(unquote(parsed.path)).read_bytes()
