"""Thumbnail cache for analyzed documents.

Thumbnails are fetched from the Paperless-ngx API once and kept on disk as
``<cache_dir>/<document_id>.png``.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from pathlib import Path

import httpx

from .safe_io import atomic_write_bytes

logger = logging.getLogger(__name__)

THUMBNAIL_TIMEOUT = 30.0

ThumbnailFetcher = Callable[[int], Awaitable[bytes | None]]


class PaperlessThumbnailFetcher:
    """Fetch document thumbnails from a Paperless-ngx server."""

    def __init__(self, api_url: str, api_token: str, timeout: float = THUMBNAIL_TIMEOUT):
        self.api_url = api_url.rstrip("/")
        self._headers = {"Authorization": f"Token {api_token}"}
        self._timeout = timeout

    async def __call__(self, document_id: int) -> bytes | None:
        """Return thumbnail bytes, or None if the server has none."""
        url = f"{self.api_url}/documents/{document_id}/thumb/"
        async with httpx.AsyncClient(timeout=self._timeout, headers=self._headers) as client:
            try:
                response = await client.get(url)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.warning(
                    "Thumbnail for document %s unavailable: HTTP %d",
                    document_id, e.response.status_code,
                )
                return None
            except (httpx.TimeoutException, httpx.TransportError) as e:
                logger.warning("Thumbnail fetch for document %s failed: %s", document_id, e)
                return None
        return response.content or None


class ThumbnailCache:
    """On-disk cache of document thumbnails."""

    def __init__(self, cache_dir: Path | str, fetch: ThumbnailFetcher):
        self.cache_dir = Path(cache_dir)
        self._fetch = fetch

    def path_for(self, document_id: int) -> Path:
        return self.cache_dir / f"{document_id}.png"

    async def ensure_cached(self, document_id: int) -> Path | None:
        """Return the cached thumbnail path, fetching it if needed.

        Returns None if the thumbnail could not be fetched.

        Raises:
            StateError: If the fetched thumbnail cannot be written.
        """
        path = self.path_for(document_id)
        if path.exists():
            logger.debug("Thumbnail for document %s already cached", document_id)
            return path

        logger.debug("Thumbnail for document %s not cached, fetching", document_id)
        data = await self._fetch(document_id)
        if not data:
            logger.warning("Thumbnail for document %s not found", document_id)
            return None

        atomic_write_bytes(path, data)
        return path
