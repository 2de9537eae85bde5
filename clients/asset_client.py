"""
Best-effort fetcher for invoice branding images.

Header and footer images live on the storefront's CDN. A missing or slow
image must never stop an invoice from rendering, so every failure here is
logged and turned into None.
"""

import logging

import requests

logger = logging.getLogger(__name__)

# Anything bigger is not a letterhead
MAX_IMAGE_BYTES = 5 * 1024 * 1024
CHUNK_SIZE = 64 * 1024


class AssetClient:
    """Fetch small binary assets over HTTP(S)."""

    def __init__(self, timeout_seconds: int = 10, session: requests.Session | None = None):
        self.timeout_seconds = timeout_seconds
        self._session = session or requests.Session()

    def fetch(self, url: str | None) -> bytes | None:
        """
        Download url and return its bytes.

        The body is streamed and abandoned as soon as it passes
        MAX_IMAGE_BYTES. Returns None for an empty url, a non-2xx response,
        a transport error, or an oversized body.
        """
        if not url:
            return None

        content = bytearray()
        try:
            with self._session.get(url, timeout=self.timeout_seconds, stream=True) as response:
                response.raise_for_status()
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    content.extend(chunk)
                    if len(content) > MAX_IMAGE_BYTES:
                        logger.warning(f"Asset {url} exceeds {MAX_IMAGE_BYTES} bytes, ignoring")
                        return None
        except requests.exceptions.RequestException as e:
            logger.warning(f"Could not fetch asset {url}: {e}")
            return None

        return bytes(content)

    def close(self) -> None:
        self._session.close()
