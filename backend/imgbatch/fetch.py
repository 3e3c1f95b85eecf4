"""Remote image fetching for dropped URIs and URL lists."""
import logging
from typing import Optional
from urllib.parse import unquote, urlparse

import httpx

from imgbatch.config import URL_FETCH_TIMEOUT, URL_FETCH_USER_AGENT
from imgbatch.conversion.models import PendingImage, is_image_type
from imgbatch.errors import FetchError

logger = logging.getLogger("imgbatch.fetch")

FALLBACK_NAME = "image"


def name_from_url(url: str) -> str:
    """Trailing path segment of the URL, percent-decoded."""
    path_part = (urlparse(url).path or "").rstrip("/").split("/")[-1]
    return unquote(path_part) or FALLBACK_NAME


class RemoteFetcher:
    """
    Fetches image payloads over HTTP(S).

    Usage:
        fetcher = RemoteFetcher()
        item = await fetcher.fetch("https://example.com/cat.png")
        await fetcher.close()
    """

    def __init__(
        self,
        timeout: Optional[float] = URL_FETCH_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.http_client = httpx.AsyncClient(
            timeout=timeout or None,
            follow_redirects=True,
            headers={"User-Agent": URL_FETCH_USER_AGENT, "Accept": "image/*,*/*;q=0.8"},
            transport=transport,
        )

    async def close(self):
        await self.http_client.aclose()

    async def fetch(self, url: str) -> PendingImage:
        """Download url and wrap it as a PendingImage. Raises FetchError on any failure."""
        url = (url or "").strip()
        try:
            parsed = urlparse(url)
        except ValueError as e:
            raise FetchError(url, f"invalid URL: {e!s}") from e
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise FetchError(url, "only absolute http and https URLs are supported")
        try:
            resp = await self.http_client.get(url)
        except httpx.TimeoutException as e:
            raise FetchError(url, f"timed out: {e!s}") from e
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            raise FetchError(url, f"request failed: {e!s}") from e
        if resp.status_code >= 400:
            raise FetchError(url, f"status {resp.status_code}")
        content_type = resp.headers.get("Content-Type", "").split(";")[0].strip().lower()
        if not is_image_type(content_type):
            raise FetchError(url, f"not an image ({content_type or 'no content type'})")
        logger.debug("Fetched %s (%s, %s bytes)", url, content_type, len(resp.content))
        return PendingImage(
            name=name_from_url(url),
            content_type=content_type,
            data=resp.content,
            source_url=url,
        )
