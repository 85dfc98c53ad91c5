"""Remote feed download."""

from dataclasses import dataclass

import httpx

from catalog_rag.config import FeedSettings, get_settings
from catalog_rag.exceptions import ErrorCode, FeedError
from catalog_rag.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class FeedDocument:
    """A downloaded feed body.

    Attributes:
        source: URL the feed was fetched from.
        content: Undecoded body.
        text: Body decoded with the response encoding.
        content_type: Response content type header.
    """

    source: str
    content: bytes
    text: str
    content_type: str = ""


class FeedLoader:
    """Fetches product feeds over HTTP."""

    def __init__(
        self,
        settings: FeedSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the feed loader.

        Args:
            settings: Feed configuration.
            client: HTTP client (for testing).
        """
        self._settings = settings or get_settings().feed
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._settings.timeout,
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def load(self, url: str) -> FeedDocument:
        """Download a feed.

        Args:
            url: Feed URL.

        Returns:
            FeedDocument with the raw and decoded body.

        Raises:
            FeedError: If the download fails or times out.
        """
        client = await self._get_client()

        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(
                f"Feed download failed: {status}",
                extra={"url": url, "status": status},
            )
            raise FeedError(
                f"Feed source returned {status}",
                code=ErrorCode.FEED_DOWNLOAD_ERROR,
                details={"url": url, "status_code": status},
            ) from e
        except httpx.RequestError as e:
            logger.error(f"Feed download error: {e}", extra={"url": url})
            raise FeedError(
                f"Failed to download feed: {e}",
                code=ErrorCode.FEED_DOWNLOAD_ERROR,
                details={"url": url},
            ) from e

        logger.info(
            "Downloaded feed",
            extra={"url": url, "bytes": len(response.content)},
        )

        return FeedDocument(
            source=url,
            content=response.content,
            text=response.text,
            content_type=response.headers.get("content-type", ""),
        )
