# ABOUTME: Feed data loader that downloads raw feed bytes over HTTP.
# ABOUTME: Thin httpx wrapper; failures propagate for the caller to categorize.

from typing import Protocol

import httpx
import structlog

from podcast_ingest.config import Settings, get_settings

log = structlog.get_logger()


class DataLoader(Protocol):
    async def load(self, url: str) -> bytes: ...


class HttpFeedLoader:
    """Downloads feed documents with the configured timeout and user agent."""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or get_settings()
        self.transport = transport

    async def load(self, url: str) -> bytes:
        """Fetch ``url`` and return the body. Raises httpx.HTTPError on failure."""
        async with httpx.AsyncClient(
            timeout=self.settings.feed_timeout,
            headers={"User-Agent": self.settings.feed_user_agent},
            follow_redirects=True,
            transport=self.transport,
        ) as client:
            try:
                response = await client.get(url)
                response.raise_for_status()
            except httpx.HTTPError as e:
                log.error("feed_download_error", url=url, error=str(e))
                raise

        log.info("feed_downloaded", url=url, size=len(response.content))
        return response.content
