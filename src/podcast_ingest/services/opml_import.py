# ABOUTME: OPML bulk import: subscribes to every feed listed in an OPML document.
# ABOUTME: Feeds are deduplicated in document order; per-feed failures are collected, not raised.

from pathlib import Path

import structlog

from podcast_ingest.models import FailedFeed, OPMLImportResult
from podcast_ingest.services.opml import parse_opml
from podcast_ingest.services.subscription import SubscriptionError, SubscriptionService
from podcast_ingest.services.xml_events import FeedParseError

log = structlog.get_logger()


class OPMLImportError(Exception):
    pass


class InvalidOPMLError(OPMLImportError):
    """The OPML source could not be read or parsed."""


class NoFeedsFoundError(OPMLImportError):
    """The OPML document lists no feed URLs."""


class OPMLImportService:
    def __init__(self, subscription_service: SubscriptionService):
        self.subscription_service = subscription_service

    async def import_subscriptions(self, data: bytes | str) -> OPMLImportResult:
        """Subscribe to each feed in ``data``.

        Returns the result even when every feed failed (e.g. all duplicates).
        """
        try:
            document = parse_opml(data)
        except FeedParseError as e:
            raise InvalidOPMLError(str(e)) from e

        feed_urls: list[str] = []
        for outline in document.body.outlines:
            feed_urls.extend(outline.all_feed_urls())
        feed_urls = list(dict.fromkeys(feed_urls))

        if not feed_urls:
            log.warning("opml_import_no_feeds", title=document.head.title)
            raise NoFeedsFoundError("No feed URLs found in OPML document")

        successful: list[str] = []
        failed: list[FailedFeed] = []
        for url in feed_urls:
            try:
                await self.subscription_service.subscribe(url)
            except SubscriptionError as e:
                failed.append(FailedFeed(url=url, error=e.description))
            else:
                successful.append(url)

        log.info("opml_imported", imported=len(successful), failed=len(failed), total=len(feed_urls))
        return OPMLImportResult(
            successful_feeds=successful,
            failed_feeds=failed,
            total_feeds=len(feed_urls),
        )

    async def import_file(self, path: Path) -> OPMLImportResult:
        """Import from a local OPML file."""
        try:
            data = path.read_bytes()
        except OSError as e:
            log.error("opml_read_error", path=str(path), error=str(e))
            raise InvalidOPMLError(str(e)) from e
        return await self.import_subscriptions(data)
