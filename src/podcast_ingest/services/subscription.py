# ABOUTME: Subscription orchestrator: URL check, duplicate check, fetch, parse, store.
# ABOUTME: Maps every failure to a SubscriptionError subclass with a caller-facing description.

from datetime import UTC, datetime
from enum import StrEnum
from urllib.parse import urlsplit

import structlog

from podcast_ingest.db.store import PodcastStore
from podcast_ingest.models import Podcast
from podcast_ingest.services.loader import DataLoader
from podcast_ingest.services.rss import RSSFeedParser, log_warning
from podcast_ingest.services.xml_events import FeedParseError

log = structlog.get_logger()


class SubscriptionFailure(StrEnum):
    INVALID_URL = "invalid_url"
    DATA_LOAD_FAILED = "data_load_failed"
    PARSE_FAILED = "parse_failed"
    DUPLICATE_SUBSCRIPTION = "duplicate_subscription"


class SubscriptionError(Exception):
    kind: SubscriptionFailure
    description: str

    def __init__(self, url: str):
        super().__init__(f"{self.description}: {url}")
        self.url = url


class InvalidFeedURLError(SubscriptionError):
    kind = SubscriptionFailure.INVALID_URL
    description = "Invalid feed URL"


class DataLoadFailedError(SubscriptionError):
    kind = SubscriptionFailure.DATA_LOAD_FAILED
    description = "Failed to load feed data"


class ParseFailedError(SubscriptionError):
    kind = SubscriptionFailure.PARSE_FAILED
    description = "Failed to parse feed"


class DuplicateSubscriptionError(SubscriptionError):
    kind = SubscriptionFailure.DUPLICATE_SUBSCRIPTION
    description = "Already subscribed"


def _is_feed_url(url: str) -> bool:
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return parts.scheme.lower() in ("http", "https") and bool(parts.netloc) and " " not in url


class SubscriptionService:
    """Subscribes to a feed: validates, fetches, parses and stores it.

    No retries and no merging with existing records; a second subscribe to the
    same feed URL is rejected before anything is downloaded.
    """

    def __init__(
        self,
        data_loader: DataLoader,
        store: PodcastStore,
        parser: RSSFeedParser | None = None,
    ):
        self.data_loader = data_loader
        self.store = store
        self.parser = parser or RSSFeedParser(warning_sink=log_warning)

    async def subscribe(self, url_string: str) -> Podcast:
        """Subscribe to the feed at ``url_string`` and return the stored podcast."""
        url = url_string.strip()
        if not _is_feed_url(url):
            log.warning("subscription_invalid_url", url=url_string)
            raise InvalidFeedURLError(url_string)

        if await self.store.find(url) is not None:
            log.info("subscription_duplicate", url=url)
            raise DuplicateSubscriptionError(url)

        try:
            data = await self.data_loader.load(url)
        except Exception as e:
            log.error("subscription_load_failed", url=url, error=str(e))
            raise DataLoadFailedError(url) from e

        try:
            parsed = self.parser.parse(data, url)
        except FeedParseError as e:
            log.error("subscription_parse_failed", url=url, error=str(e))
            raise ParseFailedError(url) from e

        podcast = parsed.podcast.model_copy(
            update={"is_subscribed": True, "date_added": datetime.now(UTC)}
        )
        await self.store.add(podcast)
        log.info(
            "subscribed",
            url=url,
            title=podcast.title,
            episodes=len(podcast.episodes),
            warnings=len(parsed.warnings),
        )
        return podcast
