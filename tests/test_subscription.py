# ABOUTME: Tests for the subscribe flow: URL validation, duplicates, loading, parsing, storing.
# ABOUTME: Uses the in-memory store and a canned loader so no network is touched.

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest
from conftest import FakeLoader, make_feed

from podcast_ingest.db.store import InMemoryPodcastStore
from podcast_ingest.models import Podcast
from podcast_ingest.services.subscription import (
    DataLoadFailedError,
    DuplicateSubscriptionError,
    InvalidFeedURLError,
    ParseFailedError,
    SubscriptionError,
    SubscriptionFailure,
    SubscriptionService,
)

FEED_URL = "https://example.com/feed.xml"


async def test_subscribe_stores_podcast(memory_store, sample_feed):
    """A good feed is parsed, marked subscribed and stored under its feed URL."""
    service = SubscriptionService(FakeLoader({FEED_URL: sample_feed}), memory_store)
    before = datetime.now(UTC)

    podcast = await service.subscribe(FEED_URL)

    assert podcast.is_subscribed is True
    assert podcast.date_added >= before
    assert podcast.title == "Test Podcast"
    assert len(podcast.episodes) == 2
    assert await memory_store.find(FEED_URL) == podcast


async def test_subscribe_trims_url(memory_store, sample_feed):
    """Surrounding whitespace in the URL is ignored."""
    loader = FakeLoader({FEED_URL: sample_feed})
    service = SubscriptionService(loader, memory_store)

    podcast = await service.subscribe(f"  {FEED_URL}\n")

    assert podcast.feed_url == FEED_URL
    assert loader.requested == [FEED_URL]


@pytest.mark.parametrize(
    "url", ["", "not a url", "ftp://example.com/feed.xml", "example.com/feed", "https://"]
)
async def test_subscribe_rejects_invalid_url(memory_store, url):
    """Only absolute http(s) URLs are accepted, and nothing is fetched otherwise."""
    loader = FakeLoader()
    service = SubscriptionService(loader, memory_store)

    with pytest.raises(InvalidFeedURLError) as exc_info:
        await service.subscribe(url)

    assert exc_info.value.kind is SubscriptionFailure.INVALID_URL
    assert loader.requested == []


async def test_subscribe_duplicate_is_rejected_before_loading(sample_feed):
    """An existing feed URL is reported as a duplicate without downloading."""
    existing = Podcast(id=FEED_URL, title="Old", feed_url=FEED_URL, is_subscribed=True)
    loader = FakeLoader({FEED_URL: sample_feed})
    store = InMemoryPodcastStore([existing])
    service = SubscriptionService(loader, store)

    with pytest.raises(DuplicateSubscriptionError) as exc_info:
        await service.subscribe(FEED_URL)

    assert exc_info.value.description == "Already subscribed"
    assert loader.requested == []
    assert (await store.find(FEED_URL)).title == "Old"


async def test_subscribe_twice(memory_store, sample_feed):
    """The second subscribe to the same feed fails as a duplicate."""
    service = SubscriptionService(FakeLoader({FEED_URL: sample_feed}), memory_store)
    await service.subscribe(FEED_URL)

    with pytest.raises(DuplicateSubscriptionError):
        await service.subscribe(FEED_URL)


async def test_subscribe_load_failure(memory_store):
    """Loader errors of any type become DataLoadFailedError."""
    loader = AsyncMock()
    loader.load.side_effect = TimeoutError("timed out")
    service = SubscriptionService(loader, memory_store)

    with pytest.raises(DataLoadFailedError) as exc_info:
        await service.subscribe(FEED_URL)

    assert exc_info.value.kind is SubscriptionFailure.DATA_LOAD_FAILED
    assert isinstance(exc_info.value.__cause__, TimeoutError)
    assert await memory_store.all() == []


async def test_subscribe_parse_failure(memory_store):
    """Unparseable feed data becomes ParseFailedError and nothing is stored."""
    service = SubscriptionService(FakeLoader({FEED_URL: "<html>nope"}), memory_store)

    with pytest.raises(ParseFailedError) as exc_info:
        await service.subscribe(FEED_URL)

    assert exc_info.value.description == "Failed to parse feed"
    assert await memory_store.all() == []


async def test_subscribe_feed_without_channel_is_parse_failure(memory_store):
    """Well-formed XML that is not a feed is still a parse failure."""
    service = SubscriptionService(FakeLoader({FEED_URL: "<html><body/></html>"}), memory_store)

    with pytest.raises(ParseFailedError):
        await service.subscribe(FEED_URL)


async def test_subscribe_keeps_degraded_episodes(memory_store):
    """Warnings do not stop a subscription."""
    feed = make_feed(items="<item><title>No audio</title></item>")
    service = SubscriptionService(FakeLoader({FEED_URL: feed}), memory_store)

    podcast = await service.subscribe(FEED_URL)

    assert podcast.episodes[0].audio_url is None


async def test_subscription_error_messages():
    """Errors carry a description and the offending URL."""
    error = DataLoadFailedError("https://x.example.com/feed")
    assert isinstance(error, SubscriptionError)
    assert str(error) == "Failed to load feed data: https://x.example.com/feed"
    assert error.url == "https://x.example.com/feed"
    assert InvalidFeedURLError("bad").description == "Invalid feed URL"


async def test_subscribe_with_sql_store(sql_store, sample_feed):
    """The service works the same against the SQLite store."""
    service = SubscriptionService(FakeLoader({FEED_URL: sample_feed}), sql_store)
    await service.subscribe(FEED_URL)

    stored = await sql_store.find(FEED_URL)
    assert stored is not None
    assert stored.is_subscribed is True
    assert [e.id for e in stored.episodes] == ["ep-1", "ep-2"]

    with pytest.raises(DuplicateSubscriptionError):
        await service.subscribe(FEED_URL)


async def test_subscribe_feed_with_enormous_duration(memory_store):
    """Absurd field values degrade the episode instead of failing the subscription."""
    feed = make_feed(
        items=f"<item><title>E</title><guid>g</guid><itunes:duration>{'9' * 5000}</itunes:duration></item>"
    )
    service = SubscriptionService(FakeLoader({FEED_URL: feed}), memory_store)

    podcast = await service.subscribe(FEED_URL)

    assert podcast.episodes[0].duration is None
