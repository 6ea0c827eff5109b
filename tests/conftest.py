# ABOUTME: Shared test fixtures for podcast-ingest.
# ABOUTME: Provides in-memory SQL stores, a fake feed loader and sample RSS/OPML documents.

from collections.abc import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from podcast_ingest.db.models import Base
from podcast_ingest.db.store import InMemoryPodcastStore, SqlPodcastStore

SAMPLE_FEED = """\
<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd">
  <channel>
    <title>Test Podcast</title>
    <itunes:author>Jane Host</itunes:author>
    <description>A show about &lt;b&gt;testing&lt;/b&gt;.</description>
    <itunes:image href="https://example.com/cover.jpg"/>
    <itunes:category text="Technology"/>
    <item>
      <title>Episode One</title>
      <guid>ep-1</guid>
      <pubDate>Mon, 15 Jan 2024 10:00:00 GMT</pubDate>
      <itunes:duration>01:30:00</itunes:duration>
      <description>First episode</description>
      <enclosure url="https://example.com/ep1.mp3" type="audio/mpeg" length="1000"/>
    </item>
    <item>
      <title>Episode Two</title>
      <guid>ep-2</guid>
      <pubDate>Mon, 22 Jan 2024 10:00:00 GMT</pubDate>
      <itunes:duration>45:30</itunes:duration>
      <enclosure url="https://example.com/ep2.mp3" type="audio/mpeg" length="2000"/>
    </item>
  </channel>
</rss>
"""

SAMPLE_OPML = """\
<?xml version="1.0" encoding="UTF-8"?>
<opml version="2.0">
  <head>
    <title>My Podcasts</title>
    <dateCreated>Mon, 15 Jan 2024 10:00:00 GMT</dateCreated>
    <ownerName>Jane</ownerName>
  </head>
  <body>
    <outline text="Tech" title="Tech">
      <outline text="Show A" title="Show A" type="rss"
               xmlUrl="https://a.example.com/feed.xml"
               htmlUrl="https://a.example.com/" />
      <outline text="Show B" type="rss" xmlUrl="https://b.example.com/feed.xml" />
    </outline>
    <outline text="Show C" type="rss" xmlUrl="https://c.example.com/feed.xml" />
  </body>
</opml>
"""


def make_feed(items: str = "", channel: str = "<title>Test Podcast</title>") -> str:
    """Wrap item markup in a minimal RSS document."""
    return (
        '<rss version="2.0" xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd">'
        f"<channel>{channel}{items}</channel></rss>"
    )


class FakeLoader:
    """DataLoader that serves canned documents and records every URL it is asked for."""

    def __init__(self, documents: dict[str, bytes | str] | None = None):
        self.documents = documents or {}
        self.requested: list[str] = []

    async def load(self, url: str) -> bytes:
        self.requested.append(url)
        if url not in self.documents:
            raise ConnectionError(f"no route to {url}")
        document = self.documents[url]
        return document.encode("utf-8") if isinstance(document, str) else document


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession]]:
    """Session factory bound to a fresh in-memory SQLite database."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession]:
    """In-memory SQLite async session for tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def sql_store(session_factory) -> SqlPodcastStore:
    return SqlPodcastStore(session_factory)


@pytest.fixture
def memory_store() -> InMemoryPodcastStore:
    return InMemoryPodcastStore()


@pytest.fixture
def sample_feed() -> str:
    """Two-episode RSS feed with iTunes metadata."""
    return SAMPLE_FEED


@pytest.fixture
def sample_opml() -> str:
    """OPML with one folder of two feeds and one top-level feed."""
    return SAMPLE_OPML
