# ABOUTME: Podcast stores used by the subscription service.
# ABOUTME: In-memory store for tests and embedding; SQLite store on SQLAlchemy async sessions.

from datetime import UTC, datetime
from typing import Protocol

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from podcast_ingest.db.models import EpisodeRecord, PodcastRecord
from podcast_ingest.models import Episode, Podcast

log = structlog.get_logger()


class PodcastStore(Protocol):
    async def find(self, podcast_id: str) -> Podcast | None: ...

    async def add(self, podcast: Podcast) -> None: ...

    async def all(self) -> list[Podcast]: ...


class InMemoryPodcastStore:
    """Dict-backed store keyed by podcast id, in insertion order."""

    def __init__(self, podcasts: list[Podcast] | None = None):
        self._podcasts: dict[str, Podcast] = {p.id: p for p in podcasts or []}

    async def find(self, podcast_id: str) -> Podcast | None:
        return self._podcasts.get(podcast_id)

    async def add(self, podcast: Podcast) -> None:
        self._podcasts[podcast.id] = podcast

    async def all(self) -> list[Podcast]:
        return list(self._podcasts.values())


def _utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _to_record(podcast: Podcast) -> PodcastRecord:
    return PodcastRecord(
        id=podcast.id,
        title=podcast.title,
        author=podcast.author,
        description=podcast.description,
        artwork_url=podcast.artwork_url,
        feed_url=podcast.feed_url,
        categories=list(podcast.categories),
        is_subscribed=podcast.is_subscribed,
        date_added=podcast.date_added,
        episodes=[
            EpisodeRecord(
                position=position,
                id=episode.id,
                title=episode.title,
                audio_url=episode.audio_url,
                duration=episode.duration,
                pub_date=episode.pub_date,
                description=episode.description,
                artwork_url=episode.artwork_url,
            )
            for position, episode in enumerate(podcast.episodes)
        ],
    )


def _to_podcast(record: PodcastRecord) -> Podcast:
    return Podcast(
        id=record.id,
        title=record.title,
        author=record.author,
        description=record.description,
        artwork_url=record.artwork_url,
        feed_url=record.feed_url,
        categories=list(record.categories or []),
        is_subscribed=record.is_subscribed,
        date_added=_utc(record.date_added),
        episodes=[
            Episode(
                id=row.id,
                title=row.title,
                audio_url=row.audio_url,
                duration=row.duration,
                pub_date=_utc(row.pub_date),
                description=row.description,
                artwork_url=row.artwork_url,
            )
            for row in record.episodes
        ],
    )


class SqlPodcastStore:
    """Podcast store persisted through SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def _load(self, session: AsyncSession, podcast_id: str) -> PodcastRecord | None:
        result = await session.execute(
            select(PodcastRecord)
            .options(selectinload(PodcastRecord.episodes))
            .where(PodcastRecord.id == podcast_id)
        )
        return result.scalar_one_or_none()

    async def find(self, podcast_id: str) -> Podcast | None:
        async with self.session_factory() as session:
            record = await self._load(session, podcast_id)
            return _to_podcast(record) if record else None

    async def add(self, podcast: Podcast) -> None:
        async with self.session_factory() as session:
            existing = await self._load(session, podcast.id)
            if existing is not None:
                await session.delete(existing)
                await session.flush()
            session.add(_to_record(podcast))
            await session.commit()
        log.info("podcast_stored", id=podcast.id, episodes=len(podcast.episodes))

    async def all(self) -> list[Podcast]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(PodcastRecord)
                .options(selectinload(PodcastRecord.episodes))
                .order_by(PodcastRecord.date_added)
            )
            return [_to_podcast(record) for record in result.scalars().all()]
