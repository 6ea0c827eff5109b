# ABOUTME: SQLAlchemy ORM models for stored podcasts and their episodes.
# ABOUTME: Defines PodcastRecord and EpisodeRecord tables; episode order is kept by position.

from datetime import UTC, datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class PodcastRecord(Base):
    __tablename__ = "podcasts"

    id: Mapped[str] = mapped_column(String(2048), primary_key=True)
    title: Mapped[str] = mapped_column(String(500))
    author: Mapped[str | None] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)
    artwork_url: Mapped[str | None] = mapped_column(String(2048))
    feed_url: Mapped[str] = mapped_column(String(2048), unique=True)
    categories: Mapped[list[str]] = mapped_column(JSON, default=list)
    is_subscribed: Mapped[bool] = mapped_column(Boolean, default=False)
    date_added: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )

    episodes: Mapped[list["EpisodeRecord"]] = relationship(
        back_populates="podcast",
        order_by="EpisodeRecord.position",
        cascade="all, delete-orphan",
    )


class EpisodeRecord(Base):
    __tablename__ = "episodes"
    __table_args__ = (Index("ix_episodes_podcast_position", "podcast_id", "position"),)

    row_id: Mapped[int] = mapped_column(primary_key=True)
    podcast_id: Mapped[str] = mapped_column(ForeignKey("podcasts.id"))
    position: Mapped[int] = mapped_column(Integer)
    # Feed guids are not unique across podcasts, so they are not the primary key.
    id: Mapped[str] = mapped_column(String(2048))
    title: Mapped[str] = mapped_column(String(500))
    audio_url: Mapped[str | None] = mapped_column(String(2048))
    duration: Mapped[int | None] = mapped_column(Integer)
    pub_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    description: Mapped[str | None] = mapped_column(Text)
    artwork_url: Mapped[str | None] = mapped_column(String(2048))

    podcast: Mapped[PodcastRecord] = relationship(back_populates="episodes")
