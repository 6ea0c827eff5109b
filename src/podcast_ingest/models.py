# ABOUTME: Pydantic schemas for parsed podcasts, episodes, warnings and OPML documents.
# ABOUTME: All records are frozen; consumers derive updated copies with model_copy.

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN_PODCAST_TITLE = "Unknown Podcast"
UNTITLED_EPISODE_TITLE = "Untitled Episode"


class WarningKind(StrEnum):
    MISSING_AUDIO = "missing_audio"
    INVALID_AUDIO = "invalid_audio"
    MISSING_TITLE = "missing_title"
    MISSING_GUID = "missing_guid"


class FeedWarning(str):
    """Non-fatal defect found while parsing a feed.

    The value is the rendered message, so warnings can be logged, compared and
    searched like plain strings. ``kind``, ``episode_title`` and ``value`` carry
    the structured details.
    """

    kind: WarningKind
    episode_title: str | None
    value: str | None

    def __new__(
        cls,
        kind: WarningKind,
        message: str,
        *,
        episode_title: str | None = None,
        value: str | None = None,
    ) -> "FeedWarning":
        warning = super().__new__(cls, message)
        warning.kind = kind
        warning.episode_title = episode_title
        warning.value = value
        return warning

    def __repr__(self) -> str:
        return f"FeedWarning({self.kind.value}, {str.__repr__(self)})"

    @classmethod
    def missing_audio(cls, episode_title: str) -> "FeedWarning":
        return cls(
            WarningKind.MISSING_AUDIO,
            f"Episode '{episode_title}' missing audio URL",
            episode_title=episode_title,
        )

    @classmethod
    def invalid_audio(cls, episode_title: str, url: str) -> "FeedWarning":
        return cls(
            WarningKind.INVALID_AUDIO,
            f"Episode '{episode_title}' has invalid audio URL: {url}",
            episode_title=episode_title,
            value=url,
        )

    @classmethod
    def missing_title(cls, fallback: str) -> "FeedWarning":
        return cls(
            WarningKind.MISSING_TITLE,
            f"Episode missing title, using '{fallback}'",
            episode_title=fallback,
        )

    @classmethod
    def missing_guid(cls, episode_title: str, generated_id: str) -> "FeedWarning":
        return cls(
            WarningKind.MISSING_GUID,
            f"Episode '{episode_title}' missing guid, generated id {generated_id}",
            episode_title=episode_title,
            value=generated_id,
        )


class Episode(BaseModel):
    """A single feed item."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    audio_url: str | None = None
    duration: int | None = None
    pub_date: datetime | None = None
    description: str | None = None
    artwork_url: str | None = None


class Podcast(BaseModel):
    """A feed channel with its episodes in document order."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    author: str | None = None
    description: str | None = None
    artwork_url: str | None = None
    feed_url: str
    categories: list[str] = Field(default_factory=list)
    episodes: list[Episode] = Field(default_factory=list)
    is_subscribed: bool = False
    date_added: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ParsedFeed(BaseModel):
    """Parser output: the podcast plus every warning raised while building it."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    podcast: Podcast
    warnings: list[FeedWarning] = Field(default_factory=list)


class OPMLOutline(BaseModel):
    """A feed (leaf with xml_url) or a folder (has nested outlines)."""

    model_config = ConfigDict(frozen=True)

    title: str = ""
    text: str | None = None
    xml_url: str | None = None
    html_url: str | None = None
    type: str | None = None
    outlines: list["OPMLOutline"] | None = None

    @property
    def is_feed(self) -> bool:
        return bool(self.xml_url)

    @property
    def is_folder(self) -> bool:
        return bool(self.outlines)

    def all_feed_urls(self) -> list[str]:
        """Own feed URL followed by every nested feed URL, in document order."""
        urls = [self.xml_url] if self.xml_url else []
        for child in self.outlines or []:
            urls.extend(child.all_feed_urls())
        return urls


class OPMLHead(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = ""
    date_created: datetime | None = None
    date_modified: datetime | None = None
    owner_name: str | None = None


class OPMLBody(BaseModel):
    model_config = ConfigDict(frozen=True)

    outlines: list[OPMLOutline] = Field(default_factory=list)


class OPMLDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: str = "2.0"
    head: OPMLHead
    body: OPMLBody


class FailedFeed(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    error: str


class OPMLImportResult(BaseModel):
    """Outcome of subscribing to every feed listed in an OPML document."""

    model_config = ConfigDict(frozen=True)

    successful_feeds: list[str] = Field(default_factory=list)
    failed_feeds: list[FailedFeed] = Field(default_factory=list)
    total_feeds: int = 0

    @property
    def is_complete_success(self) -> bool:
        return not self.failed_feeds and self.total_feeds > 0

    @property
    def has_partial_success(self) -> bool:
        return bool(self.successful_feeds)
