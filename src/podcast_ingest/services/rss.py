# ABOUTME: RSS podcast feed builder driven by SAX events.
# ABOUTME: Produces a Podcast with ordered episodes plus non-fatal warnings for degraded items.

import hashlib
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from xml.sax.handler import ContentHandler

import structlog

from podcast_ingest.models import (
    UNKNOWN_PODCAST_TITLE,
    UNTITLED_EPISODE_TITLE,
    Episode,
    FeedWarning,
    ParsedFeed,
    Podcast,
)
from podcast_ingest.services.enclosure import is_valid_url, resolve_enclosure
from podcast_ingest.services.normalize import parse_date, parse_duration
from podcast_ingest.services.sanitizer import sanitize_text
from podcast_ingest.services.xml_events import FeedParseError, walk

log = structlog.get_logger()

WarningSink = Callable[[FeedWarning], None]

# Structural elements whose own character data is layout whitespace.
CONTAINER_ELEMENTS = frozenset({"rss", "channel", "item", "image"})

ITEM_FIELDS = {
    "title": "title",
    "guid": "guid",
    "pubdate": "pub_date",
    "description": "description",
    "itunes:summary": "itunes_summary",
    "itunes:duration": "duration",
    "content:encoded": "content",
}

CHANNEL_FIELDS = {
    "title": "title",
    "description": "description",
    "itunes:summary": "itunes_summary",
    "author": "author",
    "itunes:author": "itunes_author",
}


class _State(Enum):
    BEFORE_ITEM = auto()
    IN_ITEM = auto()
    AFTER_ITEM = auto()


@dataclass
class _Frame:
    name: str
    collects: bool
    parts: list[str] = field(default_factory=list)
    has_text_attr: bool = False


@dataclass
class _EpisodeBuilder:
    title: str = ""
    guid: str = ""
    pub_date: str = ""
    description: str = ""
    itunes_summary: str = ""
    duration: str = ""
    content: str = ""
    enclosures: list[str] = field(default_factory=list)
    artwork_url: str | None = None


@dataclass
class _ChannelBuilder:
    title: str = ""
    description: str = ""
    itunes_summary: str = ""
    author: str = ""
    itunes_author: str = ""
    artwork_url: str | None = None
    image_url: str | None = None
    categories: list[str] = field(default_factory=list)


def generate_episode_id(
    feed_url: str,
    title: str,
    pub_date: datetime | None,
    audio_url: str | None,
    position: int,
) -> str:
    """Deterministic id for an item without a guid.

    Derived from feed URL, title and publish date. When the item has neither
    title nor date, the resolved audio URL and the item's position stand in.
    """
    if title or pub_date:
        base = f"{feed_url}|{title}|{pub_date.isoformat() if pub_date else ''}"
    else:
        base = f"{feed_url}|{audio_url or ''}|#{position}"
    return hashlib.sha256(base.encode("utf-8")).hexdigest()[:16]


class _FeedHandler(ContentHandler):
    """Walks channel/item events for one document. Never reused across documents."""

    def __init__(self, feed_url: str, emit: WarningSink):
        super().__init__()
        self.feed_url = feed_url
        self.emit = emit
        self.state = _State.BEFORE_ITEM
        self.episodes: list[Episode] = []
        self.podcast: Podcast | None = None
        self._frames: list[_Frame] = []
        self._channel = _ChannelBuilder()
        self._episode: _EpisodeBuilder | None = None
        self._item_frame: _Frame | None = None

    @property
    def in_item(self) -> bool:
        return self.state is _State.IN_ITEM

    def _parent_name(self, depth: int = 1) -> str | None:
        if len(self._frames) < depth:
            return None
        return self._frames[-depth].name

    def startElement(self, name, attrs):
        key = name.lower()
        frame = _Frame(key, collects=key not in CONTAINER_ELEMENTS)
        self._frames.append(frame)

        if key == "item":
            # Nested items are not part of RSS; only the outermost one counts.
            if not self.in_item and self.podcast is None:
                self._episode = _EpisodeBuilder()
                self._item_frame = frame
                self.state = _State.IN_ITEM

        elif key == "enclosure":
            url = attrs.get("url")
            if self.in_item and url:
                self._episode.enclosures.append(url)

        elif key == "itunes:image":
            href = (attrs.get("href") or attrs.get("url") or "").strip()
            if is_valid_url(href):
                if self.in_item:
                    self._episode.artwork_url = href
                else:
                    self._channel.artwork_url = href

        elif key in ("category", "itunes:category") and not self.in_item:
            text = attrs.get("text")
            if text:
                self._channel.categories.append(text)
                frame.has_text_attr = True

    def characters(self, content):
        if self._frames and self._frames[-1].collects:
            self._frames[-1].parts.append(content)

    def endElement(self, name):
        frame = self._frames.pop()
        raw = "".join(frame.parts)
        text = raw.strip()
        parent = self._parent_name()

        if self.in_item:
            if frame is self._item_frame:
                self._finish_item()
            elif parent == "item" and frame.name in ITEM_FIELDS:
                setattr(self._episode, ITEM_FIELDS[frame.name], text)
        elif frame.name == "channel":
            if self.podcast is None:
                self._finish_channel()
        elif parent == "channel" and frame.name in CHANNEL_FIELDS:
            setattr(self._channel, CHANNEL_FIELDS[frame.name], text)
        elif frame.name == "url" and parent == "image" and self._parent_name(2) == "channel":
            if is_valid_url(text):
                self._channel.image_url = text
        elif frame.name == "category" and not frame.has_text_attr and text:
            self._channel.categories.append(text)

        # Inline markup (e.g. <b> inside <description>) keeps its words in the parent.
        if self._frames and self._frames[-1].collects:
            self._frames[-1].parts.append(raw)

    def _finish_item(self) -> None:
        builder = self._episode
        title = builder.title
        if not title:
            title = UNTITLED_EPISODE_TITLE
            self.emit(FeedWarning.missing_title(title))

        audio_url, enclosure_warnings = resolve_enclosure(builder.enclosures, title)
        for warning in enclosure_warnings:
            self.emit(warning)

        pub_date = parse_date(builder.pub_date)
        episode_id = builder.guid
        if not episode_id:
            episode_id = generate_episode_id(
                self.feed_url, builder.title, pub_date, audio_url, len(self.episodes)
            )
            self.emit(FeedWarning.missing_guid(title, episode_id))

        description = (
            builder.itunes_summary
            or sanitize_text(builder.description)
            or sanitize_text(builder.content)
        )

        self.episodes.append(
            Episode(
                id=episode_id,
                title=title,
                audio_url=audio_url,
                duration=parse_duration(builder.duration),
                pub_date=pub_date,
                description=description,
                artwork_url=builder.artwork_url,
            )
        )
        self._episode = None
        self._item_frame = None
        self.state = _State.AFTER_ITEM

    def _finish_channel(self) -> None:
        channel = self._channel
        self.podcast = Podcast(
            id=self.feed_url,
            title=channel.title or UNKNOWN_PODCAST_TITLE,
            author=channel.itunes_author or channel.author or None,
            description=sanitize_text(channel.description) or channel.itunes_summary or None,
            artwork_url=channel.artwork_url or channel.image_url,
            feed_url=self.feed_url,
            categories=list(channel.categories),
            episodes=list(self.episodes),
        )


class RSSFeedParser:
    """Parses RSS podcast feeds. Safe to share: every call builds fresh state."""

    def __init__(self, warning_sink: WarningSink | None = None):
        self.warning_sink = warning_sink

    def parse(self, data: bytes | str, source_url: str) -> ParsedFeed:
        """Parse a feed document.

        Raises FeedParseError when the bytes are not well-formed XML or contain
        no channel element. Field-level defects never raise; they are repaired
        and reported as warnings.
        """
        warnings: list[FeedWarning] = []

        def emit(warning: FeedWarning) -> None:
            warnings.append(warning)
            if self.warning_sink is not None:
                self.warning_sink(warning)

        handler = _FeedHandler(source_url, emit)
        walk(data, handler)

        if handler.podcast is None:
            log.error("feed_missing_channel", url=source_url)
            raise FeedParseError(f"No channel element in feed {source_url}")

        log.info(
            "feed_parsed",
            url=source_url,
            episodes=len(handler.podcast.episodes),
            warnings=len(warnings),
        )
        return ParsedFeed(podcast=handler.podcast, warnings=warnings)


def log_warning(warning: FeedWarning) -> None:
    log.warning("feed_warning", kind=warning.kind.value, message=str(warning))


def parse_feed(
    data: bytes | str, source_url: str, warning_sink: WarningSink | None = None
) -> Podcast:
    """Parse a feed document into a Podcast.

    Warnings go to ``warning_sink`` when given, otherwise they are logged.
    """
    return RSSFeedParser(warning_sink or log_warning).parse(data, source_url).podcast
