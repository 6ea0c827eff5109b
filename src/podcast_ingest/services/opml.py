# ABOUTME: OPML subscription-list parser built on SAX events.
# ABOUTME: Builds the full head/body outline tree and extracts feed URLs from it.

from dataclasses import dataclass, field
from xml.sax.handler import ContentHandler

import structlog

from podcast_ingest.models import OPMLBody, OPMLDocument, OPMLHead, OPMLOutline
from podcast_ingest.services.normalize import parse_date
from podcast_ingest.services.xml_events import FeedParseError, walk

log = structlog.get_logger()

HEAD_FIELDS = {
    "title": "title",
    "datecreated": "date_created",
    "datemodified": "date_modified",
    "ownername": "owner_name",
}


@dataclass
class _OutlineBuilder:
    attrs: dict[str, str]
    children: list[OPMLOutline] = field(default_factory=list)

    def build(self) -> OPMLOutline:
        return OPMLOutline(
            title=self.attrs.get("title") or self.attrs.get("text") or "",
            text=self.attrs.get("text"),
            xml_url=self.attrs.get("xmlUrl"),
            html_url=self.attrs.get("htmlUrl"),
            type=self.attrs.get("type"),
            outlines=self.children or None,
        )


class _OPMLHandler(ContentHandler):
    def __init__(self):
        super().__init__()
        self.root: str | None = None
        self.version = "2.0"
        self.head_seen = False
        self.body_seen = False
        self.head: dict[str, str] = {}
        self.outlines: list[OPMLOutline] = []
        self._names: list[str] = []
        self._text: list[str] | None = None
        self._stack: list[_OutlineBuilder] = []

    def startElement(self, name, attrs):
        key = name.lower()
        parent = self._names[-1] if self._names else None
        self._names.append(key)

        if self.root is None:
            self.root = key
            if key == "opml":
                self.version = attrs.get("version") or self.version
        elif key == "head" and parent == "opml":
            self.head_seen = True
        elif key == "body" and parent == "opml":
            self.body_seen = True
        elif parent == "head" and key in HEAD_FIELDS:
            self._text = []
        elif key == "outline" and "body" in self._names:
            self._stack.append(_OutlineBuilder(dict(attrs.items())))

    def characters(self, content):
        if self._text is not None:
            self._text.append(content)

    def endElement(self, name):
        key = self._names.pop()
        parent = self._names[-1] if self._names else None

        if parent == "head" and key in HEAD_FIELDS and self._text is not None:
            self.head[HEAD_FIELDS[key]] = "".join(self._text).strip()
            self._text = None
        elif key == "outline" and self._stack:
            outline = self._stack.pop().build()
            if self._stack:
                self._stack[-1].children.append(outline)
            else:
                self.outlines.append(outline)


def parse_opml(data: bytes | str) -> OPMLDocument:
    """Parse an OPML document into its full outline tree.

    Raises FeedParseError for malformed XML, a root element other than
    <opml>, or a document without <head> and <body>. An empty head title is
    kept as "".
    """
    handler = _OPMLHandler()
    walk(data, handler)

    if handler.root != "opml":
        log.error("opml_wrong_root", root=handler.root)
        raise FeedParseError(f"Expected <opml> root element, found <{handler.root}>")
    if not (handler.head_seen and handler.body_seen):
        log.error("opml_missing_sections", head=handler.head_seen, body=handler.body_seen)
        raise FeedParseError("OPML document requires <head> and <body>")

    head = OPMLHead(
        title=handler.head.get("title", ""),
        date_created=parse_date(handler.head.get("date_created")),
        date_modified=parse_date(handler.head.get("date_modified")),
        owner_name=handler.head.get("owner_name"),
    )
    document = OPMLDocument(
        version=handler.version,
        head=head,
        body=OPMLBody(outlines=handler.outlines),
    )
    log.info("opml_parsed", outlines=len(handler.outlines))
    return document


def all_feed_urls(outline: OPMLOutline) -> list[str]:
    """Feed URLs of an outline and all its descendants, in document order, no dedup."""
    return outline.all_feed_urls()
