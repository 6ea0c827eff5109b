# ABOUTME: OPML export of subscribed podcasts.
# ABOUTME: Builds an OPMLDocument in a stable order and renders it as OPML 2.0 XML.

from collections.abc import Iterable
from datetime import UTC, datetime
from email.utils import format_datetime
from xml.etree import ElementTree

import structlog

from podcast_ingest.config import get_settings
from podcast_ingest.models import OPMLBody, OPMLDocument, OPMLHead, OPMLOutline, Podcast

log = structlog.get_logger()

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'


class NoSubscriptionsError(Exception):
    """Raised when there is nothing subscribed to export."""


def export_subscriptions(
    podcasts: Iterable[Podcast],
    title: str | None = None,
    owner_name: str | None = None,
) -> OPMLDocument:
    """Build an OPML document listing every subscribed podcast.

    Ordered by title (case-insensitive), then feed URL, so repeated exports of
    the same library are identical apart from the head dates.
    """
    settings = get_settings()
    subscribed = sorted(
        (p for p in podcasts if p.is_subscribed),
        key=lambda p: (p.title.casefold(), p.feed_url),
    )
    if not subscribed:
        log.warning("opml_export_empty")
        raise NoSubscriptionsError("No subscribed podcasts to export")

    now = datetime.now(UTC)
    head = OPMLHead(
        title=title or settings.opml_export_title,
        date_created=now,
        date_modified=now,
        owner_name=owner_name or settings.opml_owner_name,
    )
    outlines = [
        OPMLOutline(title=p.title, text=p.title, type="rss", xml_url=p.feed_url)
        for p in subscribed
    ]
    log.info("opml_exported", feeds=len(outlines))
    return OPMLDocument(version="2.0", head=head, body=OPMLBody(outlines=outlines))


def _format_date(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return format_datetime(value.astimezone(UTC), usegmt=True)


def _outline_element(parent: ElementTree.Element, outline: OPMLOutline) -> None:
    attrs = {"title": outline.title}
    if outline.text is not None:
        attrs["text"] = outline.text
    if outline.type is not None:
        attrs["type"] = outline.type
    if outline.xml_url is not None:
        attrs["xmlUrl"] = outline.xml_url
    if outline.html_url is not None:
        attrs["htmlUrl"] = outline.html_url

    element = ElementTree.SubElement(parent, "outline", attrs)
    for child in outline.outlines or []:
        _outline_element(element, child)


def render_opml(document: OPMLDocument) -> str:
    """Serialize a document as indented OPML XML with an XML declaration."""
    root = ElementTree.Element("opml", {"version": document.version})

    head = ElementTree.SubElement(root, "head")
    ElementTree.SubElement(head, "title").text = document.head.title
    if document.head.date_created is not None:
        ElementTree.SubElement(head, "dateCreated").text = _format_date(document.head.date_created)
    if document.head.date_modified is not None:
        ElementTree.SubElement(head, "dateModified").text = _format_date(
            document.head.date_modified
        )
    if document.head.owner_name is not None:
        ElementTree.SubElement(head, "ownerName").text = document.head.owner_name

    body = ElementTree.SubElement(root, "body")
    for outline in document.body.outlines:
        _outline_element(body, outline)

    ElementTree.indent(root)
    return XML_DECLARATION + ElementTree.tostring(root, encoding="unicode") + "\n"
