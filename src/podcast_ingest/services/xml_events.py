# ABOUTME: SAX event source shared by the RSS and OPML builders.
# ABOUTME: Runs defusedxml's expat driver and turns any tokenizer failure into FeedParseError.

from xml.sax import SAXException
from xml.sax.handler import ContentHandler

import defusedxml.sax
import structlog
from defusedxml import DefusedXmlException

log = structlog.get_logger()


class FeedParseError(ValueError):
    """The document is not well-formed XML or is not the expected kind of document."""


def walk(data: bytes | str, handler: ContentHandler) -> None:
    """Feed every SAX event of ``data`` to ``handler``.

    Namespace processing stays off, so qualified names such as
    ``itunes:duration`` reach the handler verbatim even when the prefix is
    never declared. Entity expansion and external references are refused.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")

    try:
        defusedxml.sax.parseString(data, handler)
    except (SAXException, DefusedXmlException) as e:
        log.error("xml_parse_error", error=str(e))
        raise FeedParseError(str(e)) from e
