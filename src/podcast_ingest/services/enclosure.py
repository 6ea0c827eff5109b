# ABOUTME: Enclosure resolution: picks the audio URL for an episode from its candidates.
# ABOUTME: First syntactically valid URL wins; invalid ones seen before it become warnings.

import re
from typing import NamedTuple

from pydantic import AnyUrl, TypeAdapter, ValidationError

from podcast_ingest.models import FeedWarning

_url_adapter = TypeAdapter(AnyUrl)
_WHITESPACE = re.compile(r"\s")


class EnclosureResolution(NamedTuple):
    url: str | None
    warnings: list[FeedWarning]


def is_valid_url(value: str | None) -> bool:
    """Strict check: no embedded whitespace, a scheme and a host."""
    if not value or _WHITESPACE.search(value):
        return False
    try:
        url = _url_adapter.validate_python(value)
    except ValidationError:
        return False
    return bool(url.scheme and url.host)


def resolve_enclosure(candidates: list[str], episode_title: str) -> EnclosureResolution:
    """Resolve the audio URL for one episode.

    Candidates are raw enclosure url attributes in document order. Each invalid
    candidate before the first valid one yields an "invalid audio URL" warning;
    candidates after the winner are never inspected. With no candidates at all,
    a single "missing audio URL" warning is returned.
    """
    if not candidates:
        return EnclosureResolution(None, [FeedWarning.missing_audio(episode_title)])

    warnings: list[FeedWarning] = []
    for candidate in candidates:
        stripped = candidate.strip()
        if is_valid_url(stripped):
            return EnclosureResolution(stripped, warnings)
        warnings.append(FeedWarning.invalid_audio(episode_title, candidate))

    return EnclosureResolution(None, warnings)
