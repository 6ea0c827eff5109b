# ABOUTME: Duration and date normalizers for raw feed text.
# ABOUTME: Pure, total functions: malformed input yields None, never an exception.

import re
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime

MAX_DURATION_SECONDS = 2**63 - 1

_DIGITS = re.compile(r"\d+", re.ASCII)
_MAX_DIGITS = len(str(MAX_DURATION_SECONDS))


def _to_int(value: str) -> int | None:
    if not _DIGITS.fullmatch(value):
        return None
    # Longer digit runs overflow anyway and would trip the int() length limit.
    digits = value.lstrip("0") or "0"
    if len(digits) > _MAX_DIGITS:
        return None
    return int(digits)


def parse_duration(value: str | None) -> int | None:
    """Parse an itunes:duration value into whole seconds.

    Accepts plain seconds ("3600"), H:MM:SS ("01:30:00") and MM:SS ("45:30").
    Anything else, including negative numbers and out-of-range values, is None.
    """
    if not value:
        return None

    text = value.strip()
    seconds = _to_int(text)
    if seconds is None:
        parts = [_to_int(part) for part in text.split(":")]
        if any(part is None for part in parts):
            return None
        if len(parts) == 3:
            seconds = parts[0] * 3600 + parts[1] * 60 + parts[2]
        elif len(parts) == 2:
            seconds = parts[0] * 60 + parts[1]
        else:
            return None

    if seconds > MAX_DURATION_SECONDS:
        return None
    return seconds


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_date(value: str | None) -> datetime | None:
    """Parse an RFC 822 or ISO 8601 timestamp into an aware UTC datetime."""
    if not value:
        return None

    text = value.strip()
    try:
        return _as_utc(parsedate_to_datetime(text))
    except (TypeError, ValueError, IndexError, OverflowError):
        pass

    try:
        return _as_utc(datetime.fromisoformat(text))
    except ValueError:
        return None
