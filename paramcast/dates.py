"""
Date coercion helpers.

Supported inputs:
  - Unix timestamps with exactly 10 digits (seconds) or 13 digits (milliseconds)
  - Calendar strings: YYYY/MM/DD, YYYY-MM-DD, MM-DD-YYYY, MM/DD/YYYY, each
    optionally followed by HH:mm[:ss] and a timezone token (UTC, GMT, EST,
    +0200, ...). Missing parts default to 00:00:00 +0000.
  - ISO 8601 and RFC 2822 strings as a fallback

All results are timezone-aware datetimes in UTC.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone, UTC
from email.utils import parsedate_to_datetime
from typing import Any, Optional

from .types import parse_number


EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

_DATE_RX = r"(\d{2,4})[/-](\d{2})[/-](\d{2,4})"
_TIME_RX = r"(\s?(\d{2}):(\d{2})(?::(\d{2}))?)?"
_TZ_RX = r"(\s?([+-]?[a-zA-Z0-9]{3,4}))?"
_CALENDAR_RX = re.compile(_DATE_RX + _TIME_RX + _TZ_RX)

_DIGITS_RX = re.compile(r"^\d+$", re.ASCII)
_OFFSET_RX = re.compile(r"^([+-]?)(\d{2})(\d{2})$", re.ASCII)

_ZONE_OFFSETS = {
    "UT": 0,
    "UTC": 0,
    "GMT": 0,
    "EST": -5,
    "EDT": -4,
    "CST": -6,
    "CDT": -5,
    "MST": -7,
    "MDT": -6,
    "PST": -8,
    "PDT": -7,
}


def date_format(text: str) -> Optional[str]:
    """
    Find a calendar date in ``text`` and fill in missing time and zone parts.

    Example:
        >>> date_format("2012-02-20")
        '2012-02-20 00:00:00 +0000'
        >>> date_format("02/20/2012 10:30 GMT")
        '02/20/2012 10:30:00 GMT'

    Args:
        text: String that may contain a calendar date

    Returns:
        Normalized date string, or None if no date pattern was found
    """
    match = _CALENDAR_RX.search(text)
    if not match:
        return None

    _, _, _, time_part, hour, minute, seconds, _, zone = match.groups()
    normalized = text[match.start(1):match.end(3)]
    normalized += f" {hour}:{minute}" if time_part else " 00:00"
    normalized += f":{seconds}" if seconds else ":00"
    normalized += f" {zone}" if zone else " +0000"
    return normalized


def _parse_zone(token: str) -> Optional[timezone]:
    offset = _ZONE_OFFSETS.get(token.upper())
    if offset is not None:
        return timezone(timedelta(hours=offset))

    match = _OFFSET_RX.match(token)
    if not match:
        return None
    sign, hours, minutes = match.groups()
    delta = timedelta(hours=int(hours), minutes=int(minutes))
    return timezone(-delta if sign == "-" else delta)


def _expand_year(year: str) -> int:
    value = int(year)
    if len(year) == 2:
        return value + (2000 if value < 50 else 1900)
    return value


def parse_calendar_date(text: str) -> Optional[datetime]:
    """Parse a normalized calendar date string (see ``date_format``)."""
    match = _CALENDAR_RX.search(text)
    if not match:
        return None

    first, second, third, _, hour, minute, seconds, _, zone = match.groups()
    if len(first) == 4:
        year, month, day = first, second, third
    elif len(first) == 2:
        month, day, year = first, second, third
        if len(year) == 3:
            return None
    else:
        return None

    tz = _parse_zone(zone) if zone else UTC
    if tz is None:
        return None

    try:
        parsed = datetime(
            _expand_year(year),
            int(month),
            int(day),
            int(hour or 0),
            int(minute or 0),
            int(seconds or 0),
            tzinfo=tz,
        )
    except ValueError:
        return None
    return parsed.astimezone(UTC)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_generic_date(text: str) -> Optional[datetime]:
    """Parse ISO 8601 or RFC 2822 date strings; naive results are treated as UTC."""
    text = text.strip()
    if not text:
        return None
    try:
        return _as_utc(datetime.fromisoformat(text))
    except ValueError:
        pass
    try:
        return _as_utc(parsedate_to_datetime(text))
    except (TypeError, ValueError, IndexError):
        return None


def from_timestamp(value: Any) -> Optional[datetime]:
    """
    Interpret a 10-digit value as Unix seconds and a 13-digit value as Unix
    milliseconds. Any other length is not treated as a timestamp.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not value.is_integer():
            return None
        value = int(value)
    if isinstance(value, str):
        if not _DIGITS_RX.match(value):
            return None
        digits = len(value)
    elif isinstance(value, int):
        # Counted without str() so huge ints never hit the conversion limit
        if 10 ** 9 <= value < 10 ** 10:
            digits = 10
        elif 10 ** 12 <= value < 10 ** 13:
            digits = 13
        else:
            return None
    else:
        return None

    if digits == 10:
        return EPOCH + timedelta(seconds=int(value))
    if digits == 13:
        return EPOCH + timedelta(milliseconds=int(value))
    return None


def coerce_date(value: Any) -> Optional[date]:
    """
    Coerce a raw value to a date.

    Date values are returned unchanged. Numeric values only ever resolve
    through ``from_timestamp``; non-numeric strings go through the calendar
    parser first and the generic parser second.

    Returns:
        The coerced value, or None if it cannot be read as a date
    """
    if isinstance(value, date):
        return value
    if parse_number(value) is not None:
        return from_timestamp(value)
    if not isinstance(value, str):
        return None

    normalized = date_format(value)
    if normalized:
        parsed = parse_calendar_date(normalized)
        if parsed is not None:
            return parsed
    return parse_generic_date(value)
