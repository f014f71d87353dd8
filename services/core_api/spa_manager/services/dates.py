"""Calendar-date keys shared by every reporting view.

Records arrive with dates as bare ``YYYY-MM-DD`` strings, ``YYYY-MM-DD HH:MM:SS``
strings, ISO-8601 timestamps (often with a ``Z`` suffix) or native
``date``/``datetime`` values. Everything downstream compares and buckets on the
canonical ``YYYY-MM-DD`` key produced here.

The key is read off the value's own calendar fields. Timestamps are truncated,
never converted between zones: converting ``2024-05-20T00:00:00Z`` to a local
zone west of UTC would move the record to the 19th.
"""
from __future__ import annotations

import calendar
import re
from datetime import date, datetime
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DATE_KEY_FORMAT = '%Y-%m-%d'
_DATE_PREFIX_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')
_TIME_SEPARATORS = ('T', 't', ' ')


def normalize_date(value: Any) -> str:
    """Return the ``YYYY-MM-DD`` key for ``value``, or ``''`` when it has none."""
    if value is None:
        return ''
    if isinstance(value, datetime):
        return value.strftime(DATE_KEY_FORMAT)
    if isinstance(value, date):
        return value.strftime(DATE_KEY_FORMAT)

    raw = str(value).strip()
    if len(raw) < 10:
        return ''
    candidate = raw[:10]
    if not _DATE_PREFIX_RE.match(candidate):
        return ''
    if len(raw) > 10 and raw[10] not in _TIME_SEPARATORS:
        return ''
    try:
        datetime.strptime(candidate, DATE_KEY_FORMAT)
    except ValueError:
        return ''
    return candidate


def parse_date_key(key: str) -> date | None:
    normalized = normalize_date(key)
    if not normalized:
        return None
    return datetime.strptime(normalized, DATE_KEY_FORMAT).date()


def to_key(day: date) -> str:
    return day.strftime(DATE_KEY_FORMAT)


def local_today(tz_name: str | None = None) -> date:
    """Today's date on the caller's wall calendar.

    ``tz_name`` is an IANA zone; without one (or with an unknown one) the
    server's local date is used. UTC is never assumed.
    """
    if not tz_name:
        return date.today()
    try:
        return datetime.now(ZoneInfo(tz_name)).date()
    except (ZoneInfoNotFoundError, ValueError):
        return date.today()


def resolve_today(today: str | None, tz_name: str | None) -> date:
    if today:
        parsed = parse_date_key(today)
        if parsed is not None:
            return parsed
    return local_today(tz_name)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def first_of_month(year: int, month: int) -> date:
    return date(year, month, 1)


def last_of_month(year: int, month: int) -> date:
    return date(year, month, days_in_month(year, month))
