from __future__ import annotations

import re
from datetime import UTC, date, datetime
from typing import Any

from esports_wiki.db.enums import TournamentStatusEnum
from esports_wiki.ingestion.providers.base.types import DateRange

_iso_partial_re = re.compile(r"^(\d{4})-(\d{2}|\?\?)-(\d{2}|\?\?)")
_TEXT_FORMATS = ("%B %d, %Y", "%b %d, %Y", "%d %B %Y", "%d %b %Y", "%B %d %Y", "%Y/%m/%d")


def parse_wiki_date(value: Any) -> date | None:
    """
    Best-effort parser for dates as editors write them in infoboxes.

    Supports:
      - ISO "2024-01-10", optionally followed by a time
      - partially known "2024-03-??" / "2024-??-??" (unknown parts become 01)
      - "January 10, 2024", "10 January 2024", "Jan 10, 2024", "2024/01/10"
    Returns None for anything else.
    """
    if not isinstance(value, str):
        return None
    v = value.strip()
    if not v:
        return None

    m = _iso_partial_re.match(v)
    if m:
        year = int(m.group(1))
        month = 1 if m.group(2) == "??" else int(m.group(2))
        day = 1 if m.group(3) == "??" else int(m.group(3))
        try:
            return date(year, month, day)
        except ValueError:
            return None

    for fmt in _TEXT_FORMATS:
        try:
            return datetime.strptime(v, fmt).date()
        except ValueError:
            continue
    return None


def parse_wiki_datetime(value: Any) -> datetime | None:
    """Parse match timestamps ("2024-01-10 18:00:00", ISO "...Z", or a bare date) as UTC."""

    if not isinstance(value, str) or not value.strip():
        return None
    v = value.strip().replace("Z", "+00:00")
    try:
        dt = datetime.fromisoformat(v)
    except ValueError:
        d = parse_wiki_date(v)
        if d is None:
            return None
        dt = datetime(d.year, d.month, d.day)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def compute_status(date_range: DateRange, now: datetime) -> TournamentStatusEnum:
    """Classify a tournament against `now` from its (possibly partial) date range."""

    today = now.date()
    start, end = date_range.start, date_range.end

    if end is not None and end < today:
        return TournamentStatusEnum.CONCLUDED
    if start is not None and start <= today and (end is None or today <= end):
        return TournamentStatusEnum.ONGOING
    if start is not None and start > today:
        return TournamentStatusEnum.UPCOMING
    return TournamentStatusEnum.UNKNOWN
