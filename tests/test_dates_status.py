from __future__ import annotations

from datetime import UTC, date, datetime

from esports_wiki.db.enums import TournamentStatusEnum
from esports_wiki.ingestion.dates import compute_status, parse_wiki_date, parse_wiki_datetime
from esports_wiki.ingestion.providers.base.types import DateRange

RANGE = DateRange(start=date(2024, 1, 1), end=date(2024, 1, 10))


def _at(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, 12, 0, tzinfo=UTC)


def test_status_within_range_is_ongoing() -> None:
    assert compute_status(RANGE, _at(2024, 1, 5)) is TournamentStatusEnum.ONGOING


def test_status_after_end_is_concluded() -> None:
    assert compute_status(RANGE, _at(2024, 2, 1)) is TournamentStatusEnum.CONCLUDED


def test_status_before_start_is_upcoming() -> None:
    assert compute_status(RANGE, _at(2023, 12, 1)) is TournamentStatusEnum.UPCOMING


def test_status_without_dates_is_unknown() -> None:
    assert compute_status(DateRange(), _at(2024, 1, 5)) is TournamentStatusEnum.UNKNOWN


def test_status_with_open_end() -> None:
    open_ended = DateRange(start=date(2024, 1, 1))
    assert compute_status(open_ended, _at(2024, 6, 1)) is TournamentStatusEnum.ONGOING
    assert compute_status(open_ended, _at(2023, 6, 1)) is TournamentStatusEnum.UPCOMING


def test_status_boundaries_are_inclusive() -> None:
    assert compute_status(RANGE, _at(2024, 1, 1)) is TournamentStatusEnum.ONGOING
    assert compute_status(RANGE, _at(2024, 1, 10)) is TournamentStatusEnum.ONGOING


def test_parse_wiki_date_formats() -> None:
    assert parse_wiki_date("2024-01-10") == date(2024, 1, 10)
    assert parse_wiki_date("2024-03-??") == date(2024, 3, 1)
    assert parse_wiki_date("January 10, 2024") == date(2024, 1, 10)
    assert parse_wiki_date("10 Jan 2024") == date(2024, 1, 10)
    assert parse_wiki_date("TBA") is None
    assert parse_wiki_date(None) is None


def test_parse_wiki_datetime_is_utc() -> None:
    assert parse_wiki_datetime("2024-01-05T12:00:00Z") == datetime(2024, 1, 5, 12, tzinfo=UTC)
    assert parse_wiki_datetime("March 3, 2024") == datetime(2024, 3, 3, tzinfo=UTC)
    assert parse_wiki_datetime("") is None
