from __future__ import annotations

from dataclasses import asdict, dataclass, field, is_dataclass
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any

from esports_wiki.db.enums import (
    EntityStatusEnum,
    FetchOutcomeEnum,
    MatchStatusEnum,
    RecordSourceEnum,
    TournamentStatusEnum,
)

Json = dict[str, Any]


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True)
class DateRange:
    start: date | None = None
    end: date | None = None


@dataclass(frozen=True)
class TeamRecord:
    external_id: str
    name: str
    game: str
    status: EntityStatusEnum = EntityStatusEnum.UNKNOWN
    roster: list[str] = field(default_factory=list)
    country: str | None = None
    source_url: str | None = None
    source: RecordSourceEnum = RecordSourceEnum.STRUCTURED


@dataclass(frozen=True)
class PlayerRecord:
    external_id: str
    name: str
    game: str
    status: EntityStatusEnum = EntityStatusEnum.UNKNOWN
    nationality: str | None = None
    role: str | None = None
    team: str | None = None
    source_url: str | None = None
    source: RecordSourceEnum = RecordSourceEnum.STRUCTURED


@dataclass(frozen=True)
class MatchRecord:
    team1: str
    team2: str
    score1: int | None = None
    score2: int | None = None
    date: datetime | None = None
    status: MatchStatusEnum = MatchStatusEnum.SCHEDULED
    winner: str | None = None

    # set when the match comes from a listing rather than a tournament page
    external_id: str | None = None
    title: str | None = None
    game: str | None = None
    tournament: str | None = None
    source_url: str | None = None
    source: RecordSourceEnum = RecordSourceEnum.MARKUP

    @property
    def teams(self) -> tuple[str, str]:
        return (self.team1, self.team2)

    @property
    def scores(self) -> tuple[int, int] | None:
        if self.score1 is None or self.score2 is None:
            return None
        return (self.score1, self.score2)


@dataclass(frozen=True)
class BracketEntry:
    round: int
    match_id: str
    score: str
    winner: str | None
    status: MatchStatusEnum = MatchStatusEnum.COMPLETED


@dataclass(frozen=True)
class TournamentRecord:
    canonical_name: str
    original_query_name: str
    game: str
    status: TournamentStatusEnum = TournamentStatusEnum.UNKNOWN
    date_range: DateRange = field(default_factory=DateRange)
    prize_pool: str | None = None
    location: str | None = None
    organizer: str | None = None
    sponsors: list[str] = field(default_factory=list)
    tier: str | None = None
    team_count: int | None = None
    participants: list[str] = field(default_factory=list)
    matches: list[MatchRecord] = field(default_factory=list)
    bracket_entries: list[BracketEntry] = field(default_factory=list)
    players: list[PlayerRecord] = field(default_factory=list)
    # raw score markers recovered from rendered HTML only
    score_markers: list[str] = field(default_factory=list)
    source_url: str | None = None
    source: RecordSourceEnum = RecordSourceEnum.MARKUP
    fetched_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class TournamentFetchOutcome:
    status: FetchOutcomeEnum
    query: str
    game: str
    record: TournamentRecord | None = None
    error: str | None = None

    @property
    def found(self) -> bool:
        return self.status is FetchOutcomeEnum.COMPLETE and self.record is not None


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_jsonable(v) for v in value]
    return value


def record_to_json(record: Any) -> Json:
    """Plain JSON-compatible dict for any record dataclass."""

    if not is_dataclass(record) or isinstance(record, type):
        raise TypeError(f"Expected a record dataclass instance, got {type(record)}")
    return _jsonable(asdict(record))
