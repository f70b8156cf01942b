from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any, TypeVar

from esports_wiki.core.text import normalize_name
from esports_wiki.db.enums import EntityStatusEnum, MatchStatusEnum, RecordSourceEnum
from esports_wiki.ingestion.dates import compute_status, parse_wiki_date, parse_wiki_datetime
from esports_wiki.ingestion.providers.base.errors import ProviderError, RateLimitExceeded
from esports_wiki.ingestion.providers.base.types import (
    DateRange,
    MatchRecord,
    PlayerRecord,
    TeamRecord,
    TournamentRecord,
)
from esports_wiki.ingestion.providers.wiki.brackets import extract_match_page
from esports_wiki.ingestion.providers.wiki.client import ApiRow, ParsedPage, WikiApiClient
from esports_wiki.ingestion.providers.wiki.markup import (
    TeamPageFields,
    classify_status,
    extract_team_fields,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MATCH_TITLE_HINTS = ("match", "tournament", "championship")

TEAM_FIELDS = ("_pageName=pagename", "name", "status", "location", "region")
PLAYER_FIELDS = ("_pageName=pagename", "id", "name", "nationality", "status", "role", "team")
TOURNAMENT_FIELDS = (
    "_pageName=pagename",
    "name",
    "startdate",
    "enddate",
    "prizepool",
    "liquipediatier",
    "location",
    "organizer",
)
MATCH_FIELDS = (
    "_pageName=pagename",
    "matchid",
    "team1",
    "team2",
    "team1score",
    "team2score",
    "winner",
    "date",
    "tournament",
)


def _row_key(key: str) -> str:
    return key.replace("_", "").replace(" ", "").lower()


def row_value(row: ApiRow, *keys: str) -> str | None:
    """First non-blank value among `keys`, ignoring case, spaces and underscores in row keys."""

    normalized = {_row_key(k): v for k, v in row.items()}
    for key in keys:
        value = normalized.get(_row_key(key))
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def _int_or_none(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class EntityFetcher:
    """Teams, players, tournaments and recent matches for one game.

    Each list fetch tries a structured bulk query first. When that produces
    nothing (empty or failed), it falls back to enumerating a category, capped
    at `fallback_limit` and tagged as fallback. Remote failures never escape:
    they are logged and turned into an empty list.
    """

    def __init__(
        self,
        client: WikiApiClient,
        *,
        fallback_limit: int = 20,
        politeness_delay_s: float = 5.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.client = client
        self.fallback_limit = fallback_limit
        self.politeness_delay_s = politeness_delay_s
        self._sleep = sleep
        self._now = now

    # -----------------------------
    # Stage plumbing
    # -----------------------------

    async def _safely(self, what: str, game: str, call: Callable[[], Awaitable[list[T]]]) -> list[T]:
        try:
            return await call()
        except RateLimitExceeded as e:
            logger.warning(
                "Rate limit exhausted while fetching %s for %s (%s class, %d attempts)",
                what,
                game,
                e.rate_class,
                e.attempts,
            )
        except ProviderError as e:
            logger.error("Failed to fetch %s for %s: %s", what, game, e)
        return []

    async def _two_stage(
        self,
        what: str,
        game: str,
        structured: Callable[[], Awaitable[list[T]]],
        fallback: Callable[[], Awaitable[list[T]]],
    ) -> list[T]:
        records = await self._safely(what, game, structured)
        if records:
            logger.info("Fetched %d %s for %s from structured query", len(records), what, game)
            return records

        logger.info("Structured query returned no %s for %s; using category fallback", what, game)
        records = await self._safely(what, game, fallback)
        logger.info("Fetched %d %s for %s from fallback", len(records), what, game)
        return records

    def _cap(self, limit: int) -> int:
        return max(0, min(limit, self.fallback_limit))

    async def _category_titles(self, game: str, category: str, limit: int) -> list[ApiRow]:
        cap = self._cap(limit)
        if cap == 0:
            return []
        members = await self.client.category_members(game, category, limit=cap)
        return members[:cap]

    # -----------------------------
    # Teams
    # -----------------------------

    async def fetch_teams(self, game: str, limit: int = 50) -> list[TeamRecord]:
        async def structured() -> list[TeamRecord]:
            rows = await self.client.structured_query(
                game, table="Teams", fields=TEAM_FIELDS, order_by="_pageName", limit=limit
            )
            return [t for t in (self._team_from_row(game, r) for r in rows) if t is not None]

        async def fallback() -> list[TeamRecord]:
            members = await self._category_titles(game, "Teams", limit)
            return [self._team_from_member(game, m) for m in members]

        teams = await self._two_stage("teams", game, structured, fallback)
        return [self._classify_team(t) for t in teams]

    def _team_from_row(self, game: str, row: ApiRow) -> TeamRecord | None:
        page = row_value(row, "pagename", "name")
        if page is None:
            return None
        return TeamRecord(
            external_id=page,
            name=row_value(row, "name") or page,
            game=game,
            status=classify_status(row_value(row, "status")),
            country=row_value(row, "location", "region"),
            source_url=self.client.page_url(game, page),
            source=RecordSourceEnum.STRUCTURED,
        )

    def _team_from_member(self, game: str, member: ApiRow) -> TeamRecord:
        title = str(member["title"])
        return TeamRecord(
            external_id=str(member.get("pageid") or title),
            name=title,
            game=game,
            source_url=self.client.page_url(game, title),
            source=RecordSourceEnum.FALLBACK,
        )

    @staticmethod
    def _classify_team(team: TeamRecord) -> TeamRecord:
        if team.status is not EntityStatusEnum.UNKNOWN:
            return team
        status = classify_status(team.name)
        if status is EntityStatusEnum.UNKNOWN and team.roster:
            status = EntityStatusEnum.ACTIVE
        return replace(team, status=status)

    # -----------------------------
    # Players
    # -----------------------------

    async def fetch_players(self, game: str, limit: int = 50) -> list[PlayerRecord]:
        async def structured() -> list[PlayerRecord]:
            rows = await self.client.structured_query(
                game, table="Players", fields=PLAYER_FIELDS, order_by="_pageName", limit=limit
            )
            return [p for p in (self._player_from_row(game, r) for r in rows) if p is not None]

        async def fallback() -> list[PlayerRecord]:
            members = await self._category_titles(game, "Players", limit)
            return [self._player_from_member(game, m) for m in members]

        players = await self._two_stage("players", game, structured, fallback)
        return [self._classify_player(p) for p in players]

    def _player_from_row(self, game: str, row: ApiRow) -> PlayerRecord | None:
        page = row_value(row, "pagename", "id")
        if page is None:
            return None
        return PlayerRecord(
            external_id=page,
            name=row_value(row, "id", "name") or page,
            game=game,
            status=classify_status(row_value(row, "status")),
            nationality=row_value(row, "nationality"),
            role=row_value(row, "role"),
            team=row_value(row, "team"),
            source_url=self.client.page_url(game, page),
            source=RecordSourceEnum.STRUCTURED,
        )

    def _player_from_member(self, game: str, member: ApiRow) -> PlayerRecord:
        title = str(member["title"])
        return PlayerRecord(
            external_id=str(member.get("pageid") or title),
            name=title,
            game=game,
            source_url=self.client.page_url(game, title),
            source=RecordSourceEnum.FALLBACK,
        )

    @staticmethod
    def _classify_player(player: PlayerRecord) -> PlayerRecord:
        if player.status is not EntityStatusEnum.UNKNOWN:
            return player
        status = classify_status(player.name)
        if status is EntityStatusEnum.UNKNOWN and player.team:
            status = EntityStatusEnum.ACTIVE
        return replace(player, status=status)

    # -----------------------------
    # Tournaments
    # -----------------------------

    async def fetch_tournaments(self, game: str, limit: int = 50) -> list[TournamentRecord]:
        async def structured() -> list[TournamentRecord]:
            rows = await self.client.structured_query(
                game,
                table="Tournaments",
                fields=TOURNAMENT_FIELDS,
                order_by="enddate DESC",
                limit=limit,
            )
            return [t for t in (self._tournament_from_row(game, r) for r in rows) if t is not None]

        async def fallback() -> list[TournamentRecord]:
            members = await self._category_titles(game, "Tournaments", limit)
            return [self._tournament_from_member(game, m) for m in members]

        tournaments = await self._two_stage("tournaments", game, structured, fallback)
        now = self._now()
        return [replace(t, status=compute_status(t.date_range, now)) for t in tournaments]

    def _tournament_from_row(self, game: str, row: ApiRow) -> TournamentRecord | None:
        page = row_value(row, "pagename", "name")
        if page is None:
            return None
        tier = row_value(row, "liquipediatier")
        return TournamentRecord(
            canonical_name=page,
            original_query_name=row_value(row, "name") or page,
            game=game,
            date_range=DateRange(
                start=parse_wiki_date(row_value(row, "startdate")),
                end=parse_wiki_date(row_value(row, "enddate")),
            ),
            prize_pool=row_value(row, "prizepool"),
            location=row_value(row, "location"),
            organizer=row_value(row, "organizer"),
            tier=tier,
            source_url=self.client.page_url(game, page),
            source=RecordSourceEnum.STRUCTURED,
        )

    def _tournament_from_member(self, game: str, member: ApiRow) -> TournamentRecord:
        title = str(member["title"])
        return TournamentRecord(
            canonical_name=title,
            original_query_name=title,
            game=game,
            source_url=self.client.page_url(game, title),
            source=RecordSourceEnum.FALLBACK,
        )

    # -----------------------------
    # Matches
    # -----------------------------

    async def fetch_recent_matches(self, game: str, limit: int = 50) -> list[MatchRecord]:
        async def structured() -> list[MatchRecord]:
            rows = await self.client.structured_query(
                game,
                table="MatchSchedule",
                fields=MATCH_FIELDS,
                order_by="date DESC",
                limit=limit,
            )
            return [m for m in (self._match_from_row(game, r) for r in rows) if m is not None]

        async def fallback() -> list[MatchRecord]:
            changes = await self.client.recent_changes(game, limit=max(limit, self.fallback_limit))
            pages = [c for c in changes if is_match_title(str(c["title"]))]
            return [self._match_from_change(game, c) for c in pages[: self._cap(limit)]]

        matches = await self._two_stage("matches", game, structured, fallback)
        return [self._classify_match(m) for m in matches]

    def _match_from_row(self, game: str, row: ApiRow) -> MatchRecord | None:
        team1, team2 = row_value(row, "team1"), row_value(row, "team2")
        if not team1 and not team2:
            return None
        team1, team2 = team1 or "TBD", team2 or "TBD"
        page = row_value(row, "pagename")
        winner = row_value(row, "winner")
        if winner == "1":
            winner = team1
        elif winner == "2":
            winner = team2
        return MatchRecord(
            team1=team1,
            team2=team2,
            score1=_int_or_none(row_value(row, "team1score")),
            score2=_int_or_none(row_value(row, "team2score")),
            date=parse_wiki_datetime(row_value(row, "date")),
            winner=winner,
            external_id=row_value(row, "matchid"),
            title=page,
            game=game,
            tournament=row_value(row, "tournament"),
            source_url=self.client.page_url(game, page) if page else None,
            source=RecordSourceEnum.STRUCTURED,
        )

    def _match_from_change(self, game: str, change: ApiRow) -> MatchRecord:
        title = str(change["title"])
        return MatchRecord(
            team1="TBD",
            team2="TBD",
            date=parse_wiki_datetime(change.get("timestamp")),
            external_id=str(change.get("pageid") or title),
            title=title,
            game=game,
            source_url=self.client.page_url(game, title),
            source=RecordSourceEnum.FALLBACK,
        )

    @staticmethod
    def _classify_match(match: MatchRecord) -> MatchRecord:
        scores = match.scores
        status = MatchStatusEnum.COMPLETED if scores is not None else MatchStatusEnum.SCHEDULED
        winner = match.winner
        if winner is None and scores is not None and scores[0] != scores[1]:
            winner = match.team1 if scores[0] > scores[1] else match.team2
        return replace(match, status=status, winner=winner)

    # -----------------------------
    # Detail pages
    # -----------------------------

    async def fetch_match_details(self, page: str, game: str) -> MatchRecord | None:
        """Teams, score and date parsed from one match page, or None."""

        try:
            parsed = await self.client.page_wikitext(game, page)
        except ProviderError as e:
            logger.error("Failed to fetch match details for %s: %s", page, e)
            return None
        if parsed is None:
            return None

        match = extract_match_page(parsed.content)
        if match is None:
            logger.info("No match data found on %s", parsed.title)
            return None
        return replace(
            match,
            external_id=str(parsed.page_id) if parsed.page_id is not None else parsed.title,
            title=parsed.title,
            game=game,
            source_url=self.client.page_url(game, parsed.title),
        )

    async def fetch_recent_matches_detailed(self, game: str, limit: int = 5) -> list[MatchRecord]:
        listed = await self.fetch_recent_matches(game, limit)
        pages = [m.title for m in listed if m.title][:limit]

        detailed: list[MatchRecord] = []
        for index, page in enumerate(pages):
            if index:
                await self._sleep(self.politeness_delay_s)
            match = await self.fetch_match_details(page, game)
            if match is not None:
                detailed.append(match)
        logger.info("Fetched details for %d of %d recent match pages on %s", len(detailed), len(pages), game)
        return detailed

    async def _team_page(self, team: str, game: str) -> tuple[ParsedPage, TeamPageFields] | None:
        try:
            parsed = await self.client.page_wikitext(game, team)
        except RateLimitExceeded as e:
            logger.warning("Rate limit exhausted fetching team page %s (%d attempts)", team, e.attempts)
            return None
        except ProviderError as e:
            logger.error("Failed to fetch team page %s: %s", team, e)
            return None
        if parsed is None:
            logger.debug("No team page for %s on %s", team, game)
            return None
        return parsed, extract_team_fields(parsed.content)

    async def fetch_team_details(self, team: str, game: str) -> TeamRecord | None:
        """Team record from its own page: infobox location and status plus current roster."""

        page = await self._team_page(team, game)
        if page is None:
            return None
        parsed, fields = page
        record = TeamRecord(
            external_id=parsed.title,
            name=parsed.title,
            game=game,
            status=fields.status,
            roster=[e.name for e in fields.roster if e.status is EntityStatusEnum.ACTIVE],
            country=fields.location or fields.region,
            source_url=self.client.page_url(game, parsed.title),
            source=RecordSourceEnum.MARKUP,
        )
        return self._classify_team(record)

    async def fetch_team_roster(self, team: str, game: str) -> list[PlayerRecord]:
        """Players listed on a team's page; empty when the page is missing or unreadable."""

        page = await self._team_page(team, game)
        if page is None:
            return []
        parsed, fields = page
        return [
            PlayerRecord(
                external_id=entry.name,
                name=entry.name,
                game=game,
                status=entry.status,
                nationality=entry.nationality,
                role=entry.role,
                team=parsed.title,
                source_url=self.client.page_url(game, entry.name),
                source=RecordSourceEnum.MARKUP,
            )
            for entry in fields.roster
        ]

    async def fetch_all(self, games: Iterable[str], *, limit: int = 50) -> dict[str, dict[str, list[Any]]]:
        """Teams, players and recent matches for every game, one game at a time."""

        results: dict[str, dict[str, list[Any]]] = {}
        for index, game in enumerate(games):
            if index:
                await self._sleep(self.politeness_delay_s)
            results[game] = {
                "teams": await self.fetch_teams(game, limit),
                "players": await self.fetch_players(game, limit),
                "matches": await self.fetch_recent_matches(game, limit),
            }
            logger.info(
                "Completed data fetch for %s: %d teams, %d players, %d matches",
                game,
                len(results[game]["teams"]),
                len(results[game]["players"]),
                len(results[game]["matches"]),
            )
        return results


def is_match_title(title: str) -> bool:
    lowered = title.lower()
    return any(hint in lowered for hint in _MATCH_TITLE_HINTS)


def dedupe_players(players: Sequence[PlayerRecord]) -> list[PlayerRecord]:
    """First record per normalized player name."""

    seen: set[str] = set()
    out: list[PlayerRecord] = []
    for p in players:
        key = normalize_name(p.name)
        if key in seen:
            continue
        seen.add(key)
        out.append(p)
    return out
