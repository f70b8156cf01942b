"""Assembles one tournament record from its wiki pages.

Steps run in a fixed order for each call:

    RESOLVE -> EXTRACT_FIELDS -> COMPUTE_STATUS -> FETCH_TEAMS -> FETCH_MATCHES
    -> FETCH_RESULTS (concluded) | FETCH_BRACKETS (otherwise) -> FETCH_PLAYERS

An unresolvable name ends the run as not found. A transport failure while
resolving ends it as failed. Later sub-steps (HTML page, participants subpage,
team rosters) that fail are logged and skipped, and the rest of the record is
still returned.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from enum import Enum

from esports_wiki.db.enums import FetchOutcomeEnum, TournamentStatusEnum
from esports_wiki.ingestion.dates import compute_status
from esports_wiki.ingestion.providers.base.errors import ProviderError
from esports_wiki.ingestion.providers.base.types import (
    BracketEntry,
    MatchRecord,
    PlayerRecord,
    TournamentFetchOutcome,
    TournamentRecord,
)
from esports_wiki.ingestion.providers.wiki.brackets import (
    extract_bracket_entries,
    extract_matches,
)
from esports_wiki.ingestion.providers.wiki.fetchers import EntityFetcher, dedupe_players
from esports_wiki.ingestion.providers.wiki.markup import (
    TournamentFields,
    extract_html_fields,
    extract_participants,
    extract_tournament_fields,
    merge_html_fields,
    score_marker,
)
from esports_wiki.ingestion.providers.wiki.resolver import ResolvedPage, TournamentNameResolver

logger = logging.getLogger(__name__)


class AggregationStep(str, Enum):
    RESOLVE = "resolve"
    EXTRACT_FIELDS = "extract_fields"
    COMPUTE_STATUS = "compute_status"
    FETCH_TEAMS = "fetch_teams"
    FETCH_MATCHES = "fetch_matches"
    FETCH_RESULTS = "fetch_results"
    FETCH_BRACKETS = "fetch_brackets"
    FETCH_PLAYERS = "fetch_players"


class RunGuard:
    """One boolean "running" flag per operation kind.

    A second `exclusive(kind)` while the first is active yields False instead of
    waiting. Not reentrant.
    """

    def __init__(self) -> None:
        self._running: dict[str, bool] = {}

    def is_running(self, kind: str) -> bool:
        return self._running.get(kind, False)

    def snapshot(self) -> dict[str, bool]:
        return dict(self._running)

    @contextmanager
    def exclusive(self, kind: str) -> Iterator[bool]:
        if self._running.get(kind):
            yield False
            return
        self._running[kind] = True
        try:
            yield True
        finally:
            self._running[kind] = False


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class TournamentAggregator:
    def __init__(
        self,
        resolver: TournamentNameResolver,
        fetcher: EntityFetcher,
        *,
        politeness_delay_s: float = 5.0,
        fetch_html: bool = True,
        max_roster_teams: int = 16,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        now: Callable[[], datetime] = _utcnow,
        guard: RunGuard | None = None,
    ) -> None:
        self.resolver = resolver
        self.fetcher = fetcher
        self.client = resolver.client
        self.politeness_delay_s = politeness_delay_s
        self.fetch_html = fetch_html
        self.max_roster_teams = max_roster_teams
        self.guard = guard or RunGuard()
        self._sleep = sleep
        self._now = now

    async def fetch_tournament_by_name(
        self,
        name: str,
        game: str,
        *,
        kind: str = "tournament",
    ) -> TournamentFetchOutcome:
        with self.guard.exclusive(kind) as acquired:
            if not acquired:
                logger.warning("A %s run is already in progress; skipping %r", kind, name)
                return TournamentFetchOutcome(status=FetchOutcomeEnum.SKIPPED, query=name, game=game)
            try:
                return await self.assemble(name, game)
            except ProviderError as e:
                logger.error("Tournament fetch for %r on %s failed: %s", name, game, e)
                return TournamentFetchOutcome(
                    status=FetchOutcomeEnum.FAILED, query=name, game=game, error=str(e)
                )

    async def assemble(self, name: str, game: str) -> TournamentFetchOutcome:
        """Unguarded run of every step; callers holding their own guard use this directly."""

        self._step(AggregationStep.RESOLVE, name)
        page = await self.resolver.resolve_page(name, game)
        if page is None:
            logger.info("Tournament %r not found on %s", name, game)
            return TournamentFetchOutcome(status=FetchOutcomeEnum.NOT_FOUND, query=name, game=game)

        self._step(AggregationStep.EXTRACT_FIELDS, page.title)
        fields = extract_tournament_fields(page.wikitext)
        wikitext_matches = extract_matches(page.wikitext)
        if self.fetch_html:
            await self._merge_html(page, game, fields, wikitext_matches)

        self._step(AggregationStep.COMPUTE_STATUS, page.title)
        status = compute_status(fields.date_range, self._now())

        self._step(AggregationStep.FETCH_TEAMS, page.title)
        participants = fields.participants or await self._subpage_participants(page, game)

        self._step(AggregationStep.FETCH_MATCHES, page.title)
        concluded = status is TournamentStatusEnum.CONCLUDED
        matches = extract_matches(page.wikitext, completed_brackets_only=concluded)

        entries: list[BracketEntry]
        if concluded:
            self._step(AggregationStep.FETCH_RESULTS, page.title)
            entries = [e for e in extract_bracket_entries(page.wikitext) if e.winner]
        else:
            self._step(AggregationStep.FETCH_BRACKETS, page.title)
            entries = extract_bracket_entries(page.wikitext)

        self._step(AggregationStep.FETCH_PLAYERS, page.title)
        players = await self._roster_players(participants, game)

        record = TournamentRecord(
            canonical_name=page.title,
            original_query_name=name,
            game=game,
            status=status,
            date_range=fields.date_range,
            prize_pool=fields.prize_pool,
            location=fields.location,
            organizer=fields.organizer,
            sponsors=fields.sponsors,
            tier=fields.tier,
            team_count=fields.team_count,
            participants=participants,
            matches=matches,
            bracket_entries=entries,
            players=players,
            score_markers=fields.score_markers,
            source_url=self.client.page_url(game, page.title),
        )
        logger.info(
            "Assembled %s (%s): %d teams, %d matches, %d bracket entries, %d players",
            record.canonical_name,
            record.status.value,
            len(record.participants),
            len(record.matches),
            len(record.bracket_entries),
            len(record.players),
        )
        return TournamentFetchOutcome(status=FetchOutcomeEnum.COMPLETE, query=name, game=game, record=record)

    @staticmethod
    def _step(step: AggregationStep, subject: str) -> None:
        logger.info("[%s] %s", step.value, subject)

    async def _merge_html(
        self,
        page: ResolvedPage,
        game: str,
        fields: TournamentFields,
        wikitext_matches: list[MatchRecord],
    ) -> None:
        try:
            html = await self.client.page_html(game, page.title)
        except ProviderError as e:
            logger.warning("Skipping HTML extraction for %s: %s", page.title, e)
            return
        if html is None:
            return
        known = [score_marker(m.team1, m.score1, m.score2, m.team2) for m in wikitext_matches if m.scores is not None]
        merge_html_fields(fields, extract_html_fields(html.content), known_markers=known)

    async def _subpage_participants(self, page: ResolvedPage, game: str) -> list[str]:
        subpage = f"{page.title}/Participants"
        try:
            parsed = await self.client.page_wikitext(game, subpage)
        except ProviderError as e:
            logger.warning("Skipping participants subpage %s: %s", subpage, e)
            return []
        if parsed is None:
            return []
        return extract_participants(parsed.content)

    async def _roster_players(self, teams: list[str], game: str) -> list[PlayerRecord]:
        players: list[PlayerRecord] = []
        for index, team in enumerate(teams[: self.max_roster_teams]):
            if index:
                await self._sleep(self.politeness_delay_s)
            players.extend(await self.fetcher.fetch_team_roster(team, game))
        return dedupe_players(players)
