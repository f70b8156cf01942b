from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from esports_wiki.db.enums import SyncStatusEnum, TournamentStatusEnum
from esports_wiki.db.repos.core.match_repo import MatchRepository
from esports_wiki.db.repos.core.player_repo import PlayerRepository
from esports_wiki.db.repos.core.team_repo import TeamRepository
from esports_wiki.db.repos.core.tournament_repo import TournamentRepository
from esports_wiki.db.repos.ingestion.sync_log_repo import SyncLogRepository
from esports_wiki.ingestion.providers.base.errors import ProviderError
from esports_wiki.ingestion.providers.base.types import TournamentRecord
from esports_wiki.ingestion.providers.wiki.aggregator import RunGuard, TournamentAggregator
from esports_wiki.ingestion.providers.wiki.fetchers import EntityFetcher

logger = logging.getLogger(__name__)

SessionScope = Callable[[], AbstractContextManager[Session]]
Batch = Sequence[Any]

SYNC_KINDS = (
    "teams",
    "players",
    "matches",
    "tournaments",
    "detailed_matches",
    "tournament_results",
    "full",
)


@dataclass(frozen=True)
class SyncResult:
    kind: str
    status: SyncStatusEnum
    records_processed: int = 0
    per_game: dict[str, int] = field(default_factory=dict)
    error: str | None = None


class SyncService:
    """Fetch-and-store jobs, one per record kind.

    Each job is guarded by the aggregator's RunGuard under its own kind, walks
    the configured games one at a time and writes a sync log row per game. A
    failing job logs an error row and returns an error result.
    """

    def __init__(
        self,
        *,
        fetcher: EntityFetcher,
        aggregator: TournamentAggregator,
        session_scope: SessionScope,
        games: Sequence[str],
        politeness_delay_s: float = 5.0,
        fetch_limit: int = 50,
        results_limit: int = 3,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.fetcher = fetcher
        self.aggregator = aggregator
        self.session_scope = session_scope
        self.games = list(games)
        self.politeness_delay_s = politeness_delay_s
        self.fetch_limit = fetch_limit
        self.results_limit = results_limit
        self._sleep = sleep

    @property
    def guard(self) -> RunGuard:
        return self.aggregator.guard

    def status(self) -> dict[str, Any]:
        running = self.guard.snapshot()
        return {
            "is_running": {kind: running.get(kind, False) for kind in SYNC_KINDS},
            "games": list(self.games),
            "timestamp": datetime.now(tz=UTC).isoformat(),
        }

    # -----------------------------
    # Jobs
    # -----------------------------

    async def sync_teams(self, games: Sequence[str] | None = None) -> SyncResult:
        return await self._run(
            "teams",
            games or self.games,
            lambda game: self.fetcher.fetch_teams(game, self.fetch_limit),
            lambda session, batch, game: TeamRepository(session).upsert_records(batch),
        )

    async def sync_players(self, games: Sequence[str] | None = None) -> SyncResult:
        return await self._run(
            "players",
            games or self.games,
            lambda game: self.fetcher.fetch_players(game, self.fetch_limit),
            lambda session, batch, game: PlayerRepository(session).upsert_records(batch),
        )

    async def sync_matches(self, games: Sequence[str] | None = None) -> SyncResult:
        return await self._run(
            "matches",
            games or self.games,
            lambda game: self.fetcher.fetch_recent_matches(game, self.fetch_limit),
            lambda session, batch, game: MatchRepository(session).upsert_records(batch, game=game),
        )

    async def sync_tournaments(self, games: Sequence[str] | None = None) -> SyncResult:
        return await self._run(
            "tournaments",
            games or self.games,
            lambda game: self.fetcher.fetch_tournaments(game, self.fetch_limit),
            lambda session, batch, game: TournamentRepository(session).upsert_records(batch),
        )

    async def sync_detailed_matches(self, games: Sequence[str] | None = None) -> SyncResult:
        # match pages are intensive requests; one game per run
        return await self._run(
            "detailed_matches",
            (games or self.games)[:1],
            lambda game: self.fetcher.fetch_recent_matches_detailed(game, 5),
            lambda session, batch, game: MatchRepository(session).upsert_records(batch, game=game),
        )

    async def sync_tournament_results(self, games: Sequence[str] | None = None) -> SyncResult:
        return await self._run(
            "tournament_results",
            (games or self.games)[:1],
            self._concluded_tournaments,
            lambda session, batch, game: TournamentRepository(session).upsert_records(batch),
        )

    async def full_sync(self, games: Sequence[str] | None = None) -> SyncResult:
        with self.guard.exclusive("full") as acquired:
            if not acquired:
                logger.warning("Full sync already running, skipping")
                return SyncResult(kind="full", status=SyncStatusEnum.SKIPPED)

            logger.info("Starting full sync")
            phases = (self.sync_teams, self.sync_players, self.sync_matches, self.sync_tournaments)
            total = 0
            errors: list[str] = []
            for index, phase in enumerate(phases):
                if index:
                    await self._sleep(self.politeness_delay_s)
                result = await phase(games)
                total += result.records_processed
                if result.status is SyncStatusEnum.ERROR:
                    errors.append(f"{result.kind}: {result.error}")

            status = SyncStatusEnum.ERROR if errors else SyncStatusEnum.SUCCESS
            error = "; ".join(errors) or None
            self._log("full", None, status, total, error)
            logger.info("Full sync finished with %s: %d records", status.value, total)
            return SyncResult(kind="full", status=status, records_processed=total, error=error)

    # -----------------------------
    # Plumbing
    # -----------------------------

    async def _concluded_tournaments(self, game: str) -> list[TournamentRecord]:
        listed = await self.fetcher.fetch_tournaments(game, self.fetch_limit)
        concluded = [t for t in listed if t.status is TournamentStatusEnum.CONCLUDED]

        records: list[TournamentRecord] = []
        for index, tournament in enumerate(concluded[: self.results_limit]):
            if index:
                await self._sleep(self.politeness_delay_s)
            outcome = await self.aggregator.assemble(tournament.canonical_name, game)
            if outcome.record is not None:
                records.append(outcome.record)
        return records

    async def _run(
        self,
        kind: str,
        games: Sequence[str],
        fetch: Callable[[str], Awaitable[Batch]],
        store: Callable[[Session, Batch, str], int],
    ) -> SyncResult:
        with self.guard.exclusive(kind) as acquired:
            if not acquired:
                logger.warning("%s sync already running, skipping", kind)
                return SyncResult(kind=kind, status=SyncStatusEnum.SKIPPED)

            logger.info("Starting %s sync", kind)
            per_game: dict[str, int] = {}
            try:
                for index, game in enumerate(games):
                    if index:
                        await self._sleep(self.politeness_delay_s)
                    batch = await fetch(game)
                    if not batch:
                        logger.info("No %s returned for %s", kind, game)
                        continue
                    with self.session_scope() as session:
                        processed = store(session, batch, game)
                        SyncLogRepository(session).log(kind, game, SyncStatusEnum.SUCCESS, processed)
                    per_game[game] = processed
            except (ProviderError, SQLAlchemyError) as e:
                logger.error("%s sync failed: %s", kind, e)
                self._log(kind, None, SyncStatusEnum.ERROR, 0, str(e))
                return SyncResult(
                    kind=kind,
                    status=SyncStatusEnum.ERROR,
                    records_processed=sum(per_game.values()),
                    per_game=per_game,
                    error=str(e),
                )

            total = sum(per_game.values())
            logger.info("%s sync completed: %d records processed", kind, total)
            return SyncResult(
                kind=kind,
                status=SyncStatusEnum.SUCCESS,
                records_processed=total,
                per_game=per_game,
            )

    def _log(
        self,
        kind: str,
        game: str | None,
        status: SyncStatusEnum,
        count: int,
        error: str | None = None,
    ) -> None:
        try:
            with self.session_scope() as session:
                SyncLogRepository(session).log(kind, game, status, count, error)
        except SQLAlchemyError as e:
            logger.error("Could not write sync log for %s: %s", kind, e)
