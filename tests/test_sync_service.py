from __future__ import annotations

from sqlalchemy import func, select

from conftest import FakeGovernor, RecordingSleep, fixed_now
from fixtures_wikitext import TOURNAMENT_PAGE
from esports_wiki.db import DatabaseConfig, create_db_engine, create_session_factory
from esports_wiki.db.enums import EntityStatusEnum, SyncStatusEnum, TournamentStatusEnum
from esports_wiki.db.models.core.match import Match
from esports_wiki.db.models.core.team import Team
from esports_wiki.db.models.core.tournament import Tournament
from esports_wiki.db.models.ingestion.sync_log import SyncLog
from esports_wiki.ingestion.providers.wiki.aggregator import TournamentAggregator
from esports_wiki.ingestion.providers.wiki.client import WikiApiClient
from esports_wiki.ingestion.providers.wiki.fetchers import EntityFetcher
from esports_wiki.ingestion.providers.wiki.resolver import TournamentNameResolver
from esports_wiki.ingestion.sync import SyncService

TEAM_ROWS = [
    {"pagename": "Team Liquid", "name": "Team Liquid", "status": "active"},
    {"pagename": "OG", "name": "OG"},
]


def _service(governor: FakeGovernor, session_scope, *, games=("dota2", "counterstrike"), sleep=None):
    sleep = sleep or RecordingSleep()
    client = WikiApiClient(governor)
    fetcher = EntityFetcher(client, politeness_delay_s=0.0, sleep=sleep, now=fixed_now(2024, 2, 1))
    aggregator = TournamentAggregator(
        TournamentNameResolver(client),
        fetcher,
        politeness_delay_s=0.0,
        fetch_html=False,
        sleep=sleep,
        now=fixed_now(2024, 2, 1),
    )
    return SyncService(
        fetcher=fetcher,
        aggregator=aggregator,
        session_scope=session_scope,
        games=list(games),
        politeness_delay_s=1.0,
        sleep=sleep,
    )


def _count(session_scope, model) -> int:
    with session_scope() as session:
        return session.execute(select(func.count()).select_from(model)).scalar_one()


async def test_sync_teams_upserts_per_game_and_logs(session_scope) -> None:
    governor = FakeGovernor(cargo={"Teams": TEAM_ROWS})
    sleep = RecordingSleep()
    service = _service(governor, session_scope, sleep=sleep)

    result = await service.sync_teams()

    assert result.status is SyncStatusEnum.SUCCESS
    assert result.records_processed == 4
    assert result.per_game == {"dota2": 2, "counterstrike": 2}
    assert sleep.calls == [1.0]
    assert _count(session_scope, Team) == 4

    with session_scope() as session:
        logs = session.execute(select(SyncLog).order_by(SyncLog.id)).scalars().all()
        assert [(l.sync_type, l.game, l.status, l.records_processed) for l in logs] == [
            ("teams", "dota2", SyncStatusEnum.SUCCESS, 2),
            ("teams", "counterstrike", SyncStatusEnum.SUCCESS, 2),
        ]


async def test_repeated_sync_is_idempotent(session_scope) -> None:
    governor = FakeGovernor(cargo={"Teams": TEAM_ROWS})
    service = _service(governor, session_scope, games=["dota2"])

    await service.sync_teams()
    governor.cargo["Teams"] = [{"pagename": "OG", "name": "OG", "status": "inactive"}]
    await service.sync_teams()

    assert _count(session_scope, Team) == 2
    with session_scope() as session:
        og = session.execute(select(Team).where(Team.external_id == "OG")).scalar_one()
        assert og.status is EntityStatusEnum.INACTIVE


async def test_concurrent_sync_of_same_kind_is_skipped(session_scope) -> None:
    governor = FakeGovernor(cargo={"Teams": TEAM_ROWS})
    service = _service(governor, session_scope)

    with service.guard.exclusive("teams"):
        result = await service.sync_teams()

    assert result.status is SyncStatusEnum.SKIPPED
    assert governor.calls == []
    assert service.status()["is_running"]["teams"] is False


async def test_storage_failure_is_reported_not_raised() -> None:
    # tables were never created, so every write fails
    engine = create_db_engine(DatabaseConfig(database_url="sqlite+pysqlite:///:memory:"))
    SessionLocal = create_session_factory(engine)

    from contextlib import contextmanager

    @contextmanager
    def scope():
        session = SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    governor = FakeGovernor(cargo={"Teams": TEAM_ROWS})
    service = _service(governor, scope, games=["dota2"])

    result = await service.sync_teams()

    assert result.status is SyncStatusEnum.ERROR
    assert result.error
    assert not service.guard.is_running("teams")


async def test_sync_matches_synthesizes_ids_for_listings(session_scope) -> None:
    governor = FakeGovernor(
        cargo={
            "MatchSchedule": [
                {"team1": "OG", "team2": "Tundra", "team1score": "2", "team2score": "1", "tournament": "TI"},
                {"team1": "OG", "team2": "Spirit", "tournament": "TI"},
            ]
        }
    )
    service = _service(governor, session_scope, games=["dota2"])

    await service.sync_matches()
    await service.sync_matches()

    assert _count(session_scope, Match) == 2
    with session_scope() as session:
        ids = session.execute(select(Match.external_id)).scalars().all()
        assert all(len(i) == 40 for i in ids)


async def test_tournament_results_assemble_concluded_events(session_scope) -> None:
    governor = FakeGovernor(
        cargo={
            "Tournaments": [
                {"pagename": "Test Major 2024", "startdate": "2024-01-01", "enddate": "2024-01-10"},
                {"pagename": "Future Cup", "startdate": "2024-06-01", "enddate": "2024-06-10"},
            ]
        },
        pages={"Test Major 2024": TOURNAMENT_PAGE},
    )
    service = _service(governor, session_scope)

    result = await service.sync_tournament_results()

    assert result.status is SyncStatusEnum.SUCCESS
    assert result.per_game == {"dota2": 1}
    with session_scope() as session:
        row = session.execute(select(Tournament)).scalar_one()
        assert row.external_id == "Test Major 2024"
        assert row.status is TournamentStatusEnum.CONCLUDED
        assert row.participants == ["Team Alpha", "Team Beta", "Team Gamma", "Team Delta"]
        assert len(row.payload_json["matches"]) == 4


async def test_full_sync_runs_phases_in_order(session_scope) -> None:
    governor = FakeGovernor(cargo={"Teams": TEAM_ROWS})
    sleep = RecordingSleep()
    service = _service(governor, session_scope, games=["dota2"], sleep=sleep)

    result = await service.full_sync()

    assert result.status is SyncStatusEnum.SUCCESS
    assert result.records_processed == 2
    assert sleep.calls == [1.0, 1.0, 1.0]
    tables = [p["tables"] for _, p in governor.calls if p["action"] == "cargoquery"]
    assert tables == ["Teams", "Players", "MatchSchedule", "Tournaments"]
    with session_scope() as session:
        last = session.execute(select(SyncLog).order_by(SyncLog.id.desc())).scalars().first()
        assert last is not None
        assert (last.sync_type, last.game, last.status) == ("full", None, SyncStatusEnum.SUCCESS)
