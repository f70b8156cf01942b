from __future__ import annotations

from datetime import date

from typer.testing import CliRunner

from esports_wiki.cli import db as db_cli
from esports_wiki.cli.app import app
from esports_wiki.db.enums import TournamentStatusEnum
from esports_wiki.db.repos.core.player_repo import PlayerRepository
from esports_wiki.db.repos.core.tournament_repo import TournamentRepository
from esports_wiki.ingestion.providers.base.types import DateRange, PlayerRecord, TournamentRecord


def test_cli_help_smoke() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for group in ("db", "sync", "fetch"):
        assert group in result.stdout


def test_sync_help_lists_jobs() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["sync", "--help"])
    assert result.exit_code == 0
    for command in ("teams", "players", "matches", "tournament-results", "full"):
        assert command in result.stdout


def test_db_listings_filter_stored_rows(monkeypatch, session_scope) -> None:
    with session_scope() as session:
        PlayerRepository(session).upsert_records(
            [
                PlayerRecord(external_id="alpha1", name="alpha1", game="dota2", team="Team Alpha"),
                PlayerRecord(external_id="drifter", name="drifter", game="dota2"),
            ]
        )
        TournamentRepository(session).upsert_records(
            [
                TournamentRecord(
                    canonical_name="Winter Cup",
                    original_query_name="Winter Cup",
                    game="dota2",
                    status=TournamentStatusEnum.CONCLUDED,
                    date_range=DateRange(start=date(2024, 1, 1), end=date(2024, 1, 10)),
                ),
                TournamentRecord(
                    canonical_name="Spring Cup",
                    original_query_name="Spring Cup",
                    game="dota2",
                    status=TournamentStatusEnum.UPCOMING,
                ),
            ]
        )
    monkeypatch.setattr(db_cli, "session_scope", session_scope)
    runner = CliRunner()

    result = runner.invoke(app, ["db", "players", "--game", "dota2", "--team", "Team Alpha"])
    assert result.exit_code == 0
    assert "alpha1 team=Team Alpha" in result.stdout
    assert "drifter" not in result.stdout

    result = runner.invoke(app, ["db", "tournaments", "--game", "dota2", "--status", "concluded"])
    assert result.exit_code == 0
    assert "Winter Cup status=concluded" in result.stdout
    assert "Spring Cup" not in result.stdout

    result = runner.invoke(app, ["db", "teams", "--game", "dota2"])
    assert result.exit_code == 0
    assert "No teams stored." in result.stdout
