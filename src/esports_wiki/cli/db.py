from __future__ import annotations

import typer

from esports_wiki.cli.common import get_engine, session_scope
from esports_wiki.db import Base
from esports_wiki.db import models  # noqa: F401  registers tables
from esports_wiki.db.enums import TournamentStatusEnum
from esports_wiki.db.repos.core.match_repo import MatchRepository
from esports_wiki.db.repos.core.player_repo import PlayerRepository
from esports_wiki.db.repos.core.team_repo import TeamRepository
from esports_wiki.db.repos.core.tournament_repo import TournamentRepository
from esports_wiki.db.repos.ingestion.sync_log_repo import SyncLogRepository

app = typer.Typer(help="Local database helpers.")

GameOption = typer.Option(..., "--game", help="Wiki game slug (e.g. dota2).")
LimitOption = typer.Option(20, "--limit", help="Maximum number of rows.")


@app.command("init")
def init_cmd() -> None:
    """Create all tables (use alembic for managed databases)."""

    Base.metadata.create_all(get_engine())
    typer.echo(f"Created tables: {', '.join(sorted(Base.metadata.tables))}")


@app.command("history")
def history_cmd(
    limit: int = typer.Option(20, "--limit", help="Number of sync log rows to show."),
) -> None:
    """Show the most recent sync log entries."""

    with session_scope() as session:
        rows = SyncLogRepository(session).history(limit)
        lines = [
            " ".join(
                [
                    f"{row.started_at:%Y-%m-%d %H:%M:%S}",
                    f"kind={row.sync_type}",
                    f"game={row.game or '-'}",
                    f"status={row.status.value}",
                    f"records={row.records_processed}",
                ]
                + ([f"error={row.error_message}"] if row.error_message else [])
            )
            for row in rows
        ]

    _echo_lines(lines, "No sync runs recorded.")


@app.command("teams")
def teams_cmd(game: str = GameOption, limit: int = LimitOption) -> None:
    """List stored teams, most recently updated first."""

    with session_scope() as session:
        lines = [
            f"{t.name} status={t.status.value} roster={len(t.roster)} source={t.source.value}"
            for t in TeamRepository(session).latest(game, limit)
        ]
    _echo_lines(lines, "No teams stored.")


@app.command("players")
def players_cmd(
    game: str = GameOption,
    team: str | None = typer.Option(None, "--team", help="Only players listed for this team."),
    limit: int = LimitOption,
) -> None:
    """List stored players, optionally for one team."""

    with session_scope() as session:
        repo = PlayerRepository(session)
        rows = repo.for_team(game, team) if team else repo.latest(game, limit)
        lines = [f"{p.name} team={p.team_name or '-'} status={p.status.value}" for p in rows]
    _echo_lines(lines, "No players stored.")


@app.command("matches")
def matches_cmd(game: str = GameOption, limit: int = LimitOption) -> None:
    """List stored matches, most recently updated first."""

    with session_scope() as session:
        lines = [
            f"{m.team1} {m.score1 if m.score1 is not None else '-'}-"
            f"{m.score2 if m.score2 is not None else '-'} {m.team2} status={m.status.value}"
            for m in MatchRepository(session).latest(game, limit)
        ]
    _echo_lines(lines, "No matches stored.")


@app.command("tournaments")
def tournaments_cmd(
    game: str = GameOption,
    status: TournamentStatusEnum | None = typer.Option(None, "--status", help="Only this status."),
    limit: int = LimitOption,
) -> None:
    """List stored tournaments, optionally filtered by status."""

    with session_scope() as session:
        repo = TournamentRepository(session)
        rows = repo.with_status(game, status, limit) if status else repo.latest(game, limit)
        lines = [
            f"{t.external_id} status={t.status.value} teams={len(t.participants)}"
            f" dates={t.start_date or '?'}..{t.end_date or '?'}"
            for t in rows
        ]
    _echo_lines(lines, "No tournaments stored.")


def _echo_lines(lines: list[str], empty: str) -> None:
    if not lines:
        typer.echo(empty)
        return
    for line in lines:
        typer.echo(line)
