from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import typer

from esports_wiki.cli.common import build_pipeline
from esports_wiki.ingestion.sync import SyncResult, SyncService

app = typer.Typer(help="Fetch wiki data and store it in the local DB.")

GameOption = typer.Option(None, "--game", help="Limit to one game (default: all configured).")


def _run(job: Callable[[SyncService], Callable[..., Awaitable[SyncResult]]], game: str | None) -> None:
    async def go() -> SyncResult:
        async with build_pipeline() as pipeline:
            return await job(pipeline.sync)([game] if game else None)

    result = asyncio.run(go())
    per_game = ", ".join(f"{g}={n}" for g, n in result.per_game.items()) or "-"
    typer.echo(
        " ".join(
            [
                f"Sync {result.kind}:",
                f"status={result.status.value}",
                f"records={result.records_processed}",
                f"per_game={per_game}",
            ]
            + ([f"error={result.error}"] if result.error else [])
        )
    )


@app.command("teams")
def sync_teams_cmd(game: str | None = GameOption) -> None:
    """Fetch teams and upsert them."""
    _run(lambda s: s.sync_teams, game)


@app.command("players")
def sync_players_cmd(game: str | None = GameOption) -> None:
    """Fetch players and upsert them."""
    _run(lambda s: s.sync_players, game)


@app.command("matches")
def sync_matches_cmd(game: str | None = GameOption) -> None:
    """Fetch recent matches and upsert them."""
    _run(lambda s: s.sync_matches, game)


@app.command("tournaments")
def sync_tournaments_cmd(game: str | None = GameOption) -> None:
    """Fetch tournament listings and upsert them."""
    _run(lambda s: s.sync_tournaments, game)


@app.command("detailed-matches")
def sync_detailed_matches_cmd(game: str | None = GameOption) -> None:
    """Parse the most recent match pages and upsert the results."""
    _run(lambda s: s.sync_detailed_matches, game)


@app.command("tournament-results")
def sync_tournament_results_cmd(game: str | None = GameOption) -> None:
    """Assemble full records for recently concluded tournaments."""
    _run(lambda s: s.sync_tournament_results, game)


@app.command("full")
def full_sync_cmd(game: str | None = GameOption) -> None:
    """Teams, players, matches and tournaments, one after another."""
    _run(lambda s: s.full_sync, game)
