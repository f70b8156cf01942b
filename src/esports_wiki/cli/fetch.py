from __future__ import annotations

import asyncio

import typer

from esports_wiki.cli.common import build_pipeline, echo_json
from esports_wiki.db.enums import FetchOutcomeEnum
from esports_wiki.ingestion.providers.base.types import (
    TeamRecord,
    TournamentFetchOutcome,
    record_to_json,
)

app = typer.Typer(help="Fetch from the wiki and print, without touching the DB.")


@app.command("tournament")
def fetch_tournament_cmd(
    name: str = typer.Argument(..., help="Tournament name as you would type it."),
    game: str = typer.Option(..., "--game", help="Wiki game slug (e.g. dota2)."),
) -> None:
    """Resolve a tournament name and print the assembled record as JSON."""

    async def go() -> TournamentFetchOutcome:
        async with build_pipeline() as pipeline:
            return await pipeline.aggregator.fetch_tournament_by_name(name, game)

    outcome = asyncio.run(go())
    if outcome.record is not None:
        echo_json(record_to_json(outcome.record))
        return

    typer.echo(f"{outcome.status.value}: {outcome.query} ({outcome.game})", err=True)
    if outcome.error:
        typer.echo(outcome.error, err=True)
    raise typer.Exit(code=1 if outcome.status is FetchOutcomeEnum.FAILED else 2)


@app.command("teams")
def fetch_teams_cmd(
    game: str = typer.Option(..., "--game", help="Wiki game slug (e.g. dota2)."),
    limit: int = typer.Option(20, "--limit", help="Maximum number of teams."),
) -> None:
    """Print teams for a game as JSON."""

    async def go() -> list:
        async with build_pipeline() as pipeline:
            return await pipeline.fetcher.fetch_teams(game, limit)

    echo_json([record_to_json(t) for t in asyncio.run(go())])


@app.command("players")
def fetch_players_cmd(
    game: str = typer.Option(..., "--game", help="Wiki game slug (e.g. dota2)."),
    limit: int = typer.Option(20, "--limit", help="Maximum number of players."),
) -> None:
    """Print players for a game as JSON."""

    async def go() -> list:
        async with build_pipeline() as pipeline:
            return await pipeline.fetcher.fetch_players(game, limit)

    echo_json([record_to_json(p) for p in asyncio.run(go())])


@app.command("team")
def fetch_team_cmd(
    name: str = typer.Argument(..., help="Team page title."),
    game: str = typer.Option(..., "--game", help="Wiki game slug (e.g. dota2)."),
) -> None:
    """Print one team, with its current roster, read from the team page."""

    async def go() -> TeamRecord | None:
        async with build_pipeline() as pipeline:
            return await pipeline.fetcher.fetch_team_details(name, game)

    team = asyncio.run(go())
    if team is None:
        typer.echo(f"No team page for {name} ({game})", err=True)
        raise typer.Exit(code=2)
    echo_json(record_to_json(team))
