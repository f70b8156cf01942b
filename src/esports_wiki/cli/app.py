from __future__ import annotations

import typer

from esports_wiki.cli.db import app as db_app
from esports_wiki.cli.fetch import app as fetch_app
from esports_wiki.cli.sync import app as sync_app
from esports_wiki.core.config import settings
from esports_wiki.core.logging import setup_logging

app = typer.Typer(no_args_is_help=True)
app.add_typer(db_app, name="db")
app.add_typer(sync_app, name="sync")
app.add_typer(fetch_app, name="fetch")


@app.callback()
def main(
    log_level: str = typer.Option(settings.log_level, "--log-level", help="Logging level."),
    log_file: str | None = typer.Option(settings.log_file, "--log-file", help="Also log to this file."),
) -> None:
    """Esports wiki data sync."""

    setup_logging(log_level, log_file)
