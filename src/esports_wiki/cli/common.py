from __future__ import annotations

import json
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import httpx
import typer
from sqlalchemy import Engine
from sqlalchemy.orm import Session

from esports_wiki.core.config import Settings, settings
from esports_wiki.db import DatabaseConfig, create_db_engine, create_session_factory
from esports_wiki.ingestion.providers.base.client import BaseHttpClient
from esports_wiki.ingestion.providers.wiki.aggregator import TournamentAggregator
from esports_wiki.ingestion.providers.wiki.client import WikiApiClient
from esports_wiki.ingestion.providers.wiki.fetchers import EntityFetcher
from esports_wiki.ingestion.providers.wiki.governor import RequestGovernor
from esports_wiki.ingestion.providers.wiki.resolver import TournamentNameResolver
from esports_wiki.ingestion.sync import SyncService


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine(
        DatabaseConfig(database_url=settings.database_url, echo=settings.db_echo)
    )


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Context-managed DB session for CLI commands.
    Ensures proper close and rolls back on exception.
    """
    SessionLocal = create_session_factory(get_engine())
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@dataclass(frozen=True)
class Pipeline:
    client: WikiApiClient
    fetcher: EntityFetcher
    resolver: TournamentNameResolver
    aggregator: TournamentAggregator
    sync: SyncService


@asynccontextmanager
async def build_pipeline(
    cfg: Settings = settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncIterator[Pipeline]:
    """Wire the governor, wiki client, fetchers, aggregator and sync jobs from settings."""

    http = BaseHttpClient(
        base_url=cfg.wiki_base_url,
        timeout_s=cfg.request_timeout_s,
        connect_timeout_s=cfg.connect_timeout_s,
        transport=transport,
    )
    async with http:
        governor = RequestGovernor.from_settings(http, cfg)
        client = WikiApiClient(governor, base_url=cfg.wiki_base_url)
        fetcher = EntityFetcher(
            client,
            fallback_limit=cfg.fallback_limit,
            politeness_delay_s=cfg.politeness_delay_s,
        )
        resolver = TournamentNameResolver(client, min_similarity=cfg.search_similarity)
        aggregator = TournamentAggregator(
            resolver,
            fetcher,
            politeness_delay_s=cfg.politeness_delay_s,
            fetch_html=cfg.fetch_html,
            max_roster_teams=cfg.max_roster_teams,
        )
        sync = SyncService(
            fetcher=fetcher,
            aggregator=aggregator,
            session_scope=session_scope,
            games=cfg.games,
            politeness_delay_s=cfg.politeness_delay_s,
        )
        yield Pipeline(
            client=client,
            fetcher=fetcher,
            resolver=resolver,
            aggregator=aggregator,
            sync=sync,
        )


def echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, sort_keys=False, default=str))
