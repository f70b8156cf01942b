from __future__ import annotations

import asyncio
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import pytest
from sqlalchemy import Engine
from sqlalchemy.orm import Session

import esports_wiki.db.models  # noqa: F401
from esports_wiki.db import Base, DatabaseConfig, create_db_engine, create_session_factory
from esports_wiki.ingestion.providers.base.client import Json
from esports_wiki.ingestion.providers.wiki.governor import RateLimitClass, RequestSpec


@dataclass
class FakeGovernor:
    """Stands in for RequestGovernor: answers api.php actions from canned data."""

    pages: dict[str, str] = field(default_factory=dict)
    html: dict[str, str] = field(default_factory=dict)
    cargo: dict[str, Any] = field(default_factory=dict)
    categories: dict[str, list[str]] = field(default_factory=dict)
    search_hits: list[str] = field(default_factory=list)
    recent: list[str] = field(default_factory=list)
    # action -> exception raised instead of answering
    failures: dict[str, Exception] = field(default_factory=dict)
    gate: asyncio.Event | None = None

    calls: list[tuple[RateLimitClass, dict[str, Any]]] = field(default_factory=list)

    def actions(self) -> list[str]:
        return [params.get("list") or params["action"] for _, params in self.calls]

    def parsed_pages(self) -> list[str]:
        return [params["page"] for _, params in self.calls if params["action"] == "parse"]

    async def execute(self, spec: RequestSpec, rate_class: RateLimitClass) -> Json:
        params = dict(spec.params)
        self.calls.append((rate_class, params))
        if self.gate is not None:
            await self.gate.wait()

        action = params["action"]
        key = params.get("list") or action
        if key in self.failures:
            raise self.failures[key]

        if action == "parse":
            return self._parse(params["page"], params["prop"])
        if action == "cargoquery":
            rows = self.cargo.get(params["tables"], [])
            if isinstance(rows, Exception):
                raise rows
            return {"cargoquery": [{"title": row} for row in rows]}
        if key == "categorymembers":
            titles = self.categories.get(params["cmtitle"], [])[: int(params["cmlimit"])]
            members = [{"pageid": i + 1, "ns": 0, "title": t} for i, t in enumerate(titles)]
            return {"query": {"categorymembers": members}}
        if key == "search":
            return {"query": {"search": [{"title": t} for t in self.search_hits]}}
        if key == "recentchanges":
            changes = [
                {"title": t, "pageid": 100 + i, "timestamp": "2024-01-05T12:00:00Z"}
                for i, t in enumerate(self.recent)
            ]
            return {"query": {"recentchanges": changes}}
        raise AssertionError(f"unexpected request {params}")

    def _parse(self, page: str, prop: str) -> Json:
        source = self.pages if prop == "wikitext" else self.html
        if page not in source:
            return {"error": {"code": "missingtitle", "info": "The page you specified doesn't exist."}}
        page_id = sorted(self.pages).index(page) + 1 if page in self.pages else 0
        return {"parse": {"title": page, "pageid": page_id, prop: {"*": source[page]}}}


@dataclass
class FakeClock:
    now: float = 0.0
    sleeps: list[float] = field(default_factory=list)

    def monotonic(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def fixed_now(year: int, month: int, day: int):
    def now() -> datetime:
        return datetime(year, month, day, 12, 0, tzinfo=UTC)

    return now


@pytest.fixture
def fake_governor() -> FakeGovernor:
    return FakeGovernor()


@pytest.fixture
def engine() -> Engine:
    engine = create_db_engine(DatabaseConfig(database_url="sqlite+pysqlite:///:memory:"))
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def session_scope(engine: Engine):
    SessionLocal = create_session_factory(engine)

    @contextmanager
    def scope() -> Iterator[Session]:
        session = SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return scope
