from __future__ import annotations

import hashlib
from collections.abc import Iterable

from sqlalchemy.orm import Session

from esports_wiki.db.models.core.match import Match
from esports_wiki.db.repos.base import BaseRepository
from esports_wiki.ingestion.providers.base.types import MatchRecord, record_to_json


def match_key(record: MatchRecord) -> str:
    """Stable id for a match that has no wiki id of its own."""

    if record.external_id:
        return record.external_id
    parts = [
        record.tournament or record.title or "",
        record.team1,
        record.team2,
        record.date.isoformat() if record.date else "",
    ]
    return hashlib.sha1("|".join(parts).encode("utf-8")).hexdigest()


class MatchRepository(BaseRepository[Match]):
    def __init__(self, session: Session) -> None:
        super().__init__(session=session, model=Match)

    def upsert_records(self, records: Iterable[MatchRecord], *, game: str | None = None) -> int:
        count = 0
        for r in records:
            match_game = r.game or game
            if match_game is None:
                raise ValueError(f"Match {r.team1} vs {r.team2} has no game")
            key = match_key(r)
            self.upsert(
                {
                    "external_id": key,
                    "game": match_game,
                    "title": r.title,
                    "tournament": r.tournament,
                    "team1": r.team1,
                    "team2": r.team2,
                    "score1": r.score1,
                    "score2": r.score2,
                    "winner": r.winner,
                    "status": r.status,
                    "match_date": r.date,
                    "source_url": r.source_url,
                    "source": r.source,
                    "raw_json": record_to_json(r),
                },
                Match.external_id == key,
                Match.game == match_game,
                flush=False,
            )
            count += 1
        self.session.flush()
        return count

    def latest(self, game: str, limit: int = 50) -> list[Match]:
        return self.list_where(Match.game == game, order_by=Match.updated_at.desc(), limit=limit)
