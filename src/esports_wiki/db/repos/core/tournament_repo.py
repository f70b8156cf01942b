from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy.orm import Session

from esports_wiki.db.enums import TournamentStatusEnum
from esports_wiki.db.models.core.tournament import Tournament
from esports_wiki.db.repos.base import BaseRepository
from esports_wiki.ingestion.providers.base.types import TournamentRecord, record_to_json


class TournamentRepository(BaseRepository[Tournament]):
    def __init__(self, session: Session) -> None:
        super().__init__(session=session, model=Tournament)

    def upsert_records(self, records: Iterable[TournamentRecord]) -> int:
        count = 0
        for r in records:
            self.upsert(
                {
                    "external_id": r.canonical_name,
                    "game": r.game,
                    "name": r.original_query_name or r.canonical_name,
                    "status": r.status,
                    "start_date": r.date_range.start,
                    "end_date": r.date_range.end,
                    "prize_pool": r.prize_pool,
                    "location": r.location,
                    "organizer": r.organizer,
                    "tier": r.tier,
                    "team_count": r.team_count,
                    "participants": list(r.participants) or None,
                    "sponsors": list(r.sponsors) or None,
                    "source_url": r.source_url,
                    "source": r.source,
                    "fetched_at": r.fetched_at,
                    "payload_json": record_to_json(r),
                },
                Tournament.external_id == r.canonical_name,
                Tournament.game == r.game,
                flush=False,
            )
            count += 1
        self.session.flush()
        return count

    def latest(self, game: str, limit: int = 50) -> list[Tournament]:
        return self.list_where(
            Tournament.game == game, order_by=Tournament.updated_at.desc(), limit=limit
        )

    def with_status(self, game: str, status: TournamentStatusEnum, limit: int = 50) -> list[Tournament]:
        return self.list_where(
            Tournament.game == game,
            Tournament.status == status,
            order_by=Tournament.end_date.desc(),
            limit=limit,
        )
