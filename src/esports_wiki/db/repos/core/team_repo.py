from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy.orm import Session

from esports_wiki.db.models.core.team import Team
from esports_wiki.db.repos.base import BaseRepository
from esports_wiki.ingestion.providers.base.types import TeamRecord


class TeamRepository(BaseRepository[Team]):
    def __init__(self, session: Session) -> None:
        super().__init__(session=session, model=Team)

    def upsert_records(self, records: Iterable[TeamRecord]) -> int:
        count = 0
        for r in records:
            self.upsert(
                {
                    "external_id": r.external_id,
                    "game": r.game,
                    "name": r.name,
                    "status": r.status,
                    "country": r.country,
                    "roster": list(r.roster) or None,
                    "source_url": r.source_url,
                    "source": r.source,
                },
                Team.external_id == r.external_id,
                Team.game == r.game,
                flush=False,
            )
            count += 1
        self.session.flush()
        return count

    def latest(self, game: str, limit: int = 50) -> list[Team]:
        return self.list_where(Team.game == game, order_by=Team.updated_at.desc(), limit=limit)
