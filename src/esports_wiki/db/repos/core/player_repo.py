from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy.orm import Session

from esports_wiki.db.models.core.player import Player
from esports_wiki.db.repos.base import BaseRepository
from esports_wiki.ingestion.providers.base.types import PlayerRecord


class PlayerRepository(BaseRepository[Player]):
    def __init__(self, session: Session) -> None:
        super().__init__(session=session, model=Player)

    def upsert_records(self, records: Iterable[PlayerRecord]) -> int:
        count = 0
        for r in records:
            self.upsert(
                {
                    "external_id": r.external_id,
                    "game": r.game,
                    "name": r.name,
                    "status": r.status,
                    "nationality": r.nationality,
                    "role": r.role,
                    "team_name": r.team,
                    "source_url": r.source_url,
                    "source": r.source,
                },
                Player.external_id == r.external_id,
                Player.game == r.game,
                flush=False,
            )
            count += 1
        self.session.flush()
        return count

    def latest(self, game: str, limit: int = 50) -> list[Player]:
        return self.list_where(Player.game == game, order_by=Player.updated_at.desc(), limit=limit)

    def for_team(self, game: str, team_name: str) -> list[Player]:
        return self.list_where(Player.game == game, Player.team_name == team_name, limit=500)
