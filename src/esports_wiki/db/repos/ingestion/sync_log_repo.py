from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy.orm import Session

from esports_wiki.db.enums import SyncStatusEnum
from esports_wiki.db.models.ingestion.sync_log import SyncLog
from esports_wiki.db.repos.base import BaseRepository


class SyncLogRepository(BaseRepository[SyncLog]):
    def __init__(self, session: Session) -> None:
        super().__init__(session=session, model=SyncLog)

    def log(
        self,
        kind: str,
        game: str | None,
        status: SyncStatusEnum,
        count: int = 0,
        error: str | None = None,
    ) -> SyncLog:
        return self.add(
            SyncLog(
                sync_type=kind,
                game=game,
                status=status,
                records_processed=count,
                error_message=error,
                completed_at=datetime.now(tz=UTC),
            )
        )

    def history(self, limit: int = 20) -> list[SyncLog]:
        return self.list_where(order_by=SyncLog.id.desc(), limit=limit)
