from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Enum, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from esports_wiki.db.base import Base, UTCNow
from esports_wiki.db.enums import SyncStatusEnum


class SyncLog(Base):
    __tablename__ = "sync_log"

    id: Mapped[int] = mapped_column(primary_key=True)

    sync_type: Mapped[str] = mapped_column(String(50), nullable=False)  # "teams", "full", ...
    game: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[SyncStatusEnum] = mapped_column(
        Enum(SyncStatusEnum, name="sync_status_enum"),
        nullable=False,
    )
    records_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    started_at: Mapped[UTCNow]
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (Index("ix_sync_log_type_game", "sync_type", "game"),)
