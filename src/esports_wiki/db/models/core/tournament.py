from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import Date, DateTime, Enum, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from esports_wiki.db.base import Base, JsonType, TimestampMixin
from esports_wiki.db.enums import RecordSourceEnum, TournamentStatusEnum


class Tournament(Base, TimestampMixin):
    __tablename__ = "tournaments"

    id: Mapped[int] = mapped_column(primary_key=True)

    # canonical page title
    external_id: Mapped[str] = mapped_column(String(255), nullable=False)
    game: Mapped[str] = mapped_column(String(100), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[TournamentStatusEnum] = mapped_column(
        Enum(TournamentStatusEnum, name="tournament_status_enum"),
        nullable=False,
        default=TournamentStatusEnum.UNKNOWN,
    )
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    prize_pool: Mapped[str | None] = mapped_column(String(100), nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    organizer: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tier: Mapped[str | None] = mapped_column(String(50), nullable=True)
    team_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    participants: Mapped[list[Any]] = mapped_column(JsonType, nullable=False, default=list)
    sponsors: Mapped[list[Any]] = mapped_column(JsonType, nullable=False, default=list)

    source_url: Mapped[str | None] = mapped_column(String, nullable=True)
    source: Mapped[RecordSourceEnum] = mapped_column(
        Enum(RecordSourceEnum, name="record_source_enum"),
        nullable=False,
    )
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    payload_json: Mapped[dict[str, Any]] = mapped_column(JsonType, nullable=False)

    __table_args__ = (
        UniqueConstraint("external_id", "game", name="uq_tournaments_external_id_game"),
        Index("ix_tournaments_game_status", "game", "status"),
    )
