from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Enum, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from esports_wiki.db.base import Base, JsonType, TimestampMixin
from esports_wiki.db.enums import MatchStatusEnum, RecordSourceEnum


class Match(Base, TimestampMixin):
    __tablename__ = "matches"

    id: Mapped[int] = mapped_column(primary_key=True)

    external_id: Mapped[str] = mapped_column(String(255), nullable=False)
    game: Mapped[str] = mapped_column(String(100), nullable=False)

    title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    tournament: Mapped[str | None] = mapped_column(String(255), nullable=True)

    team1: Mapped[str] = mapped_column(String(255), nullable=False)
    team2: Mapped[str] = mapped_column(String(255), nullable=False)
    score1: Mapped[int | None] = mapped_column(Integer, nullable=True)
    score2: Mapped[int | None] = mapped_column(Integer, nullable=True)
    winner: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[MatchStatusEnum] = mapped_column(
        Enum(MatchStatusEnum, name="match_status_enum"),
        nullable=False,
        default=MatchStatusEnum.SCHEDULED,
    )
    match_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    source_url: Mapped[str | None] = mapped_column(String, nullable=True)
    source: Mapped[RecordSourceEnum] = mapped_column(
        Enum(RecordSourceEnum, name="record_source_enum"),
        nullable=False,
    )
    raw_json: Mapped[dict[str, Any]] = mapped_column(JsonType, nullable=False)

    __table_args__ = (
        UniqueConstraint("external_id", "game", name="uq_matches_external_id_game"),
        Index("ix_matches_game", "game"),
        Index("ix_matches_date", "match_date"),
    )
