from __future__ import annotations

from typing import Any

from sqlalchemy import Enum, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from esports_wiki.db.base import Base, JsonType, TimestampMixin
from esports_wiki.db.enums import EntityStatusEnum, RecordSourceEnum


class Team(Base, TimestampMixin):
    __tablename__ = "teams"

    id: Mapped[int] = mapped_column(primary_key=True)

    external_id: Mapped[str] = mapped_column(String(255), nullable=False)
    game: Mapped[str] = mapped_column(String(100), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[EntityStatusEnum] = mapped_column(
        Enum(EntityStatusEnum, name="entity_status_enum"),
        nullable=False,
        default=EntityStatusEnum.UNKNOWN,
    )
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    roster: Mapped[list[Any]] = mapped_column(JsonType, nullable=False, default=list)
    source_url: Mapped[str | None] = mapped_column(String, nullable=True)
    source: Mapped[RecordSourceEnum] = mapped_column(
        Enum(RecordSourceEnum, name="record_source_enum"),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("external_id", "game", name="uq_teams_external_id_game"),
        Index("ix_teams_game", "game"),
    )
