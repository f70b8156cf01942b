from __future__ import annotations

from sqlalchemy import Enum, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from esports_wiki.db.base import Base, TimestampMixin
from esports_wiki.db.enums import EntityStatusEnum, RecordSourceEnum


class Player(Base, TimestampMixin):
    __tablename__ = "players"

    id: Mapped[int] = mapped_column(primary_key=True)

    external_id: Mapped[str] = mapped_column(String(255), nullable=False)
    game: Mapped[str] = mapped_column(String(100), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[EntityStatusEnum] = mapped_column(
        Enum(EntityStatusEnum, name="entity_status_enum"),
        nullable=False,
        default=EntityStatusEnum.UNKNOWN,
    )
    nationality: Mapped[str | None] = mapped_column(String(100), nullable=True)
    role: Mapped[str | None] = mapped_column(String(100), nullable=True)
    # team page title as listed on the wiki; not a foreign key
    team_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    source_url: Mapped[str | None] = mapped_column(String, nullable=True)
    source: Mapped[RecordSourceEnum] = mapped_column(
        Enum(RecordSourceEnum, name="record_source_enum"),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("external_id", "game", name="uq_players_external_id_game"),
        Index("ix_players_game", "game"),
        Index("ix_players_team_name", "game", "team_name"),
    )
