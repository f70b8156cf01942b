"""Initial schema: teams, players, matches, tournaments, sync_log

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENTITY_STATUS = sa.Enum(
    "ACTIVE", "INACTIVE", "RETIRED", "DISBANDED", "UNKNOWN", name="entity_status_enum"
)
RECORD_SOURCE = sa.Enum("STRUCTURED", "FALLBACK", "MARKUP", name="record_source_enum")
MATCH_STATUS = sa.Enum("SCHEDULED", "COMPLETED", name="match_status_enum")
TOURNAMENT_STATUS = sa.Enum(
    "UPCOMING", "ONGOING", "CONCLUDED", "UNKNOWN", name="tournament_status_enum"
)
SYNC_STATUS = sa.Enum("SUCCESS", "ERROR", "SKIPPED", name="sync_status_enum")

JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
    ]


def upgrade() -> None:
    """Upgrade schema."""

    op.create_table(
        "teams",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("external_id", sa.String(255), nullable=False),
        sa.Column("game", sa.String(100), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("status", ENTITY_STATUS, nullable=False),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("roster", JSON, nullable=False),
        sa.Column("source_url", sa.String(), nullable=True),
        sa.Column("source", RECORD_SOURCE, nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("external_id", "game", name="uq_teams_external_id_game"),
    )
    op.create_index("ix_teams_game", "teams", ["game"], unique=False)

    op.create_table(
        "players",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("external_id", sa.String(255), nullable=False),
        sa.Column("game", sa.String(100), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("status", ENTITY_STATUS, nullable=False),
        sa.Column("nationality", sa.String(100), nullable=True),
        sa.Column("role", sa.String(100), nullable=True),
        sa.Column("team_name", sa.String(255), nullable=True),
        sa.Column("source_url", sa.String(), nullable=True),
        sa.Column("source", RECORD_SOURCE, nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("external_id", "game", name="uq_players_external_id_game"),
    )
    op.create_index("ix_players_game", "players", ["game"], unique=False)
    op.create_index("ix_players_team_name", "players", ["game", "team_name"], unique=False)

    op.create_table(
        "matches",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("external_id", sa.String(255), nullable=False),
        sa.Column("game", sa.String(100), nullable=False),
        sa.Column("title", sa.String(500), nullable=True),
        sa.Column("tournament", sa.String(255), nullable=True),
        sa.Column("team1", sa.String(255), nullable=False),
        sa.Column("team2", sa.String(255), nullable=False),
        sa.Column("score1", sa.Integer(), nullable=True),
        sa.Column("score2", sa.Integer(), nullable=True),
        sa.Column("winner", sa.String(255), nullable=True),
        sa.Column("status", MATCH_STATUS, nullable=False),
        sa.Column("match_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("source_url", sa.String(), nullable=True),
        sa.Column("source", RECORD_SOURCE, nullable=False),
        sa.Column("raw_json", JSON, nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("external_id", "game", name="uq_matches_external_id_game"),
    )
    op.create_index("ix_matches_game", "matches", ["game"], unique=False)
    op.create_index("ix_matches_date", "matches", ["match_date"], unique=False)

    op.create_table(
        "tournaments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("external_id", sa.String(255), nullable=False),
        sa.Column("game", sa.String(100), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("status", TOURNAMENT_STATUS, nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("prize_pool", sa.String(100), nullable=True),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("organizer", sa.String(255), nullable=True),
        sa.Column("tier", sa.String(50), nullable=True),
        sa.Column("team_count", sa.Integer(), nullable=True),
        sa.Column("participants", JSON, nullable=False),
        sa.Column("sponsors", JSON, nullable=False),
        sa.Column("source_url", sa.String(), nullable=True),
        sa.Column("source", RECORD_SOURCE, nullable=False),
        sa.Column("fetched_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("payload_json", JSON, nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("external_id", "game", name="uq_tournaments_external_id_game"),
    )
    op.create_index(
        "ix_tournaments_game_status", "tournaments", ["game", "status"], unique=False
    )

    op.create_table(
        "sync_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sync_type", sa.String(50), nullable=False),
        sa.Column("game", sa.String(100), nullable=True),
        sa.Column("status", SYNC_STATUS, nullable=False),
        sa.Column("records_processed", sa.Integer(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column(
            "started_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_sync_log_type_game", "sync_log", ["sync_type", "game"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_index("ix_sync_log_type_game", table_name="sync_log")
    op.drop_table("sync_log")
    op.drop_index("ix_tournaments_game_status", table_name="tournaments")
    op.drop_table("tournaments")
    op.drop_index("ix_matches_date", table_name="matches")
    op.drop_index("ix_matches_game", table_name="matches")
    op.drop_table("matches")
    op.drop_index("ix_players_team_name", table_name="players")
    op.drop_index("ix_players_game", table_name="players")
    op.drop_table("players")
    op.drop_index("ix_teams_game", table_name="teams")
    op.drop_table("teams")

    bind = op.get_bind()
    for enum in (SYNC_STATUS, TOURNAMENT_STATUS, MATCH_STATUS, RECORD_SOURCE, ENTITY_STATUS):
        enum.drop(bind, checkfirst=True)
