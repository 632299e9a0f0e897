"""players and weekly stats

Revision ID: 0001_players_and_stats
Revises:
Create Date: 2026-10-19
"""

from alembic import op

from src.cadence.db.repositories.bootstrap_repository import schema_statements

revision = "0001_players_and_stats"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    for statement in schema_statements():
        op.execute(statement)


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS trg_player_stats_points_update")
    op.execute("DROP TRIGGER IF EXISTS trg_player_stats_points_insert")
    op.execute("DROP TABLE IF EXISTS player_stats")
    op.execute("DROP TABLE IF EXISTS nfl_players")
