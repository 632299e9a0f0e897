from __future__ import annotations

from sqlalchemy import Column, Float, ForeignKey, Integer, MetaData, String, Table, UniqueConstraint

from src.cadence.services.sleeper_mapping import SCORING_COLUMNS, STAT_COLUMNS

metadata = MetaData()

nfl_players = Table(
    "nfl_players",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("sleeper_id", String, unique=True),
    Column("espn_id", String),
    Column("yahoo_id", String),
    Column("first_name", String, nullable=False),
    Column("last_name", String, nullable=False),
    Column("position", String, nullable=False),
    Column("nfl_team", String),
    Column("jersey_number", Integer),
    Column("status", String, nullable=False, server_default="active"),
    Column("injury_description", String),
    Column("bye_week", Integer),
    Column("years_exp", Integer),
    Column("college", String),
    Column("height", String),
    Column("weight", Integer),
    Column("headshot_url", String),
    Column("created_at", String, nullable=False),
    Column("updated_at", String, nullable=False),
)

player_stats = Table(
    "player_stats",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("player_id", Integer, ForeignKey("nfl_players.id", ondelete="CASCADE"), nullable=False),
    Column("season", Integer, nullable=False),
    Column("week", Integer, nullable=False),
    Column("season_type", String, nullable=False, server_default="regular"),
    *[Column(name, Float, nullable=False, server_default="0") for name in STAT_COLUMNS],
    *[Column(name, Float, nullable=False, server_default="0") for name in SCORING_COLUMNS.values()],
    Column("created_at", String, nullable=False),
    Column("updated_at", String, nullable=False),
    UniqueConstraint("player_id", "season", "week", "season_type", name="uq_player_stats_player_week"),
)
