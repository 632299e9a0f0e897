from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.engine import Connection

from src.cadence.services.sleeper_mapping import SCORING_COLUMNS, STAT_COLUMNS, fantasy_points_sql


def _stat_column_ddl() -> str:
    columns = [f"{name} REAL NOT NULL DEFAULT 0" for name in STAT_COLUMNS]
    columns += [f"{name} REAL NOT NULL DEFAULT 0" for name in SCORING_COLUMNS.values()]
    return ",\n              ".join(columns)


def _points_assignments() -> str:
    return ",\n                ".join(
        f"{column} = {fantasy_points_sql(scoring_type)}" for scoring_type, column in SCORING_COLUMNS.items()
    )


def schema_statements() -> list[str]:
    points = _points_assignments()
    return [
        """
        CREATE TABLE IF NOT EXISTS nfl_players (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          sleeper_id TEXT UNIQUE,
          espn_id TEXT,
          yahoo_id TEXT,
          first_name TEXT NOT NULL,
          last_name TEXT NOT NULL,
          position TEXT NOT NULL,
          nfl_team TEXT,
          jersey_number INTEGER,
          status TEXT NOT NULL DEFAULT 'active',
          injury_description TEXT,
          bye_week INTEGER,
          years_exp INTEGER,
          college TEXT,
          height TEXT,
          weight INTEGER,
          headshot_url TEXT,
          created_at TEXT NOT NULL,
          updated_at TEXT NOT NULL
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_nfl_players_last_name ON nfl_players(last_name)",
        "CREATE INDEX IF NOT EXISTS idx_nfl_players_first_last ON nfl_players(first_name, last_name)",
        "CREATE INDEX IF NOT EXISTS idx_nfl_players_team ON nfl_players(nfl_team)",
        f"""
        CREATE TABLE IF NOT EXISTS player_stats (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          player_id INTEGER NOT NULL REFERENCES nfl_players(id) ON DELETE CASCADE,
          season INTEGER NOT NULL,
          week INTEGER NOT NULL,
          season_type TEXT NOT NULL DEFAULT 'regular',
          {_stat_column_ddl()},
          created_at TEXT NOT NULL,
          updated_at TEXT NOT NULL,
          UNIQUE (player_id, season, week, season_type)
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_player_stats_player_season_week ON player_stats(player_id, season, week)",
        f"""
        CREATE TRIGGER IF NOT EXISTS trg_player_stats_points_insert
        AFTER INSERT ON player_stats
        BEGIN
          UPDATE player_stats SET
                {points}
          WHERE id = NEW.id;
        END
        """,
        f"""
        CREATE TRIGGER IF NOT EXISTS trg_player_stats_points_update
        AFTER UPDATE OF {", ".join(STAT_COLUMNS)} ON player_stats
        BEGIN
          UPDATE player_stats SET
                {points}
          WHERE id = NEW.id;
        END
        """,
    ]


def ensure_tables(connection: Connection) -> None:
    for statement in schema_statements():
        connection.execute(text(statement))


def fetch_health_summary(connection: Connection) -> dict:
    players = connection.execute(text("SELECT COUNT(*) FROM nfl_players")).scalar_one()
    with_sleeper_id = connection.execute(
        text("SELECT COUNT(*) FROM nfl_players WHERE sleeper_id IS NOT NULL")
    ).scalar_one()
    stats_rows = connection.execute(text("SELECT COUNT(*) FROM player_stats")).scalar_one()
    latest = connection.execute(
        text("SELECT season, week FROM player_stats ORDER BY season DESC, week DESC LIMIT 1")
    ).mappings().first()

    return {
        "players": int(players),
        "players_with_sleeper_id": int(with_sleeper_id),
        "players_without_sleeper_id": int(players) - int(with_sleeper_id),
        "stats_rows": int(stats_rows),
        "latest_season": int(latest["season"]) if latest else None,
        "latest_week": int(latest["week"]) if latest else None,
    }
