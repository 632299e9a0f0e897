from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.engine import Connection

from src.cadence.services.sleeper_mapping import SCORING_COLUMNS, STAT_COLUMNS

STAT_KEY_COLUMNS = ("player_id", "season", "week", "season_type")

_UPSERT_SQL = f"""
  INSERT INTO player_stats ({", ".join(STAT_KEY_COLUMNS + STAT_COLUMNS)}, created_at, updated_at)
  VALUES ({", ".join(f":{name}" for name in STAT_KEY_COLUMNS + STAT_COLUMNS)}, :now, :now)
  ON CONFLICT(player_id, season, week, season_type) DO UPDATE SET
    {", ".join(f"{name}=excluded.{name}" for name in STAT_COLUMNS)},
    updated_at=excluded.updated_at
"""


def upsert_player_stats(connection: Connection, rows: list[dict], *, now: str) -> int:
    if not rows:
        return 0
    params = [{**{name: row.get(name, 0) for name in STAT_KEY_COLUMNS + STAT_COLUMNS}, "now": now} for row in rows]
    connection.execute(text(_UPSERT_SQL), params)
    return len(rows)


def fetch_recent_stats(connection: Connection, *, player_id: int, season: int, limit: int) -> list[dict]:
    rows = connection.execute(
        text(
            f"""
            SELECT player_id, season, week, season_type, {", ".join(SCORING_COLUMNS.values())}
            FROM player_stats
            WHERE player_id = :player_id AND season = :season
            ORDER BY week DESC
            LIMIT :limit
            """
        ),
        {"player_id": player_id, "season": season, "limit": limit},
    ).mappings().all()
    return [dict(row) for row in rows]


def count_player_stats(connection: Connection, *, player_id: int | None = None) -> int:
    if player_id is None:
        return int(connection.execute(text("SELECT COUNT(*) FROM player_stats")).scalar_one())
    return int(
        connection.execute(
            text("SELECT COUNT(*) FROM player_stats WHERE player_id = :player_id"),
            {"player_id": player_id},
        ).scalar_one()
    )


def fetch_top_scorers(connection: Connection, *, season: int, scoring_column: str, limit: int) -> list[dict]:
    if scoring_column not in SCORING_COLUMNS.values():
        raise ValueError(f"Unknown scoring column: {scoring_column}")
    rows = connection.execute(
        text(
            f"""
            SELECT p.first_name, p.last_name, p.position, p.nfl_team,
                   COUNT(*) AS games, ROUND(SUM(s.{scoring_column}), 2) AS points
            FROM player_stats s
            JOIN nfl_players p ON p.id = s.player_id
            WHERE s.season = :season
            GROUP BY s.player_id, p.first_name, p.last_name, p.position, p.nfl_team
            ORDER BY points DESC
            LIMIT :limit
            """
        ),
        {"season": season, "limit": limit},
    ).mappings().all()
    return [dict(row) for row in rows]


def delete_all_player_stats(connection: Connection) -> int:
    result = connection.execute(text("DELETE FROM player_stats"))
    return int(result.rowcount or 0)
