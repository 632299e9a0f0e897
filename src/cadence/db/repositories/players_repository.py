from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.engine import Connection

PLAYER_UPSERT_COLUMNS = (
    "sleeper_id",
    "first_name",
    "last_name",
    "position",
    "nfl_team",
    "jersey_number",
    "status",
    "injury_description",
    "years_exp",
    "college",
    "height",
    "weight",
    "espn_id",
    "yahoo_id",
)

PLAYER_SELECT = """
  SELECT
    id, sleeper_id, first_name, last_name, position, nfl_team, jersey_number, status,
    injury_description, bye_week, years_exp, college, height, weight
  FROM nfl_players
"""

_UPSERT_SQL = f"""
  INSERT INTO nfl_players ({", ".join(PLAYER_UPSERT_COLUMNS)}, created_at, updated_at)
  VALUES ({", ".join(f":{name}" for name in PLAYER_UPSERT_COLUMNS)}, :now, :now)
  ON CONFLICT(sleeper_id) DO UPDATE SET
    {", ".join(f"{name}=excluded.{name}" for name in PLAYER_UPSERT_COLUMNS if name != "sleeper_id")},
    updated_at=excluded.updated_at
"""


def like_escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def upsert_players(connection: Connection, rows: list[dict], *, now: str) -> int:
    if not rows:
        return 0
    params = [{**{name: row.get(name) for name in PLAYER_UPSERT_COLUMNS}, "now": now} for row in rows]
    connection.execute(text(_UPSERT_SQL), params)
    return len(rows)


def fetch_external_id_page(connection: Connection, *, limit: int, offset: int) -> list[dict]:
    rows = connection.execute(
        text(
            """
            SELECT id, sleeper_id
            FROM nfl_players
            WHERE sleeper_id IS NOT NULL
            ORDER BY id ASC
            LIMIT :limit OFFSET :offset
            """
        ),
        {"limit": limit, "offset": offset},
    ).mappings().all()
    return [dict(row) for row in rows]


def find_by_name_prefix(connection: Connection, *, first: str, last: str, limit: int) -> list[dict]:
    rows = connection.execute(
        text(
            PLAYER_SELECT
            + """
            WHERE LOWER(first_name) LIKE :first ESCAPE '\\'
              AND LOWER(last_name) LIKE :last ESCAPE '\\'
            ORDER BY id ASC
            LIMIT :limit
            """
        ),
        {
            "first": f"{like_escape(first.lower())}%",
            "last": f"{like_escape(last.lower())}%",
            "limit": limit,
        },
    ).mappings().all()
    return [dict(row) for row in rows]


def find_by_last_name_contains(connection: Connection, *, token: str, limit: int) -> list[dict]:
    rows = connection.execute(
        text(
            PLAYER_SELECT
            + """
            WHERE LOWER(last_name) LIKE :wild ESCAPE '\\'
            ORDER BY id ASC
            LIMIT :limit
            """
        ),
        {"wild": f"%{like_escape(token.lower())}%", "limit": limit},
    ).mappings().all()
    return [dict(row) for row in rows]


def find_by_any_contains(connection: Connection, *, name_token: str, team_token: str, limit: int) -> list[dict]:
    rows = connection.execute(
        text(
            PLAYER_SELECT
            + """
            WHERE LOWER(first_name) LIKE :name ESCAPE '\\'
               OR LOWER(last_name) LIKE :name ESCAPE '\\'
               OR LOWER(COALESCE(nfl_team, '')) LIKE :team ESCAPE '\\'
            ORDER BY id ASC
            LIMIT :limit
            """
        ),
        {
            "name": f"%{like_escape(name_token.lower())}%",
            "team": f"%{like_escape(team_token.lower())}%",
            "limit": limit,
        },
    ).mappings().all()
    return [dict(row) for row in rows]


def fetch_players_missing_sleeper_id(connection: Connection, *, limit: int) -> list[dict]:
    rows = connection.execute(
        text(PLAYER_SELECT + " WHERE sleeper_id IS NULL ORDER BY id ASC LIMIT :limit"),
        {"limit": limit},
    ).mappings().all()
    return [dict(row) for row in rows]
