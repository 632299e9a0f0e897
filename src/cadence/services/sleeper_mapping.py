"""Translation between Sleeper payloads and the local player/stat schema.

Sleeper stat blobs are loosely keyed dictionaries. Everything the importer
reads from them goes through ``STAT_FIELD_MAP`` and ``SUMMED_STAT_FIELDS`` so
that numeric coercion and the default-zero fallback apply uniformly.
"""

from __future__ import annotations

import re
from typing import Any, Literal

PlayerStatus = Literal["active", "injured", "out", "doubtful", "questionable"]
ScoringType = Literal["standard", "ppr", "half_ppr"]

FANTASY_POSITIONS = ("QB", "RB", "WR", "TE", "K", "DEF")
SCORING_TYPES: tuple[str, ...] = ("standard", "ppr", "half_ppr")
SCORING_COLUMNS = {
    "standard": "fantasy_points_standard",
    "ppr": "fantasy_points_ppr",
    "half_ppr": "fantasy_points_half_ppr",
}
RECEPTION_POINTS = {"standard": 0.0, "ppr": 1.0, "half_ppr": 0.5}

# local column -> Sleeper stat key
STAT_FIELD_MAP: dict[str, str] = {
    "passing_attempts": "pass_att",
    "passing_completions": "pass_cmp",
    "passing_yards": "pass_yd",
    "passing_touchdowns": "pass_td",
    "passing_interceptions": "pass_int",
    "passing_2pt_conversions": "pass_2pt",
    "rushing_attempts": "rush_att",
    "rushing_yards": "rush_yd",
    "rushing_touchdowns": "rush_td",
    "rushing_2pt_conversions": "rush_2pt",
    "rushing_fumbles": "fum",
    "rushing_fumbles_lost": "fum_lost",
    "receptions": "rec",
    "receiving_targets": "rec_tgt",
    "receiving_yards": "rec_yd",
    "receiving_touchdowns": "rec_td",
    "receiving_2pt_conversions": "rec_2pt",
    "receiving_fumbles": "rec_fum",
    "receiving_fumbles_lost": "rec_fum_lost",
    "field_goals_made": "fgm",
    "field_goals_attempted": "fga",
    "field_goals_0_19": "fgm_0_19",
    "field_goals_20_29": "fgm_20_29",
    "field_goals_30_39": "fgm_30_39",
    "field_goals_40_49": "fgm_40_49",
    "field_goals_50_plus": "fgm_50p",
    "extra_points_made": "xpm",
    "extra_points_attempted": "xpa",
    "defense_sacks": "sack",
    "defense_interceptions": "def_int",
    "defense_fumbles_recovered": "fum_rec",
    "defense_fumbles_forced": "ff",
    "defense_safeties": "safe",
    "defense_touchdowns": "def_td",
    "defense_blocked_kicks": "blk_kick",
    "defense_points_allowed": "pts_allow",
    "defense_yards_allowed": "yds_allow",
}

# local column -> Sleeper stat keys added together
SUMMED_STAT_FIELDS: dict[str, tuple[str, ...]] = {
    "return_touchdowns": ("pr_td", "kr_td"),
}

STAT_COLUMNS: tuple[str, ...] = tuple(STAT_FIELD_MAP) + tuple(SUMMED_STAT_FIELDS)

# Points per unit of a stat column, shared by every scoring type. Receptions
# are scored separately through RECEPTION_POINTS.
SCORING_WEIGHTS: dict[str, float] = {
    "passing_yards": 0.04,
    "passing_touchdowns": 4.0,
    "passing_interceptions": -2.0,
    "passing_2pt_conversions": 2.0,
    "rushing_yards": 0.1,
    "rushing_touchdowns": 6.0,
    "rushing_2pt_conversions": 2.0,
    "rushing_fumbles_lost": -2.0,
    "receiving_yards": 0.1,
    "receiving_touchdowns": 6.0,
    "receiving_2pt_conversions": 2.0,
    "receiving_fumbles_lost": -2.0,
    "return_touchdowns": 6.0,
    "field_goals_made": 3.0,
    "extra_points_made": 1.0,
    "defense_sacks": 1.0,
    "defense_interceptions": 2.0,
    "defense_fumbles_recovered": 2.0,
    "defense_safeties": 2.0,
    "defense_touchdowns": 6.0,
    "defense_blocked_kicks": 2.0,
}

_LEADING_INT = re.compile(r"^\s*(-?\d+)")


def stat_number(value: Any) -> float | int:
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return 0
    return int(number) if number.is_integer() else number


def parse_leading_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def map_sleeper_status(status: str | None, injury_status: str | None) -> PlayerStatus:
    if injury_status:
        lowered = str(injury_status).strip().lower()
        if lowered == "out":
            return "out"
        if lowered == "doubtful":
            return "doubtful"
        if lowered == "questionable":
            return "questionable"
        return "injured"
    return "active" if status == "Active" else "injured"


def is_syncable_player(player: Any) -> bool:
    if not isinstance(player, dict):
        return False
    return bool(player.get("position") and player.get("first_name") and player.get("last_name"))


def map_sleeper_player(player: dict[str, Any], sleeper_id: str | None = None) -> dict[str, Any]:
    external_id = player.get("player_id") or sleeper_id
    height = player.get("height")
    return {
        "sleeper_id": str(external_id) if external_id is not None else None,
        "first_name": player.get("first_name"),
        "last_name": player.get("last_name"),
        "position": player.get("position"),
        "nfl_team": player.get("team") or None,
        "jersey_number": parse_leading_int(player.get("number")),
        "status": map_sleeper_status(player.get("status"), player.get("injury_status")),
        "injury_description": player.get("injury_body_part") or None,
        "years_exp": parse_leading_int(player.get("years_exp")) or 0,
        "college": player.get("college") or None,
        "height": str(height) if height not in (None, "") else None,
        "weight": parse_leading_int(player.get("weight")) or None,
        "espn_id": _optional_id(player.get("espn_id")),
        "yahoo_id": _optional_id(player.get("yahoo_id")),
    }


def _optional_id(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def transform_sleeper_stats(
    stats: dict[str, Any] | None,
    *,
    player_id: int,
    season: int,
    week: int,
    season_type: str = "regular",
) -> dict[str, Any]:
    stats = stats if isinstance(stats, dict) else {}
    row: dict[str, Any] = {
        "player_id": player_id,
        "season": int(season),
        "week": int(week),
        "season_type": season_type,
    }
    for column, key in STAT_FIELD_MAP.items():
        row[column] = stat_number(stats.get(key))
    for column, keys in SUMMED_STAT_FIELDS.items():
        row[column] = sum(stat_number(stats.get(key)) for key in keys)
    return row


def calculate_fantasy_points(row: dict[str, Any], scoring_type: str) -> float:
    """Score a transformed stat row the way the ``player_stats`` triggers do."""
    if scoring_type not in RECEPTION_POINTS:
        raise ValueError(f"Unsupported scoring type: {scoring_type}")
    points = sum(float(row.get(column) or 0) * weight for column, weight in SCORING_WEIGHTS.items())
    points += float(row.get("receptions") or 0) * RECEPTION_POINTS[scoring_type]
    return round(points, 2)


def fantasy_points_sql(scoring_type: str, alias: str = "NEW") -> str:
    terms = [f"COALESCE({alias}.{column}, 0) * {weight!r}" for column, weight in SCORING_WEIGHTS.items()]
    reception_weight = RECEPTION_POINTS[scoring_type]
    if reception_weight:
        terms.append(f"COALESCE({alias}.receptions, 0) * {reception_weight!r}")
    return "ROUND(" + " + ".join(terms) + ", 2)"
