"""Head-to-head player comparison used by the chat ``compare_players`` tool.

Domain failures (unknown player, no stats, bad arguments) come back as
``{"error": ...}`` payloads so the model can relay them to the user.
"""

from __future__ import annotations

import logging

from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from src.cadence.db.repositories.stats_repository import fetch_recent_stats
from src.cadence.services.player_matcher import PlayerMatcher
from src.cadence.services.sleeper_mapping import SCORING_COLUMNS
from src.cadence.timeutils import current_nfl_season

logger = logging.getLogger("cadence.comparison")

INSUFFICIENT_DATA_MESSAGE = (
    "Insufficient statistics data for comparison. "
    'Make sure to run "cadence fetch-stats" to populate player stats.'
)


def average_points(rows: list[dict], column: str) -> float:
    if not rows:
        return 0.0
    return sum(float(row.get(column) or 0) for row in rows) / len(rows)


def format_comparison(
    player1: str,
    player2: str,
    p1_avg: float,
    p2_avg: float,
    *,
    scoring_type: str,
    weeks: int,
) -> str:
    scoring_label = scoring_type.upper()
    if round(p1_avg, 2) == round(p2_avg, 2):
        return (
            f"**{player1}** and **{player2}** are even (both averaging {p1_avg:.2f} PPG over last {weeks} weeks) "
            f"in {scoring_label} scoring."
        )

    winner, loser = (player1, player2) if p1_avg > p2_avg else (player2, player1)
    high, low = max(p1_avg, p2_avg), min(p1_avg, p2_avg)
    difference = abs(p1_avg - p2_avg)
    return (
        f"**{winner}** is the better play (averaging {high:.2f} PPG vs {low:.2f} PPG over last {weeks} weeks). "
        f"{winner} has outscored {loser} by {difference:.2f} points per game in {scoring_label} scoring."
    )


def _player_breakdown(name: str, player: dict, rows: list[dict], average: float) -> dict:
    return {
        "query": name,
        "player_id": player["id"],
        "name": f"{player['first_name']} {player['last_name']}",
        "position": player.get("position"),
        "team": player.get("nfl_team"),
        "games": len(rows),
        "average": round(average, 2),
    }


def compare_players(
    connection: Connection,
    player1: str,
    player2: str,
    scoring_type: str = "ppr",
    weeks: int = 5,
    *,
    season: int | None = None,
    matcher: PlayerMatcher | None = None,
) -> dict:
    column = SCORING_COLUMNS.get(scoring_type)
    if column is None:
        return {"error": f"Unsupported scoring type: {scoring_type}. Use standard, ppr or half_ppr."}
    try:
        weeks = int(weeks)
    except (TypeError, ValueError):
        weeks = 0
    if weeks < 1:
        return {"error": "Weeks must be a positive integer."}

    season = int(season or current_nfl_season())
    matcher = matcher or PlayerMatcher(connection)

    try:
        p1_data = matcher.best_match(player1)
        if p1_data is None:
            return {"error": f'Player "{player1}" not found in database.'}

        p2_data = matcher.best_match(player2)
        if p2_data is None:
            return {"error": f'Player "{player2}" not found in database.'}

        p1_stats = fetch_recent_stats(connection, player_id=p1_data["id"], season=season, limit=weeks)
        p2_stats = fetch_recent_stats(connection, player_id=p2_data["id"], season=season, limit=weeks)
    except SQLAlchemyError as error:
        logger.exception("Comparison query failed")
        return {"error": f"Database error: {error}"}

    if not p1_stats or not p2_stats:
        return {"error": INSUFFICIENT_DATA_MESSAGE}

    p1_avg = average_points(p1_stats, column)
    p2_avg = average_points(p2_stats, column)

    return {
        "message": format_comparison(player1, player2, p1_avg, p2_avg, scoring_type=scoring_type, weeks=weeks),
        "scoring_type": scoring_type,
        "season": season,
        "weeks": weeks,
        "players": [
            _player_breakdown(player1, p1_data, p1_stats, p1_avg),
            _player_breakdown(player2, p2_data, p2_stats, p2_avg),
        ],
    }
