from __future__ import annotations

from src.cadence.db.repositories.bootstrap_repository import ensure_tables, fetch_health_summary
from src.cadence.db.repositories.players_repository import (
    find_by_last_name_contains,
    like_escape,
    upsert_players,
)
from src.cadence.db.repositories.stats_repository import (
    count_player_stats,
    delete_all_player_stats,
    fetch_recent_stats,
    fetch_top_scorers,
)
from src.cadence.db.session import db_connection, db_transaction
from src.cadence.services.sleeper_mapping import calculate_fantasy_points, transform_sleeper_stats
from src.cadence.timeutils import utc_now_iso

SEASON = 2025


def test_ensure_tables_is_repeatable(engine):
    with db_transaction(engine) as connection:
        ensure_tables(connection)
        ensure_tables(connection)

    with db_connection(engine) as connection:
        health = fetch_health_summary(connection)
    assert health["players"] == 0
    assert health["latest_season"] is None


def test_insert_trigger_derives_points_for_each_scoring_type(engine, player_ids, week_seeder):
    kelce = player_ids["1466"]
    week_seeder(kelce, 1, rec=5, rec_yd=50, rec_td=1)

    with db_connection(engine) as connection:
        row = fetch_recent_stats(connection, player_id=kelce, season=SEASON, limit=1)[0]

    assert row["fantasy_points_standard"] == 11.0
    assert row["fantasy_points_half_ppr"] == 13.5
    assert row["fantasy_points_ppr"] == 16.0


def test_update_trigger_recomputes_points_on_reimport(engine, player_ids, week_seeder):
    jefferson = player_ids["6794"]
    week_seeder(jefferson, 2, rec=5, rec_yd=50, rec_td=1)
    week_seeder(jefferson, 2, rec=8, rec_yd=112, rec_td=0, fum_lost=1)

    expected = transform_sleeper_stats(
        {"rec": 8, "rec_yd": 112, "fum_lost": 1}, player_id=jefferson, season=SEASON, week=2
    )
    with db_connection(engine) as connection:
        rows = fetch_recent_stats(connection, player_id=jefferson, season=SEASON, limit=5)
        total = count_player_stats(connection, player_id=jefferson)

    assert total == 1
    assert rows[0]["fantasy_points_ppr"] == calculate_fantasy_points(expected, "ppr")
    assert rows[0]["fantasy_points_standard"] == calculate_fantasy_points(expected, "standard")


def test_recent_stats_are_newest_first_and_limited(engine, player_ids, week_seeder):
    mahomes = player_ids["4046"]
    for week in (1, 2, 3, 4):
        week_seeder(mahomes, week, pass_td=week)
    week_seeder(mahomes, 1, season=SEASON - 1, pass_td=9)

    with db_connection(engine) as connection:
        rows = fetch_recent_stats(connection, player_id=mahomes, season=SEASON, limit=3)

    assert [row["week"] for row in rows] == [4, 3, 2]


def test_player_upsert_keeps_one_row_per_sleeper_id(engine, player_ids):
    update = {
        "sleeper_id": "4046",
        "first_name": "Patrick",
        "last_name": "Mahomes",
        "position": "QB",
        "nfl_team": "KC",
        "status": "out",
    }
    with db_transaction(engine) as connection:
        upsert_players(connection, [update], now=utc_now_iso())

    with db_connection(engine) as connection:
        health = fetch_health_summary(connection)
        rows = find_by_last_name_contains(connection, token="mahomes", limit=5)

    assert health["players"] == len(player_ids)
    assert rows[0]["status"] == "out"
    assert rows[0]["id"] == player_ids["4046"]


def test_like_wildcards_are_literal(engine, player_ids):
    assert like_escape("50%_off") == "50\\%\\_off"
    with db_connection(engine) as connection:
        assert find_by_last_name_contains(connection, token="%", limit=5) == []
        assert find_by_last_name_contains(connection, token="_", limit=5) == []


def test_top_scorers_and_clear(engine, player_ids, week_seeder):
    week_seeder(player_ids["4046"], 1, pass_yd=300, pass_td=3)
    week_seeder(player_ids["4984"], 1, pass_yd=200, pass_td=1)

    with db_connection(engine) as connection:
        leaders = fetch_top_scorers(connection, season=SEASON, scoring_column="fantasy_points_ppr", limit=5)
    assert [leader["last_name"] for leader in leaders] == ["Mahomes", "Allen"]
    assert leaders[0]["points"] == 24.0

    with db_transaction(engine) as connection:
        deleted = delete_all_player_stats(connection)
    assert deleted == 2

    with db_connection(engine) as connection:
        assert count_player_stats(connection) == 0
