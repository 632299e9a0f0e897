from __future__ import annotations

import json

import pytest

from src.cadence.cli import main
from src.cadence.db.repositories.stats_repository import count_player_stats
from src.cadence.db.session import db_connection
from src.cadence.services.container import ServiceContainer

SEASON = 2025


@pytest.fixture()
def services(settings, engine, fake_sleeper):
    return ServiceContainer.build(settings, engine=engine, sleeper=fake_sleeper)


def test_status_prints_nfl_state(services, capsys):
    assert main(["status"], services=services) == 0
    out = capsys.readouterr().out
    assert "Season: 2025" in out
    assert "Week: 3" in out


def test_sync_then_fetch_stats(services, fake_sleeper, capsys):
    fake_sleeper.weeks = {2: [{"player_id": "4046", "stats": {"pass_td": 3}}, {"player_id": "ghost", "stats": {}}]}

    assert main(["sync"], services=services) == 0
    assert main(["fetch-stats", "--season", str(SEASON), "--week", "2"], services=services) == 0

    out = capsys.readouterr().out
    assert "Synced: 5" in out
    assert "Imported: 1" in out
    assert "Skipped (not in database): 1" in out


def test_fetch_stats_before_sync_is_configuration_error(services):
    assert main(["fetch-stats", "--week", "1"], services=services) == 1


def test_fetch_stats_rejects_out_of_range_week(services):
    with pytest.raises(SystemExit) as excinfo:
        main(["fetch-stats", "--week", "19"], services=services)
    assert excinfo.value.code == 2


def test_compare_prints_json(services, player_ids, week_seeder, capsys):
    week_seeder(player_ids["4046"], 1, pass_yd=260, pass_td=2)
    week_seeder(player_ids["4984"], 1, pass_yd=230, pass_td=1, rush_yd=20)

    code = main(["compare", "Mahomes", "Josh Allen", "--season", str(SEASON), "--weeks", "1"], services=services)

    payload = json.loads(capsys.readouterr().out)
    assert code == 0
    assert payload["players"][0]["average"] == 18.4


def test_compare_unknown_player_exits_nonzero(services, player_ids, capsys):
    assert main(["compare", "Nobody", "Josh Allen", "--season", str(SEASON)], services=services) == 1
    assert "not found in database" in capsys.readouterr().out


def test_check_stats_and_clear(services, engine, player_ids, week_seeder, capsys):
    week_seeder(player_ids["6794"], 1, rec=7, rec_yd=98)

    assert main(["check-stats", "Justin Jefferson"], services=services) == 0
    assert "Stat rows: 1" in capsys.readouterr().out

    assert main(["clear-stats"], services=services) == 1
    assert main(["clear-stats", "--yes"], services=services) == 0
    with db_connection(engine) as connection:
        assert count_player_stats(connection) == 0


def test_check_db_reports_counts(services, player_ids, capsys):
    assert main(["check-db"], services=services) == 0
    out = capsys.readouterr().out
    assert "Players: 5" in out
    assert "Without sleeper_id: 0" in out
