from __future__ import annotations

import asyncio
import http.client
import json
import threading

import pytest
from sqlalchemy.exc import OperationalError

import src.cadence.services.stats_importer as stats_importer
from src.cadence.db.repositories.stats_repository import count_player_stats, fetch_recent_stats
from src.cadence.db.session import db_connection
from src.cadence.services.sleeper_client import SleeperClient
from src.cadence.services.stats_importer import ImporterConfigError, StatsImporter, build_external_id_mapping, weeks_for

SEASON = 2025


def _week(*player_ids: str, **stats) -> list[dict]:
    return [{"player_id": player_id, "stats": dict(stats or {"pass_td": 1})} for player_id in player_ids]


def test_weeks_for_defaults_to_regular_season():
    assert weeks_for(None) == list(range(1, 19))
    assert weeks_for(7) == [7]


def test_mapping_pages_until_short_page(engine, player_ids):
    mapping = build_external_id_mapping(engine, page_size=2)
    assert mapping == player_ids
    assert len(mapping) == 5


def test_empty_directory_is_a_configuration_error(engine, sleeper_factory):
    importer = StatsImporter(engine, sleeper_factory(), week_delay_seconds=0)
    with pytest.raises(ImporterConfigError):
        asyncio.run(importer.run(SEASON, 1))


def test_single_week_import_skips_unmapped_players(engine, player_ids, sleeper_factory):
    sleeper = sleeper_factory(weeks={3: _week("4046", "4984", "unknown-1", "unknown-2", pass_yd=250, pass_td=2)})
    summary = asyncio.run(StatsImporter(engine, sleeper, week_delay_seconds=0).run(SEASON, 3))

    assert summary.weeks_requested == [3]
    assert summary.imported == 2
    assert summary.skipped == 2
    assert summary.errored == 0
    assert summary.weeks_imported == 1
    assert sleeper.week_calls == [3]

    with db_connection(engine) as connection:
        row = fetch_recent_stats(connection, player_id=player_ids["4046"], season=SEASON, limit=1)[0]
    assert row["fantasy_points_standard"] == 18.0


def test_reimport_is_idempotent(engine, player_ids, sleeper_factory):
    sleeper = sleeper_factory(weeks={1: _week("4046", "6794", rec=4)})
    importer = StatsImporter(engine, sleeper, week_delay_seconds=0)

    asyncio.run(importer.run(SEASON, 1))
    with db_connection(engine) as connection:
        first = count_player_stats(connection)

    asyncio.run(importer.run(SEASON, 1))
    with db_connection(engine) as connection:
        second = count_player_stats(connection)

    assert first == second == 2


def test_failed_and_empty_weeks_are_skipped(engine, player_ids, sleeper_factory):
    weeks = {week: _week("4046") for week in range(1, 19) if week not in (5, 17)}
    sleeper = sleeper_factory(weeks=weeks, failing_weeks={2})
    summary = asyncio.run(StatsImporter(engine, sleeper, week_delay_seconds=0).run(SEASON))

    assert sleeper.week_calls == list(range(1, 19))
    assert summary.weeks_skipped == 3
    assert summary.weeks_imported == 15
    assert summary.imported == 15
    failed = next(result for result in summary.week_results if result.week == 2)
    assert "unavailable" in failed.error


def test_pause_between_weeks_but_not_after_last(engine, player_ids, sleeper_factory, monkeypatch):
    pauses = []

    async def fake_sleep(seconds):
        pauses.append(seconds)

    monkeypatch.setattr(stats_importer.asyncio, "sleep", fake_sleep)

    importer = StatsImporter(engine, sleeper_factory(), week_delay_seconds=0.25)
    asyncio.run(importer.run(SEASON))
    assert pauses == [0.25] * 17

    pauses.clear()
    asyncio.run(importer.run(SEASON, 4))
    assert pauses == []


def test_database_error_marks_week_rows_errored(engine, player_ids, sleeper_factory, monkeypatch):
    def broken_upsert(connection, rows, *, now):
        raise OperationalError("INSERT INTO player_stats", {}, Exception("disk I/O error"))

    monkeypatch.setattr(stats_importer, "upsert_player_stats", broken_upsert)

    sleeper = sleeper_factory(weeks={6: _week("4046", "4984", "1466")})
    summary = asyncio.run(StatsImporter(engine, sleeper, week_delay_seconds=0).run(SEASON, 6))

    assert summary.errored == 3
    assert summary.imported == 0
    assert summary.weeks_skipped == 1
    assert summary.week_results[0].error.startswith("Database error:")


class _Response:
    def __init__(self, payload):
        self._payload = payload

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def read(self):
        return json.dumps(self._payload).encode("utf-8")


@pytest.mark.parametrize(
    "failure",
    [
        http.client.RemoteDisconnected("Remote end closed connection without response"),
        http.client.IncompleteRead(b"{"),
        ConnectionResetError("connection reset by peer"),
    ],
)
def test_dropped_connection_skips_only_that_week(engine, player_ids, monkeypatch, failure):
    def fake_urlopen(request, timeout=0):
        if "/stats/nfl/2025/1?" in request.full_url:
            raise failure
        return _Response([{"player_id": "4046", "stats": {"pass_td": 1}}])

    monkeypatch.setattr("urllib.request.urlopen", fake_urlopen)

    sleeper = SleeperClient(base_url="https://sleeper.test", timeout_seconds=1, retry_attempts=1)
    summary = asyncio.run(StatsImporter(engine, sleeper, week_delay_seconds=0).run(SEASON))

    assert summary.weeks_skipped == 1
    assert summary.weeks_imported == 17
    assert summary.imported == 17
    assert summary.week_results[0].error.startswith("Sleeper request failed")


def test_database_writes_run_off_the_event_loop_thread(engine, player_ids, sleeper_factory, monkeypatch):
    real_upsert = stats_importer.upsert_player_stats
    threads = []

    def recording_upsert(connection, rows, *, now):
        threads.append(threading.get_ident())
        return real_upsert(connection, rows, now=now)

    monkeypatch.setattr(stats_importer, "upsert_player_stats", recording_upsert)

    sleeper = sleeper_factory(weeks={1: _week("4046")})
    summary = asyncio.run(StatsImporter(engine, sleeper, week_delay_seconds=0).run(SEASON, 1))

    assert summary.imported == 1
    assert threads and threading.get_ident() not in threads
