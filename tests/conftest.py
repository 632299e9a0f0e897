from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from src.cadence.config import Settings
from src.cadence.db.engine import build_engine
from src.cadence.db.repositories.bootstrap_repository import ensure_tables
from src.cadence.db.repositories.players_repository import upsert_players
from src.cadence.db.repositories.stats_repository import upsert_player_stats
from src.cadence.db.session import db_transaction
from src.cadence.services.sleeper_client import SleeperError
from src.cadence.services.sleeper_mapping import map_sleeper_player, transform_sleeper_stats
from src.cadence.services.stats_importer import build_external_id_mapping
from src.cadence.timeutils import utc_now_iso

SEASON = 2025

SLEEPER_PLAYERS = {
    "4046": {"player_id": "4046", "first_name": "Patrick", "last_name": "Mahomes", "position": "QB", "team": "KC", "status": "Active"},
    "4984": {"player_id": "4984", "first_name": "Josh", "last_name": "Allen", "position": "QB", "team": "BUF", "status": "Active"},
    "4985": {"player_id": "4985", "first_name": "Josh", "last_name": "Allen", "position": "LB", "team": "JAX", "status": "Active"},
    "6794": {"player_id": "6794", "first_name": "Justin", "last_name": "Jefferson", "position": "WR", "team": "MIN", "status": "Active"},
    "1466": {
        "player_id": "1466",
        "first_name": "Travis",
        "last_name": "Kelce",
        "position": "TE",
        "team": "KC",
        "status": "Active",
        "injury_status": "Questionable",
        "injury_body_part": "Knee",
    },
}


class FakeSleeper:
    def __init__(self, *, players=None, weeks=None, state=None, failing_weeks=()):
        self.players = players if players is not None else dict(SLEEPER_PLAYERS)
        self.weeks = weeks or {}
        self.state = state or {"season": str(SEASON), "week": 3, "season_type": "regular", "display_week": 3}
        self.failing_weeks = set(failing_weeks)
        self.week_calls: list[int] = []

    async def get_nfl_state(self) -> dict:
        return dict(self.state)

    async def get_players(self) -> dict:
        if isinstance(self.players, Exception):
            raise self.players
        return self.players

    async def get_week_stats(self, season: int, week: int, season_type: str = "regular") -> list[dict]:
        self.week_calls.append(week)
        if week in self.failing_weeks:
            raise SleeperError(f"week {week} unavailable")
        return list(self.weeks.get(week, []))

    async def get_projections(self, season: int, week: int) -> list[dict]:
        return list(self.weeks.get(week, []))


class FakeStream:
    def __init__(self, turn: dict):
        self._turn = turn

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    @property
    def text_stream(self):
        async def chunks():
            for chunk in self._turn.get("text", []):
                yield chunk

        return chunks()

    async def get_final_message(self):
        return SimpleNamespace(stop_reason=self._turn.get("stop_reason", "end_turn"), content=self._turn.get("content", []))


class FakeAnthropic:
    """Replays scripted turns through the ``messages.stream`` interface."""

    def __init__(self, turns: list[dict]):
        self.calls: list[dict] = []
        self.messages = SimpleNamespace(stream=self._stream)
        self._turns = list(turns)

    def _stream(self, **kwargs):
        self.calls.append(kwargs)
        return FakeStream(self._turns.pop(0))


def make_settings(tmp_path: Path, **overrides) -> Settings:
    values = {
        "app_env": "test",
        "debug": True,
        "database_url": f"sqlite+pysqlite:///{tmp_path / 'cadence-test.db'}",
        "cors_allow_origins": ["http://localhost:3000"],
        "request_body_limit_bytes": 2048,
        "request_timeout_seconds": 30,
        "sleeper_base_url": "https://sleeper.test",
        "sleeper_timeout_seconds": 1,
        "sleeper_max_concurrency": 2,
        "sleeper_retry_attempts": 1,
        "player_sync_batch_size": 500,
        "stats_week_delay_seconds": 0.0,
        "anthropic_api_key": None,
        "chat_model": "test-model",
        "chat_max_tokens": 256,
        "chat_max_tool_rounds": 3,
        "cron_secret": "test-cron-secret",
    }
    values.update(overrides)
    return Settings(**values)


def seed_players(engine, players: dict | None = None) -> dict[str, int]:
    rows = [map_sleeper_player(player, sleeper_id=key) for key, player in (players or SLEEPER_PLAYERS).items()]
    with db_transaction(engine) as connection:
        upsert_players(connection, rows, now=utc_now_iso())
    return build_external_id_mapping(engine)


def seed_week(engine, player_id: int, week: int, season: int = SEASON, **sleeper_stats) -> None:
    row = transform_sleeper_stats(sleeper_stats, player_id=player_id, season=season, week=week)
    with db_transaction(engine) as connection:
        upsert_player_stats(connection, [row], now=utc_now_iso())


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture()
def engine(settings: Settings):
    engine = build_engine(settings)
    with db_transaction(engine) as connection:
        ensure_tables(connection)
    yield engine
    engine.dispose()


@pytest.fixture()
def player_ids(engine) -> dict[str, int]:
    return seed_players(engine)


@pytest.fixture()
def fake_sleeper() -> FakeSleeper:
    return FakeSleeper()


@pytest.fixture()
def app_client(settings: Settings, engine, player_ids, fake_sleeper):
    from src.cadence.main import create_app
    from src.cadence.services.container import ServiceContainer

    services = ServiceContainer.build(settings, engine=engine, sleeper=fake_sleeper)
    app = create_app(services=services)

    with TestClient(app) as client:
        yield client


@pytest.fixture()
def week_seeder(engine):
    def seed(player_id: int, week: int, season: int = SEASON, **sleeper_stats) -> None:
        seed_week(engine, player_id, week, season, **sleeper_stats)

    return seed


@pytest.fixture()
def sleeper_factory():
    return FakeSleeper


@pytest.fixture()
def anthropic_factory():
    return FakeAnthropic
