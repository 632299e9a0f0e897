from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.engine import Engine

from src.cadence.config import Settings
from src.cadence.db.engine import build_engine
from src.cadence.services.chat_service import ChatService
from src.cadence.services.player_directory import PlayerDirectorySync
from src.cadence.services.sleeper_client import SleeperClient
from src.cadence.services.stats_importer import StatsImporter


@dataclass
class ServiceContainer:
    """Everything a request or CLI command needs, wired once per process."""

    settings: Settings
    engine: Engine
    sleeper: SleeperClient
    player_directory: PlayerDirectorySync
    stats_importer: StatsImporter
    chat: ChatService

    @classmethod
    def build(
        cls,
        settings: Settings,
        *,
        engine: Engine | None = None,
        sleeper: SleeperClient | None = None,
        chat: ChatService | None = None,
    ) -> "ServiceContainer":
        engine = engine or build_engine(settings)
        sleeper = sleeper or SleeperClient.from_settings(settings)
        return cls(
            settings=settings,
            engine=engine,
            sleeper=sleeper,
            player_directory=PlayerDirectorySync(engine, sleeper, batch_size=settings.player_sync_batch_size),
            stats_importer=StatsImporter(engine, sleeper, week_delay_seconds=settings.stats_week_delay_seconds),
            chat=chat or ChatService.from_settings(engine, settings),
        )

    def dispose(self) -> None:
        self.engine.dispose()
