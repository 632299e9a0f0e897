from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from src.cadence.db.repositories.players_repository import upsert_players
from src.cadence.db.session import db_transaction
from src.cadence.services.sleeper_client import SleeperClient
from src.cadence.services.sleeper_mapping import is_syncable_player, map_sleeper_player
from src.cadence.timeutils import utc_now_iso

logger = logging.getLogger("cadence.player_sync")

DEFAULT_BATCH_SIZE = 500


@dataclass
class DirectorySyncSummary:
    total_fetched: int = 0
    mapped: int = 0
    filtered: int = 0
    synced: int = 0
    failed: int = 0
    batches: int = 0
    failed_batches: int = 0
    first_error: str | None = None

    @property
    def success(self) -> bool:
        return self.synced > 0

    @property
    def message(self) -> str:
        return f"Synced {self.synced} players. Failed: {self.failed}"

    def as_dict(self) -> dict:
        return asdict(self)


def prepare_player_rows(payload: dict[str, dict]) -> tuple[list[dict], int]:
    rows = []
    filtered = 0
    for sleeper_id, player in payload.items():
        if not is_syncable_player(player):
            filtered += 1
            continue
        rows.append(map_sleeper_player(player, sleeper_id=str(sleeper_id)))
    return rows, filtered


def chunked(rows: list, size: int) -> list[list]:
    size = max(1, int(size))
    return [rows[start : start + size] for start in range(0, len(rows), size)]


class PlayerDirectorySync:
    def __init__(self, engine: Engine, sleeper: SleeperClient, *, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        self._engine = engine
        self._sleeper = sleeper
        self._batch_size = batch_size

    async def sync(self) -> DirectorySyncSummary:
        payload = await self._sleeper.get_players()
        logger.info("Fetched %s players from Sleeper", len(payload))
        return await asyncio.to_thread(self.sync_payload, payload)

    def sync_payload(self, payload: dict[str, dict]) -> DirectorySyncSummary:
        rows, filtered = prepare_player_rows(payload)
        summary = DirectorySyncSummary(total_fetched=len(payload), mapped=len(rows), filtered=filtered)
        batches = chunked(rows, self._batch_size)
        now = utc_now_iso()

        for number, batch in enumerate(batches, start=1):
            summary.batches += 1
            try:
                with db_transaction(self._engine) as connection:
                    upsert_players(connection, batch, now=now)
            except SQLAlchemyError as error:
                logger.error("Player batch %s/%s failed: %s", number, len(batches), error)
                summary.failed += len(batch)
                summary.failed_batches += 1
                if summary.first_error is None:
                    summary.first_error = str(error)
                continue
            summary.synced += len(batch)
            logger.debug("Player batch %s/%s synced (%s rows)", number, len(batches), len(batch))

        logger.info(
            "Player sync finished: fetched=%s mapped=%s synced=%s failed=%s",
            summary.total_fetched,
            summary.mapped,
            summary.synced,
            summary.failed,
        )
        return summary
