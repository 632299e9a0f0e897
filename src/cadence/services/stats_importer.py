"""Weekly Sleeper stats -> ``player_stats`` import.

Weeks are fetched one after another with a fixed pause in between. A week that
cannot be fetched or written is recorded and skipped; it never aborts the run.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass, field

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from src.cadence.db.repositories.players_repository import fetch_external_id_page
from src.cadence.db.repositories.stats_repository import upsert_player_stats
from src.cadence.db.session import db_connection, db_transaction
from src.cadence.services.sleeper_client import SleeperClient, SleeperError
from src.cadence.services.sleeper_mapping import transform_sleeper_stats
from src.cadence.timeutils import NFL_REGULAR_SEASON_WEEKS, utc_now_iso

logger = logging.getLogger("cadence.stats_import")

MAPPING_PAGE_SIZE = 1000


class ImporterConfigError(RuntimeError):
    pass


@dataclass
class WeekImportResult:
    week: int
    fetched: int = 0
    imported: int = 0
    skipped: int = 0
    errored: int = 0
    error: str | None = None


@dataclass
class ImportSummary:
    season: int
    weeks_requested: list[int]
    weeks_imported: int = 0
    weeks_skipped: int = 0
    imported: int = 0
    errored: int = 0
    skipped: int = 0
    week_results: list[WeekImportResult] = field(default_factory=list)

    def as_dict(self) -> dict:
        return asdict(self)


def build_external_id_mapping(engine: Engine, *, page_size: int = MAPPING_PAGE_SIZE) -> dict[str, int]:
    mapping: dict[str, int] = {}
    offset = 0
    with db_connection(engine) as connection:
        while True:
            page = fetch_external_id_page(connection, limit=page_size, offset=offset)
            for row in page:
                if row["sleeper_id"]:
                    mapping[str(row["sleeper_id"])] = int(row["id"])
            if len(page) < page_size:
                break
            offset += page_size
    return mapping


def weeks_for(week: int | None) -> list[int]:
    if week is not None:
        return [int(week)]
    return list(range(1, NFL_REGULAR_SEASON_WEEKS + 1))


class StatsImporter:
    def __init__(
        self,
        engine: Engine,
        sleeper: SleeperClient,
        *,
        week_delay_seconds: float = 0.1,
        season_type: str = "regular",
    ) -> None:
        self._engine = engine
        self._sleeper = sleeper
        self._week_delay_seconds = week_delay_seconds
        self._season_type = season_type

    def build_mapping(self) -> dict[str, int]:
        mapping = build_external_id_mapping(self._engine)
        logger.info("Built Sleeper id mappings for %s players", len(mapping))
        return mapping

    def store_rows(self, rows: list[dict]) -> int:
        with db_transaction(self._engine) as connection:
            return upsert_player_stats(connection, rows, now=utc_now_iso())

    async def run(self, season: int, week: int | None = None) -> ImportSummary:
        mapping = await asyncio.to_thread(self.build_mapping)
        if not mapping:
            raise ImporterConfigError(
                "No player mappings found. Sync the player directory before importing stats."
            )

        weeks = weeks_for(week)
        summary = ImportSummary(season=int(season), weeks_requested=weeks)

        for index, target_week in enumerate(weeks):
            result = await self.import_week(season, target_week, mapping)
            summary.week_results.append(result)
            summary.imported += result.imported
            summary.errored += result.errored
            summary.skipped += result.skipped
            if result.fetched and not result.errored:
                summary.weeks_imported += 1
            else:
                summary.weeks_skipped += 1

            if index < len(weeks) - 1 and self._week_delay_seconds > 0:
                await asyncio.sleep(self._week_delay_seconds)

        logger.info(
            "Stats import finished for %s: imported=%s errored=%s skipped=%s",
            season,
            summary.imported,
            summary.errored,
            summary.skipped,
        )
        return summary

    async def import_week(self, season: int, week: int, mapping: dict[str, int]) -> WeekImportResult:
        result = WeekImportResult(week=int(week))
        try:
            records = await self._sleeper.get_week_stats(season, week, self._season_type)
        except SleeperError as error:
            logger.warning("Skipping week %s: %s", week, error)
            result.error = str(error)
            return result

        result.fetched = len(records)
        if not records:
            logger.info("No stats available for week %s", week)
            return result

        rows = []
        for record in records:
            player_id = mapping.get(str(record.get("player_id")))
            if player_id is None:
                result.skipped += 1
                continue
            rows.append(
                transform_sleeper_stats(
                    record.get("stats"),
                    player_id=player_id,
                    season=season,
                    week=week,
                    season_type=self._season_type,
                )
            )

        try:
            result.imported = await asyncio.to_thread(self.store_rows, rows)
        except SQLAlchemyError as error:
            logger.error("Database error while importing week %s: %s", week, error)
            result.errored = len(rows)
            result.error = f"Database error: {error}"
            return result

        logger.info("Week %s: %s imported, %s skipped (not in database)", week, result.imported, result.skipped)
        return result
