from __future__ import annotations

import asyncio
import hmac
import logging

from fastapi import APIRouter, Header, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from src.cadence.api.schemas.sync import UpdateStatsResponse
from src.cadence.config import ConfigError
from src.cadence.services.sleeper_client import SleeperError
from src.cadence.timeutils import utc_now_iso

logger = logging.getLogger("cadence.api")

router = APIRouter(tags=["cron"])


def provided_secret(authorization: str | None, secret: str | None) -> str | None:
    if authorization:
        return authorization.replace("Bearer ", "", 1).strip()
    return secret


@router.get("/cron/update-stats", response_model=UpdateStatsResponse)
async def update_stats(
    request: Request,
    secret: str | None = None,
    authorization: str | None = Header(default=None),
):
    services = request.app.state.services
    try:
        expected = services.settings.require_cron_secret()
    except ConfigError as error:
        logger.error("Cron request rejected: %s", error)
        return JSONResponse(status_code=500, content={"error": str(error)})

    supplied = provided_secret(authorization, secret)
    if not supplied or not hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8")):
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    try:
        state = await services.sleeper.get_nfl_state()
        season = int(state["season"])
        week = int(state["week"])
        logger.info("Starting weekly stats update: season=%s week=%s", season, week)

        importer = services.stats_importer
        mapping = await asyncio.to_thread(importer.build_mapping)
        result = await importer.import_week(season, week, mapping)
        if result.error:
            raise RuntimeError(result.error)
    except (SleeperError, SQLAlchemyError, RuntimeError, KeyError, TypeError, ValueError) as error:
        logger.exception("Stats update failed")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(error), "timestamp": utc_now_iso()},
        )

    if not result.fetched:
        return UpdateStatsResponse(
            success=True,
            message=f"No stats available for Week {week} yet",
            season=season,
            week=week,
            imported=0,
            skipped=0,
        )

    return UpdateStatsResponse(
        success=True,
        message=f"Successfully imported Week {week} stats",
        season=season,
        week=week,
        imported=result.imported,
        skipped=result.skipped,
    )
