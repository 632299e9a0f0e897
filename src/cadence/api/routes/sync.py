from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from src.cadence.api.schemas.sync import PlayerSyncResponse
from src.cadence.services.sleeper_client import SleeperError

logger = logging.getLogger("cadence.api")

router = APIRouter(tags=["sync"])


@router.post("/sync/players", response_model=PlayerSyncResponse)
async def sync_players(request: Request):
    services = request.app.state.services
    try:
        summary = await services.player_directory.sync()
    except SleeperError as error:
        logger.exception("Player sync failed")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Failed to sync players", "details": str(error)},
        )

    return PlayerSyncResponse(
        success=summary.success,
        message=summary.message,
        total_sleeper=summary.total_fetched,
        mapped=summary.mapped,
        synced=summary.synced,
        failed=summary.failed,
        first_error=summary.first_error,
    )
