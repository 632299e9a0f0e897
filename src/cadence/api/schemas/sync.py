from __future__ import annotations

from pydantic import BaseModel


class PlayerSyncResponse(BaseModel):
    success: bool
    message: str
    total_sleeper: int
    mapped: int
    synced: int
    failed: int
    first_error: str | None = None


class UpdateStatsResponse(BaseModel):
    success: bool
    message: str
    season: int
    week: int
    imported: int
    skipped: int = 0
