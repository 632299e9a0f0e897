from __future__ import annotations

import asyncio
import http.client
import json
import logging
import time
import urllib.parse
import urllib.request
from dataclasses import dataclass, field

from src.cadence.config import Settings

logger = logging.getLogger("cadence.sleeper")


class SleeperError(RuntimeError):
    """The Sleeper API could not be reached or returned an unusable payload."""


@dataclass
class SleeperClient:
    base_url: str = "https://api.sleeper.com"
    timeout_seconds: int = 45
    max_concurrency: int = 4
    retry_attempts: int = 3
    _semaphore: asyncio.Semaphore | None = field(default=None, init=False, repr=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SleeperClient":
        return cls(
            base_url=settings.sleeper_base_url,
            timeout_seconds=settings.sleeper_timeout_seconds,
            max_concurrency=max(1, settings.sleeper_max_concurrency),
            retry_attempts=max(1, settings.sleeper_retry_attempts),
        )

    async def get_json(self, path: str, params: dict | None = None) -> dict | list:
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(max(1, self.max_concurrency))
        async with self._semaphore:
            return await asyncio.to_thread(self._request_with_retry, path, params)

    async def get_nfl_state(self) -> dict:
        payload = await self.get_json("/v1/state/nfl")
        if not isinstance(payload, dict):
            raise SleeperError("Unexpected NFL state payload from Sleeper")
        return payload

    async def get_players(self) -> dict[str, dict]:
        payload = await self.get_json("/v1/players/nfl")
        if not isinstance(payload, dict):
            raise SleeperError("Unexpected players payload from Sleeper")
        return payload

    async def get_week_stats(self, season: int, week: int, season_type: str = "regular") -> list[dict]:
        payload = await self.get_json(f"/stats/nfl/{int(season)}/{int(week)}", {"season_type": season_type})
        return normalize_stat_records(payload)

    async def get_projections(self, season: int, week: int) -> list[dict]:
        payload = await self.get_json(f"/v1/projections/nfl/regular/{int(season)}/{int(week)}")
        return normalize_stat_records(payload)

    def _request_with_retry(self, path: str, params: dict | None = None):
        url = f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"
        if params:
            url = f"{url}?{urllib.parse.urlencode(params)}"
        backoff = 0.35
        last_error: Exception | None = None

        for attempt in range(1, self.retry_attempts + 1):
            request = urllib.request.Request(url, headers={"User-Agent": "Cadence/1.0", "Accept": "application/json"})
            try:
                with urllib.request.urlopen(request, timeout=self.timeout_seconds) as response:
                    raw = response.read()
                return json.loads(raw.decode("utf-8"))
            except (http.client.HTTPException, OSError, json.JSONDecodeError, ValueError) as error:
                last_error = error
                logger.warning("Sleeper request failed (attempt %s/%s) %s: %s", attempt, self.retry_attempts, url, error)
                if attempt >= self.retry_attempts:
                    break
                time.sleep(backoff)
                backoff *= 2

        raise SleeperError(f"Sleeper request failed for {url}: {last_error}")


def normalize_stat_records(payload) -> list[dict]:
    """Accept both the array form and the object-keyed-by-player-id form."""
    if payload is None:
        return []
    if isinstance(payload, dict):
        return [
            {"player_id": str(player_id), "stats": stats}
            for player_id, stats in payload.items()
            if isinstance(stats, dict)
        ]
    if isinstance(payload, list):
        records = []
        for entry in payload:
            if not isinstance(entry, dict) or entry.get("player_id") is None:
                continue
            records.append(
                {
                    "player_id": str(entry["player_id"]),
                    "stats": entry.get("stats") if isinstance(entry.get("stats"), dict) else {},
                    "player": entry.get("player") if isinstance(entry.get("player"), dict) else {},
                }
            )
        return records
    raise SleeperError(f"Unexpected stats payload type: {type(payload).__name__}")
