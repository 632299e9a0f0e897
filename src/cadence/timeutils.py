from __future__ import annotations

import datetime as dt

NFL_REGULAR_SEASON_WEEKS = 18


def utc_now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def current_nfl_season(now: dt.datetime | None = None) -> int:
    now = now or dt.datetime.now(dt.timezone.utc)
    return now.year if now.month >= 8 else now.year - 1
