"""Free-text player lookup against ``nfl_players``.

Both the comparison tool and the chat context search go through here so there
is a single name heuristic: first/last prefix match, then a substring fallback,
then a stable sort that puts fantasy-relevant positions first.
"""

from __future__ import annotations

import re

from sqlalchemy.engine import Connection

from src.cadence.db.repositories.players_repository import (
    find_by_any_contains,
    find_by_last_name_contains,
    find_by_name_prefix,
)
from src.cadence.services.sleeper_mapping import FANTASY_POSITIONS

POSITION_RANK = {position: index for index, position in enumerate(FANTASY_POSITIONS)}
_NON_WORD = re.compile(r"[^\w\s]")

DEFAULT_MATCH_LIMIT = 50
CONTEXT_SEARCH_LIMIT = 5


def rank_by_position(players: list[dict]) -> list[dict]:
    other = len(POSITION_RANK)
    return sorted(players, key=lambda player: POSITION_RANK.get(str(player.get("position") or "").upper(), other))


def tokenize(value: str | None) -> list[str]:
    return [token for token in str(value or "").split() if token]


def clean_search_text(value: str | None) -> str:
    return _NON_WORD.sub("", str(value or "")).strip()


class PlayerMatcher:
    def __init__(self, connection: Connection, *, limit: int = DEFAULT_MATCH_LIMIT) -> None:
        self._connection = connection
        self._limit = limit

    def match(self, name: str | None) -> list[dict]:
        tokens = tokenize(name)
        if not tokens:
            return []

        rows: list[dict] = []
        if len(tokens) >= 2:
            rows = find_by_name_prefix(self._connection, first=tokens[0], last=tokens[-1], limit=self._limit)
        if not rows:
            rows = find_by_last_name_contains(self._connection, token=tokens[-1], limit=self._limit)
        return rank_by_position(rows)

    def best_match(self, name: str | None) -> dict | None:
        candidates = self.match(name)
        return candidates[0] if candidates else None

    def search_context(self, message: str | None, *, limit: int = CONTEXT_SEARCH_LIMIT) -> list[dict]:
        search_text = clean_search_text(message)
        words = tokenize(search_text)
        if not words:
            return []

        rows: list[dict] = []
        if len(words) >= 2:
            rows = find_by_name_prefix(self._connection, first=words[0], last=words[-1], limit=limit)
        if not rows:
            rows = find_by_any_contains(self._connection, name_token=words[0], team_token=search_text, limit=limit)
        return rank_by_position(rows)
