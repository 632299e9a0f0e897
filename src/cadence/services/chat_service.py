from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import Any, AsyncIterator

from anthropic import AsyncAnthropic
from sqlalchemy.engine import Engine

from src.cadence.config import Settings
from src.cadence.db.session import db_connection
from src.cadence.services.comparison import compare_players
from src.cadence.services.player_matcher import PlayerMatcher
from src.cadence.services.sleeper_mapping import SCORING_TYPES

logger = logging.getLogger("cadence.chat")

MODEL_ROLES = {"user", "assistant"}

COMPARE_PLAYERS_TOOL = {
    "name": "compare_players",
    "description": (
        "Compare two NFL players for fantasy football. Use this when users ask about which player to start, "
        "trade, or draft between two specific players."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "player1": {"type": "string", "description": 'First player name (e.g., "Patrick Mahomes")'},
            "player2": {"type": "string", "description": 'Second player name (e.g., "Josh Allen")'},
            "scoringType": {
                "type": "string",
                "enum": list(SCORING_TYPES),
                "description": "Fantasy scoring format",
            },
            "weeks": {"type": "integer", "description": "Number of recent weeks to analyze (typically 5)"},
        },
        "required": ["player1", "player2", "scoringType", "weeks"],
    },
}

SYSTEM_PROMPT = """You are Cadence, an expert fantasy football AI assistant.
You help users make drafting and roster decisions.
Always be concise, confident, and data-driven.

You have access to analysis tools:
- **compare_players**: Use this when users ask about comparing two specific players (e.g., "Should I start Mahomes or Allen?", "Who's better: Jefferson or Hill?")

When a user asks a question that requires player comparison, use the compare_players tool to get detailed stats and analysis.

Context from database:
"""


def get_anthropic_client(api_key: str | None) -> AsyncAnthropic | None:
    if not api_key:
        return None
    return AsyncAnthropic(api_key=api_key)


def message_text(message: dict[str, Any]) -> str:
    parts = message.get("parts")
    if isinstance(parts, list):
        return "".join(
            str(part.get("text") or "") for part in parts if isinstance(part, dict) and part.get("type") == "text"
        )
    content = message.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            str(block.get("text") or "")
            for block in content
            if isinstance(block, dict) and block.get("type") == "text"
        )
    return ""


def normalize_messages(messages: list[dict[str, Any]]) -> list[dict[str, str]]:
    return [{"role": str(message.get("role") or ""), "content": message_text(message)} for message in messages]


def model_messages(messages: list[dict[str, str]]) -> list[dict[str, str]]:
    return [message for message in messages if message["role"] in MODEL_ROLES and message["content"].strip()]


def last_user_text(messages: list[dict[str, str]]) -> str:
    for message in reversed(messages):
        if message["role"] == "user":
            return message["content"]
    return ""


def build_system_prompt(players: list[dict]) -> str:
    prompt = SYSTEM_PROMPT
    if players:
        prompt += f"Found the following players matching the query:\n{json.dumps(players, indent=2, default=str)}\n\n"
        prompt += (
            "Use this data to answer the user's question. If the data answers it, cite the specific details "
            '(e.g. "Justin Jefferson is a WR for MIN...").'
        )
    else:
        prompt += (
            "No specific player data found in the database for this query. Answer based on your general NFL "
            "knowledge, but mention you couldn't find specific database records."
        )
    return prompt


def fallback_text(players: list[dict]) -> str:
    if players:
        listing = "\n".join(
            f"- {player['first_name']} {player['last_name']} ({player.get('position')} - {player.get('nfl_team') or 'FA'})"
            for player in players
        )
    else:
        listing = "None"
    return (
        "[System]: The language model API key is missing. \n\n"
        f"I found these players in your database:\n{listing}\n\n"
        "Please add ANTHROPIC_API_KEY to .env.local to enable full AI chat."
    )


def sse(event: dict[str, Any] | str) -> str:
    payload = event if isinstance(event, str) else json.dumps(event, default=str)
    return f"data: {payload}\n\n"


class ChatService:
    def __init__(
        self,
        engine: Engine,
        *,
        client: AsyncAnthropic | None,
        model: str,
        max_tokens: int = 1024,
        max_tool_rounds: int = 3,
        season: int | None = None,
    ) -> None:
        self._engine = engine
        self._client = client
        self._model = model
        self._max_tokens = max_tokens
        self._max_tool_rounds = max(1, max_tool_rounds)
        self._season = season

    @classmethod
    def from_settings(cls, engine: Engine, settings: Settings) -> "ChatService":
        return cls(
            engine,
            client=get_anthropic_client(settings.anthropic_api_key),
            model=settings.chat_model,
            max_tokens=settings.chat_max_tokens,
            max_tool_rounds=settings.chat_max_tool_rounds,
        )

    @property
    def has_model(self) -> bool:
        return self._client is not None

    def find_context_players(self, messages: list[dict[str, str]]) -> list[dict]:
        text = last_user_text(messages)
        with db_connection(self._engine) as connection:
            players = PlayerMatcher(connection).search_context(text)
        logger.info("Chat context search found %s players", len(players))
        return players

    def run_tool(self, name: str, arguments: dict[str, Any]) -> dict:
        if name != COMPARE_PLAYERS_TOOL["name"]:
            return {"error": f"Unknown tool: {name}"}
        with db_connection(self._engine) as connection:
            return compare_players(
                connection,
                str(arguments.get("player1") or ""),
                str(arguments.get("player2") or ""),
                scoring_type=str(arguments.get("scoringType") or "ppr"),
                weeks=arguments.get("weeks", 5),
                season=self._season,
            )

    async def stream_events(self, messages: list[dict[str, str]], players: list[dict]) -> AsyncIterator[str]:
        if self._client is None:
            raise RuntimeError("Chat model client is not configured")

        conversation: list[dict[str, Any]] = list(model_messages(messages))
        system = build_system_prompt(players)
        message_id = uuid.uuid4().hex
        yield sse({"type": "start", "messageId": message_id})

        try:
            for _ in range(self._max_tool_rounds):
                async with self._client.messages.stream(
                    model=self._model,
                    max_tokens=self._max_tokens,
                    system=system,
                    messages=conversation,
                    tools=[COMPARE_PLAYERS_TOOL],
                ) as stream:
                    async for delta in stream.text_stream:
                        yield sse({"type": "text-delta", "id": message_id, "delta": delta})
                    final = await stream.get_final_message()

                tool_calls = [block for block in final.content if getattr(block, "type", None) == "tool_use"]
                if final.stop_reason != "tool_use" or not tool_calls:
                    break

                conversation.append({"role": "assistant", "content": final.content})
                tool_results = []
                for call in tool_calls:
                    yield sse(
                        {
                            "type": "tool-input-available",
                            "toolCallId": call.id,
                            "toolName": call.name,
                            "input": call.input,
                        }
                    )
                    output = await asyncio.to_thread(self.run_tool, call.name, dict(call.input or {}))
                    yield sse({"type": "tool-output-available", "toolCallId": call.id, "output": output})
                    tool_results.append(
                        {
                            "type": "tool_result",
                            "tool_use_id": call.id,
                            "content": json.dumps(output, default=str),
                            "is_error": "error" in output,
                        }
                    )
                conversation.append({"role": "user", "content": tool_results})
        except Exception as error:  # noqa: BLE001
            logger.exception("Chat stream failed")
            yield sse({"type": "error", "errorText": str(error)})

        yield sse({"type": "finish"})
        yield sse("[DONE]")
