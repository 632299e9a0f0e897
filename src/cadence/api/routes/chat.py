from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse, StreamingResponse

from src.cadence.api.schemas.chat import ChatRequest
from src.cadence.api.schemas.common import ApiError
from src.cadence.services.chat_service import fallback_text, normalize_messages

logger = logging.getLogger("cadence.api")

router = APIRouter(tags=["chat"])


@router.post("/chat", responses={500: {"model": ApiError}})
async def post_chat(request: Request, body: ChatRequest):
    chat = request.app.state.services.chat
    messages = normalize_messages([message.model_dump(exclude_none=True) for message in body.messages])
    players = await asyncio.to_thread(chat.find_context_players, messages)

    if not chat.has_model:
        logger.warning("Chat model key missing; returning plain-text fallback")
        return PlainTextResponse(fallback_text(players))

    return StreamingResponse(
        chat.stream_events(messages, players),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
