from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ChatMessagePart(BaseModel):
    type: str
    text: str | None = None


class ChatMessage(BaseModel):
    role: str
    content: str | list[dict[str, Any]] | None = None
    parts: list[ChatMessagePart] | None = None


class ChatRequest(BaseModel):
    messages: list[ChatMessage] = Field(min_length=1)
