"""Typing indicator endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict, Field

from src.api.auth import RequireApiKey
from src.api.dependencies import ReadyDispatcher
from src.api.errors import raise_for_result
from src.api.requests import ApiBody, parse_body, read_json_body, require_chat_id

router = APIRouter(dependencies=[RequireApiKey])


class TypingResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    chat_id: str = Field(serialization_alias="chatId")


@router.post("/startTyping", response_model=TypingResponse)
async def start_typing(request: Request, dispatcher: ReadyDispatcher) -> TypingResponse:
    """Show "composing" in a chat until stopTyping (or the client times it out)."""
    chat_id = require_chat_id(parse_body(ApiBody, await read_json_body(request)))

    result = await dispatcher.start_typing(chat_id)
    raise_for_result(result, "start typing")

    return TypingResponse(message="Typing indicator started", chat_id=chat_id)


@router.post("/stopTyping", response_model=TypingResponse)
async def stop_typing(request: Request, dispatcher: ReadyDispatcher) -> TypingResponse:
    """Reset the presence in a chat to idle."""
    chat_id = require_chat_id(parse_body(ApiBody, await read_json_body(request)))

    result = await dispatcher.stop_typing(chat_id)
    raise_for_result(result, "stop typing")

    return TypingResponse(message="Typing indicator stopped", chat_id=chat_id)
