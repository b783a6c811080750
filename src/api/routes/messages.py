"""Message endpoints: send text, send media, forward.

Mounted twice, at the root and under /api, so both path styles work.

Each handler follows the same skeleton:
auth -> readiness -> validation -> (typing) -> dispatch -> response
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from src.api.auth import RequireApiKey
from src.api.dependencies import ReadyDispatcher, get_app_settings
from src.api.errors import raise_for_result
from src.api.requests import (
    ForwardMessageBody,
    SendMediaBody,
    SendMessageBody,
    build_forward_request,
    build_media_request,
    build_text_request,
    is_multipart,
    parse_body,
    read_json_body,
    read_media_form,
)
from src.config import Settings

router = APIRouter(dependencies=[RequireApiKey])


class SendResponse(BaseModel):
    """Handle of a freshly sent message."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message_id: str = Field(serialization_alias="messageId")
    timestamp: int


class ForwardResponse(BaseModel):
    """Forwarding yields no new message id, so the originals are echoed."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    original_message_id: str = Field(serialization_alias="originalMessageId")
    target_chat_id: str = Field(serialization_alias="targetChatId")
    timestamp: int
    message_type: str = Field(serialization_alias="messageType")


@router.post("/sendMessage", response_model=SendResponse)
async def send_message(
    request: Request,
    dispatcher: ReadyDispatcher,
    settings: Settings = Depends(get_app_settings),  # noqa: B008
) -> SendResponse:
    """Send a text message, optionally as a reply and with a typing indicator.

    Body: chatId, message, reply_to?, show_typing?, typing_duration?
    """
    body = parse_body(SendMessageBody, await read_json_body(request))
    outbound = build_text_request(body, default_duration_ms=settings.default_typing_duration_ms)

    result = await dispatcher.send(outbound)
    raise_for_result(result, "send message")

    return SendResponse(message_id=result.message_id, timestamp=result.timestamp)


@router.post("/sendMedia", response_model=SendResponse)
async def send_media(
    request: Request,
    dispatcher: ReadyDispatcher,
    settings: Settings = Depends(get_app_settings),  # noqa: B008
) -> SendResponse:
    """Send media from a URL (JSON body) or an uploaded file (multipart).

    JSON body: chatId, file: {url, mimetype?, filename?}, caption?, reply_to?,
    show_typing?, typing_duration?

    Multipart: the same scalar fields plus a ``file`` part.
    """
    upload = None
    if is_multipart(request):
        data, upload = await read_media_form(request, max_upload_bytes=settings.max_upload_bytes)
    else:
        data = await read_json_body(request)

    body = parse_body(SendMediaBody, data)
    outbound = build_media_request(
        body, upload, default_duration_ms=settings.default_typing_duration_ms
    )

    result = await dispatcher.send(outbound)
    raise_for_result(result, "send media")

    return SendResponse(message_id=result.message_id, timestamp=result.timestamp)


@router.post("/forwardMessage", response_model=ForwardResponse)
async def forward_message(request: Request, dispatcher: ReadyDispatcher) -> ForwardResponse:
    """Forward an existing message to another chat.

    Body: messageId, chatId
    """
    body = parse_body(ForwardMessageBody, await read_json_body(request))
    forward = build_forward_request(body)

    result = await dispatcher.forward(forward)
    raise_for_result(result, "forward message")

    return ForwardResponse(
        original_message_id=forward.source_message_id,
        target_chat_id=forward.target_chat,
        timestamp=result.timestamp,
        message_type=result.message_type,
    )
