"""Request bodies and their mapping into dispatcher requests.

Bodies are parsed permissively and checked by one mapping function per
endpoint, so a missing field answers 400 with a field-specific message
instead of a generic schema error.
"""

from __future__ import annotations

import json
from typing import Any, TypeVar

import pydantic
from fastapi import Request
from pydantic import BaseModel, ConfigDict, Field
from starlette.datastructures import UploadFile

from src.api.errors import ValidationError
from src.core.dispatcher import ForwardRequest, MediaReference, OutboundRequest, TextPayload
from src.services.messaging.protocol import DEFAULT_MIMETYPE, MediaHints, MediaPayload
from src.services.presence import PresenceOptions

BodyT = TypeVar("BodyT", bound=BaseModel)


# =============================================================================
# Body Models
# =============================================================================


class ApiBody(BaseModel):
    """Common base: wire names are accepted as-is, unknown fields ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    chat_id: str | None = Field(default=None, alias="chatId")


class TypingFields(ApiBody):
    show_typing: bool | None = None
    typing_duration: int | None = None  # milliseconds


class SendMessageBody(TypingFields):
    message: str | None = None
    reply_to: str | None = None


class MediaFileBody(BaseModel):
    url: str | None = None
    mimetype: str | None = None
    filename: str | None = None


class SendMediaBody(TypingFields):
    file: MediaFileBody | None = None
    caption: str | None = None
    reply_to: str | None = None


class ForwardMessageBody(ApiBody):
    message_id: str | None = Field(default=None, alias="messageId")


# =============================================================================
# Body Readers
# =============================================================================


def is_multipart(request: Request) -> bool:
    return request.headers.get("content-type", "").startswith("multipart/form-data")


async def read_json_body(request: Request) -> dict[str, Any]:
    """Decode a JSON object body. An empty body is an empty object."""
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Request body is not valid JSON: {e.msg}") from e
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


async def read_media_form(
    request: Request, *, max_upload_bytes: int
) -> tuple[dict[str, Any], MediaPayload | None]:
    """Split a multipart body into scalar fields and the uploaded file."""
    form = await request.form()
    fields = {key: value for key, value in form.items() if isinstance(value, str) and value != ""}

    upload = form.get("file")
    if not isinstance(upload, UploadFile):
        return fields, None

    data = await upload.read()
    await upload.close()
    if len(data) > max_upload_bytes:
        raise ValidationError(f"file exceeds the {max_upload_bytes} byte upload limit")
    if not data:
        raise ValidationError("file is empty")

    media = MediaPayload(
        mimetype=upload.content_type or DEFAULT_MIMETYPE,
        data=data,
        filename=upload.filename,
    )
    return fields, media


def parse_body(model: type[BodyT], data: dict[str, Any]) -> BodyT:
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"]) or "body"
        raise ValidationError(f"{location}: {first['msg']}") from e


# =============================================================================
# Mapping Functions
# =============================================================================


def require_chat_id(body: ApiBody) -> str:
    if not body.chat_id:
        raise ValidationError("chatId is required")
    return body.chat_id


def presence_from(body: TypingFields, default_duration_ms: int) -> PresenceOptions | None:
    """Typing options, or None when the caller did not ask for typing."""
    if not body.show_typing:
        return None
    duration = default_duration_ms if body.typing_duration is None else body.typing_duration
    return PresenceOptions(show=True, duration_ms=duration)


def build_text_request(body: SendMessageBody, *, default_duration_ms: int) -> OutboundRequest:
    chat_id = require_chat_id(body)
    if not body.message:
        raise ValidationError("message is required")
    return OutboundRequest(
        target_chat=chat_id,
        payload=TextPayload(body.message),
        reply_to=body.reply_to or None,
        presence=presence_from(body, default_duration_ms),
    )


def build_media_request(
    body: SendMediaBody,
    upload: MediaPayload | None,
    *,
    default_duration_ms: int,
) -> OutboundRequest:
    """Map a URL reference or an uploaded file into one media request."""
    chat_id = require_chat_id(body)

    payload: MediaPayload | MediaReference
    if upload is not None:
        payload = upload
    elif body.file is not None and body.file.url:
        payload = MediaReference(
            url=body.file.url,
            hints=MediaHints(mimetype=body.file.mimetype, filename=body.file.filename),
        )
    else:
        raise ValidationError("file.url is required")

    return OutboundRequest(
        target_chat=chat_id,
        payload=payload,
        caption=body.caption or None,
        reply_to=body.reply_to or None,
        presence=presence_from(body, default_duration_ms),
    )


def build_forward_request(body: ForwardMessageBody) -> ForwardRequest:
    if not body.message_id:
        raise ValidationError("messageId is required")
    chat_id = require_chat_id(body)
    return ForwardRequest(source_message_id=body.message_id, target_chat=chat_id)
