from typing import Any

from pydantic import BaseModel

from persona_chat.domain.models import MessageBody


class SendMessageRequest(BaseModel):
    content: MessageBody


class ImageMessageRequest(BaseModel):
    text: str = ""
    image_url: str


class ApiKeyRequest(BaseModel):
    api_key: str


class FeedbackRequest(BaseModel):
    rating: int
    comment: str | None = None
    message_id: str | None = None


class TurnResponse(BaseModel):
    """Outcome of a send: the resulting history plus the store flags."""

    conversation_id: str | None
    messages: list[dict[str, Any]]
    error: str | None = None
    is_loading: bool = False
    using_mock_api: bool = False
