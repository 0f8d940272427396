"""Models for conversations, messages and follow-up suggestions."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Annotated, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .agent_models import MessageRole


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid4().hex}"


class TextPart(BaseModel):
    """Text segment of a multipart message."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class ImageURL(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str


class ImagePart(BaseModel):
    """Image reference of a multipart message."""

    model_config = ConfigDict(frozen=True)

    type: Literal["image_url"] = "image_url"
    image_url: ImageURL


MessageContent = Annotated[TextPart | ImagePart, Field(discriminator="type")]
MessageBody = str | list[MessageContent]


def content_text(content: MessageBody) -> str:
    """Plain text of a message body; image parts contribute nothing."""
    if isinstance(content, str):
        return content
    return " ".join(part.text for part in content if isinstance(part, TextPart))


def content_images(content: MessageBody) -> list[str]:
    """Image URLs in order of appearance."""
    if isinstance(content, str):
        return []
    return [part.image_url.url for part in content if isinstance(part, ImagePart)]


class Message(BaseModel):
    """Immutable chat message."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    id: str = Field(default_factory=lambda: _new_id("msg"))
    role: MessageRole
    content: MessageBody
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @model_validator(mode="after")
    def only_user_messages_carry_parts(self) -> "Message":
        if self.role != MessageRole.USER.value and not isinstance(self.content, str):
            raise ValueError("only user messages may carry multipart content")
        return self

    @property
    def text(self) -> str:
        return content_text(self.content)

    @property
    def has_image(self) -> bool:
        return bool(content_images(self.content))

    def to_payload(self) -> dict:
        """Shape expected by an OpenAI-compatible chat-completions request."""
        if isinstance(self.content, str):
            return {"role": self.role, "content": self.content}
        return {"role": self.role, "content": [part.model_dump() for part in self.content]}


class Conversation(BaseModel):
    """Ordered message history with one agent."""

    id: str = Field(default_factory=lambda: _new_id("conv"))
    agent_id: str
    messages: list[Message] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def add_message(self, message: Message) -> None:
        """Append a message; history is never reordered."""
        self.messages.append(message)
        self.updated_at = datetime.now(UTC)

    def get_messages(self, limit: int | None = None) -> list[Message]:
        """Get messages from the conversation."""
        if limit is None:
            return self.messages.copy()
        return self.messages[-limit:] if limit > 0 else []

    @property
    def message_count(self) -> int:
        return len(self.messages)


@dataclass(frozen=True)
class FollowUpSuggestion:
    """Candidate next question offered after an assistant reply."""

    text: str
    conversation_id: str
    id: str = field(default_factory=lambda: _new_id("followup"))


class UserFeedback(BaseModel):
    """A rating left for an agent."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: _new_id("feedback"))
    agent_id: str
    conversation_id: str | None = None
    message_id: str | None = None
    rating: int = Field(ge=1, le=5)
    comment: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
