"""Wire models for OpenAI-compatible chat completions."""

from time import time
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field

from .conversation_models import MessageBody, content_images, content_text


class ChatMessage(BaseModel):
    """One entry of the ``messages`` array."""

    role: str
    content: MessageBody

    @property
    def text(self) -> str:
        return content_text(self.content)

    @property
    def has_image(self) -> bool:
        return bool(content_images(self.content))


class ChatCompletionRequest(BaseModel):
    """Body of a chat-completions call."""

    model: str | None = None
    messages: list[ChatMessage]
    temperature: float | None = None
    max_tokens: int | None = None
    top_p: float | None = None

    @property
    def system_prompt(self) -> str:
        for message in self.messages:
            if message.role == "system":
                return message.text
        return ""

    @property
    def last_user_message(self) -> ChatMessage | None:
        for message in reversed(self.messages):
            if message.role == "user":
                return message
        return None


class CompletionMessage(BaseModel):
    role: str = "assistant"
    content: str | None = None


class CompletionChoice(BaseModel):
    index: int = 0
    message: CompletionMessage
    finish_reason: str | None = "stop"


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatCompletionResponse(BaseModel):
    """OpenAI-compatible completion response."""

    id: str = Field(default_factory=lambda: f"chatcmpl-{uuid4().hex}")
    object: str = "chat.completion"
    created: int = Field(default_factory=lambda: int(time()))
    model: str | None = None
    choices: list[CompletionChoice] = Field(default_factory=list)
    usage: Usage | None = None
    error: str | None = None
    details: Any = None

    @property
    def content(self) -> str:
        """Text of the first choice, empty when the backend returned nothing."""
        if not self.choices:
            return ""
        return self.choices[0].message.content or ""
