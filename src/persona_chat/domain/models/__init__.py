"""Domain models."""

from .agent_models import Agent, Capability, MessageRole, ModelConfig, Tool
from .completion_models import (
    ChatCompletionRequest,
    ChatCompletionResponse,
    ChatMessage,
    CompletionChoice,
    CompletionMessage,
    Usage,
)
from .conversation_models import (
    Conversation,
    FollowUpSuggestion,
    ImagePart,
    ImageURL,
    Message,
    MessageBody,
    MessageContent,
    TextPart,
    UserFeedback,
    content_images,
    content_text,
)

__all__ = [
    "Agent",
    "Capability",
    "ChatCompletionRequest",
    "ChatCompletionResponse",
    "ChatMessage",
    "CompletionChoice",
    "CompletionMessage",
    "Conversation",
    "FollowUpSuggestion",
    "ImagePart",
    "ImageURL",
    "Message",
    "MessageBody",
    "MessageContent",
    "MessageRole",
    "ModelConfig",
    "TextPart",
    "Tool",
    "Usage",
    "UserFeedback",
    "content_images",
    "content_text",
]
