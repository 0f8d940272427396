"""Domain exceptions and error handling."""

import time
from typing import Any


class PersonaChatError(Exception):
    """Base exception for all persona chat errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
        is_retryable: bool = False,
        retry_after: float | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.is_retryable = is_retryable
        self.retry_after = retry_after
        self.timestamp = time.time()

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
            "is_retryable": self.is_retryable,
            "retry_after": self.retry_after,
            "timestamp": self.timestamp,
        }


class ConfigurationError(PersonaChatError):
    """Raised when there's a configuration issue, e.g. a missing credential."""

    pass


class AgentError(PersonaChatError):
    """Base exception for agent-related errors."""

    pass


class AgentNotFoundError(AgentError):
    """Raised when an agent is not found in the registry."""

    def __init__(self, message: str, agent_id: str | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.agent_id = agent_id
        if agent_id:
            self.details["agent_id"] = agent_id


class CompletionBackendError(PersonaChatError):
    """Raised when the completion backend or the transport to it fails."""

    def __init__(self, message: str, status_code: int | None = None, model: str | None = None, **kwargs):
        kwargs.setdefault("is_retryable", True)
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.model = model
        if status_code is not None:
            self.details["status_code"] = status_code
        if model:
            self.details["model"] = model


class ModelNotFoundError(CompletionBackendError):
    """Raised when the backend does not know the requested model."""

    pass


class CompletionTimeoutError(CompletionBackendError):
    """Raised when a completion call exceeds its timeout."""

    def __init__(self, message: str, timeout_duration: float | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.timeout_duration = timeout_duration
        if timeout_duration:
            self.details["timeout_duration"] = timeout_duration


class ModerationRejectedError(PersonaChatError):
    """Raised when content is blocked by moderation."""

    pass


class OrchestrationError(PersonaChatError):
    """Raised when a chat turn cannot be produced."""

    def __init__(self, message: str, agent_id: str | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.agent_id = agent_id
        if agent_id:
            self.details["agent_id"] = agent_id


class FollowUpGenerationError(PersonaChatError):
    """Raised when follow-up suggestions cannot be generated."""

    pass


class ConversationError(PersonaChatError):
    """Base exception for conversation state errors."""

    pass


class NoActiveConversationError(ConversationError):
    """Raised when an action needs an active conversation and agent."""

    pass


class ValidationError(PersonaChatError):
    """Raised when validation fails."""

    pass


class ImageValidationError(ValidationError):
    """Raised when an image attachment is too large or not an image."""

    def __init__(self, message: str, mime_type: str | None = None, size_bytes: int | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.mime_type = mime_type
        self.size_bytes = size_bytes
        if mime_type:
            self.details["mime_type"] = mime_type
        if size_bytes is not None:
            self.details["size_bytes"] = size_bytes
