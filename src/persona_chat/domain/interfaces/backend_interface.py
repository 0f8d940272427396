"""Completion backend interface definitions."""

from abc import ABC, abstractmethod

from ..models.completion_models import ChatCompletionRequest, ChatCompletionResponse


class ICompletionBackend(ABC):
    """Interface for services that turn a chat-completions request into a reply."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short backend name used in logs."""
        pass

    @abstractmethod
    async def complete(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        """
        Execute a chat-completions request.

        Args:
            request: OpenAI-compatible request body

        Returns:
            OpenAI-compatible response

        Raises:
            CompletionBackendError: If the backend or transport fails
            ModelNotFoundError: If the backend does not serve the requested model
        """
        pass

    async def close(self) -> None:
        """Release any open connections."""
        return None
