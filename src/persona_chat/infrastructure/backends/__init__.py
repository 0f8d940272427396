"""Completion backend implementations."""

from .mock_backend import MockCompletionBackend, compose_mock_reply
from .openai_backend import OpenAICompatibleBackend

__all__ = ["MockCompletionBackend", "OpenAICompatibleBackend", "compose_mock_reply"]
