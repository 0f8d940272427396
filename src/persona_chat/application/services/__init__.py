"""Application services."""

from .ai_service import AIService, parse_follow_up_questions
from .completion_client import IMAGE_MOCK_APOLOGY, ClientState, CompletionClient

__all__ = [
    "AIService",
    "ClientState",
    "CompletionClient",
    "IMAGE_MOCK_APOLOGY",
    "parse_follow_up_questions",
]
