"""Factory implementations."""

from .store_factory import create_ai_service, create_conversation_store

__all__ = [
    "create_ai_service",
    "create_conversation_store",
]
