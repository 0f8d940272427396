"""Application state container."""

from .app_state import AppState
from .conversation_store import ConversationStore

__all__ = [
    "AppState",
    "ConversationStore",
]
