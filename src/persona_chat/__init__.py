"""Persona Chat - persona agents over a resilient chat-completion client."""

from persona_chat.observability import setup_logging

from .config import settings

__all__ = ["setup_logging", "settings"]
