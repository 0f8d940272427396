"""Wiring of client, orchestration service and store from settings."""

import logging

from persona_chat.application.services import AIService, CompletionClient
from persona_chat.application.store import ConversationStore
from persona_chat.config import Settings
from persona_chat.config import settings as default_settings
from persona_chat.domain.agent_catalog import get_default_agents

logger = logging.getLogger(__name__)


def create_ai_service(settings: Settings | None = None, api_key: str | None = None) -> AIService:
    """Build an orchestration service over a completion client configured from settings."""
    settings = settings or default_settings
    client = CompletionClient.from_settings(settings, api_key=api_key)
    return AIService(client, moderation_enabled=settings.moderation.enabled)


def create_conversation_store(settings: Settings | None = None, api_key: str | None = None) -> ConversationStore:
    """
    Create a store with the default agent catalog.

    Args:
        settings: Settings holder, the global one when omitted
        api_key: Credential overriding the configured one

    Returns:
        A new, independent store
    """
    settings = settings or default_settings
    ai_service = create_ai_service(settings, api_key=api_key)
    store = ConversationStore(
        ai_service,
        agents=get_default_agents(),
        orchestration_timeout=settings.resilience.orchestration_timeout,
    )
    mode = "real backend" if ai_service.completion_client.is_configured() else "mock backend"
    logger.info(f"Conversation store created ({len(store.state.agents)} agents, {mode})")
    return store
