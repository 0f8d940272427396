"""Pytest configuration and fixtures for the Persona Chat tests."""

from unittest.mock import AsyncMock

import pytest

from persona_chat.application.services import AIService, CompletionClient
from persona_chat.application.store import ConversationStore
from persona_chat.domain.agent_catalog import get_default_agents
from persona_chat.domain.interfaces import ICompletionBackend
from persona_chat.domain.models import (
    Agent,
    ChatCompletionResponse,
    CompletionChoice,
    CompletionMessage,
    ModelConfig,
    Tool,
)
from persona_chat.infrastructure.backends import MockCompletionBackend


def make_completion(content: str, model: str = "test-model") -> ChatCompletionResponse:
    """Build a one-choice completion response."""
    return ChatCompletionResponse(
        model=model,
        choices=[CompletionChoice(message=CompletionMessage(content=content))],
    )


@pytest.fixture
def completion_response():
    """Factory for completion responses."""
    return make_completion


@pytest.fixture
def sample_agent():
    """Create a sample agent for testing."""
    return Agent(
        id="test-agent",
        name="Test Agent",
        role="Tester",
        tagline="Tests everything.",
        description="Answers questions for tests.",
        tv_reference="Nobody (Unit Tests)",
        model_settings=ModelConfig(model="test-model", temperature=0.5),
        tools=[
            Tool(id="search", name="Search", description="Searches things"),
            Tool(id="disabled", name="Disabled Tool", description="Never shown", enabled=False),
        ],
        knowledge_sources=["Test fixtures"],
        web_access=True,
    )


@pytest.fixture
def real_backend():
    """A stand-in for the OpenAI-compatible backend."""
    backend = AsyncMock(spec=ICompletionBackend)
    backend.complete.return_value = make_completion("Real reply")
    return backend


@pytest.fixture
def mock_backend():
    """Mock backend without artificial latency."""
    return MockCompletionBackend(min_delay=0.0, max_delay=0.0)


@pytest.fixture
def completion_client(real_backend, mock_backend):
    """Client holding a credential, wired to the fake real backend."""
    return CompletionClient(
        backend_factory=lambda api_key: real_backend,
        mock_backend=mock_backend,
        api_key="test-key",
        request_timeout=5.0,
    )


@pytest.fixture
def unconfigured_client(real_backend, mock_backend):
    """Client without a credential."""
    return CompletionClient(
        backend_factory=lambda api_key: real_backend,
        mock_backend=mock_backend,
        request_timeout=5.0,
    )


@pytest.fixture
def ai_service(unconfigured_client):
    """Orchestration service over the credential-less client."""
    return AIService(unconfigured_client)


@pytest.fixture
def store(ai_service):
    """Conversation store with the default agents and no credential."""
    return ConversationStore(ai_service, agents=get_default_agents(), orchestration_timeout=5.0)


@pytest.fixture
def configured_store(completion_client):
    """Conversation store whose client talks to the fake real backend."""
    return ConversationStore(AIService(completion_client), agents=get_default_agents(), orchestration_timeout=5.0)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on test names."""
    for item in items:
        if "integration" in item.name.lower() or "end_to_end" in item.name.lower():
            item.add_marker(pytest.mark.integration)
        if "timeout" in item.name.lower():
            item.add_marker(pytest.mark.slow)
