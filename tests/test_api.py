"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from persona_chat.domain.exceptions import CompletionBackendError
from persona_chat.infrastructure.api.main import app, get_mock_backend, get_store


@pytest.fixture
def api_store(store):
    """The store served by the API; credential-less unless a test swaps it."""
    return store


@pytest.fixture
def client(api_store, mock_backend, monkeypatch):
    """Create a test client with the store and mock backend injected."""
    monkeypatch.setattr("persona_chat.infrastructure.api.main.setup_logging", lambda *args, **kwargs: None)
    app.dependency_overrides[get_store] = lambda: api_store
    app.dependency_overrides[get_mock_backend] = lambda: mock_backend
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


class TestInfoEndpoints:
    """Test cases for root and health endpoints."""

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["message"] == "Welcome to Persona Chat API"

    def test_health(self, client):
        """Test the health endpoint reports status, agents and mock mode."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] in ["healthy", "degraded"]
        assert data["agent_count"] == 5
        assert data["api_key_configured"] is False
        assert data["using_mock_api"] is False
        assert "timestamp" in data
        assert "version" in data
        assert "system_status" in data
        assert "response_metrics" in data

    def test_process_time_header(self, client):
        response = client.get("/agents")

        assert "X-Process-Time" in response.headers


class TestAgentEndpoints:
    """Test cases for agent routes."""

    def test_list_agents(self, client):
        response = client.get("/agents")

        assert response.status_code == 200
        assert [agent["id"] for agent in response.json()][-1] == "q"

    def test_select_agent(self, client):
        response = client.post("/agents/q/select")

        assert response.status_code == 200
        assert response.json()["agent_id"] == "q"
        assert response.json()["messages"] == []

    def test_select_unknown_agent(self, client):
        response = client.post("/agents/nobody/select")

        assert response.status_code == 404
        assert response.json()["error"] == "Agent Not Found"

    def test_update_agent(self, client):
        response = client.patch("/agents/q", json={"model_settings": {"temperature": 0.3}})

        assert response.status_code == 200
        assert response.json()["model_settings"]["temperature"] == 0.3

    def test_update_agent_invalid(self, client):
        response = client.patch("/agents/q", json={"model_settings": {"temperature": 4}})

        assert response.status_code == 400
        assert response.json()["error"] == "Validation Error"

    def test_update_unknown_agent(self, client):
        response = client.patch("/agents/nobody", json={"tagline": "x"})

        assert response.status_code == 404


class TestConversationEndpoints:
    """Test cases for conversation routes."""

    def test_send_without_selection(self, client):
        """Test sending with no agent selected is a conflict."""
        response = client.post("/conversation/messages", json={"content": "Hello"})

        assert response.status_code == 409

    def test_send_message_without_credential(self, client):
        """Test a send without a key returns a mock reply."""
        client.post("/agents/q/select")

        response = client.post("/conversation/messages", json={"content": "Optimize this prompt"})

        assert response.status_code == 200
        data = response.json()
        assert [m["role"] for m in data["messages"]] == ["user", "assistant"]
        assert "mock mode" in data["messages"][1]["content"].lower()
        assert data["using_mock_api"] is True
        assert data["error"] is None
        assert data["is_loading"] is False

    def test_send_flagged_message(self, client):
        client.post("/agents/q/select")

        response = client.post("/conversation/messages", json={"content": "something explicit"})

        data = response.json()
        assert data["messages"] == []
        assert data["error"] == "Content flagged as inappropriate"

    def test_send_image_message(self, client):
        """Test an image turn in mock mode records the apology."""
        client.post("/agents/jarvis/select")

        response = client.post(
            "/conversation/image-messages",
            json={"text": "What is this?", "image_url": "data:image/png;base64,AAAA"},
        )

        data = response.json()
        assert len(data["messages"]) == 2
        assert data["messages"][0]["content"][1]["type"] == "image_url"
        assert "can't analyze images" in data["messages"][1]["content"]

    def test_follow_ups(self, client):
        client.post("/agents/q/select")
        client.post("/conversation/messages", json={"content": "Hello"})

        response = client.post("/conversation/follow-ups")

        assert response.status_code == 200
        assert isinstance(response.json(), list)

    def test_clear_conversation(self, client):
        client.post("/agents/q/select")

        response = client.delete("/conversation")

        assert response.status_code == 200
        assert response.json()["current_conversation_id"] is None

    def test_state(self, client):
        client.post("/agents/q/select")

        data = client.get("/state").json()

        assert data["selected_agent"]["id"] == "q"
        assert len(data["conversations"]) == 1
        assert data["is_loading"] is False

    def test_clear_error(self, client):
        client.post("/agents/nobody/select")

        client.delete("/error")

        assert client.get("/state").json()["error"] is None


class TestSettingsAndFeedback:
    """Test cases for credentials and feedback."""

    def test_set_api_key(self, client):
        response = client.post("/settings/api-key", json={"api_key": "secret"})

        assert response.json() == {"api_key_configured": True, "using_mock_api": False}

    def test_feedback(self, client):
        client.post("/agents/q/select")

        response = client.post("/feedback", json={"rating": 5, "comment": "Great"})

        assert response.status_code == 200
        assert response.json()["agent_id"] == "q"

    def test_feedback_invalid_rating(self, client):
        client.post("/agents/q/select")

        response = client.post("/feedback", json={"rating": 9})

        assert response.status_code == 400

    def test_feedback_without_agent(self, client):
        response = client.post("/feedback", json={"rating": 3})

        assert response.status_code == 409


class TestCompletionProxy:
    """Test cases for /api/chat and /api/mock-chat."""

    BODY = {"messages": [{"role": "system", "content": "You are Jarvis."}, {"role": "user", "content": "Hi"}]}

    def test_proxy_without_credential(self, client):
        response = client.post("/api/chat", json=self.BODY)

        assert response.status_code == 500
        assert response.json() == {"error": "API key not configured"}

    def test_mock_chat(self, client):
        response = client.post("/api/mock-chat", json=self.BODY)

        assert response.status_code == 200
        data = response.json()
        assert "Of course, sir." in data["choices"][0]["message"]["content"]
        assert data["model"] == "mock-llama-4"
        assert data["usage"]["prompt_tokens"] == 2


class TestCompletionProxyWithCredential:
    """Test cases for /api/chat against the fake real backend."""

    BODY = {"model": "test-model", "messages": [{"role": "user", "content": "Hi"}]}

    @pytest.fixture
    def api_store(self, configured_store):
        return configured_store

    def test_proxy_success(self, client, real_backend):
        response = client.post("/api/chat", json=self.BODY)

        assert response.status_code == 200
        data = response.json()
        assert data["choices"][0]["message"]["content"] == "Real reply"
        request = real_backend.complete.await_args.args[0]
        assert request.top_p == 0.1
        assert request.max_tokens == 1024

    def test_proxy_backend_failure_returns_apology(self, client, real_backend):
        """Test backend failures are reported as a displayable reply."""
        real_backend.complete.side_effect = CompletionBackendError("upstream down", status_code=503)

        response = client.post("/api/chat", json=self.BODY)

        assert response.status_code == 200
        data = response.json()
        assert data["error"] == "Failed to generate response"
        assert data["details"] == "upstream down"
        assert data["status"] == 503
        assert data["choices"][0]["message"]["content"].startswith("I apologize, but I encountered an error")
