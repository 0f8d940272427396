"""Tests for the mock and OpenAI-compatible completion backends."""

from unittest.mock import AsyncMock, Mock

import httpx
import openai
import pytest
from openai.types.chat import ChatCompletion

from persona_chat.domain.exceptions import CompletionBackendError, CompletionTimeoutError, ModelNotFoundError
from persona_chat.domain.models import ChatCompletionRequest, ChatMessage, ImagePart, ImageURL, TextPart
from persona_chat.infrastructure.backends import MockCompletionBackend, OpenAICompatibleBackend, compose_mock_reply
from persona_chat.infrastructure.backends.mock_backend import IMAGE_REPLY, MOCK_MODE_NOTICE


def chat_request(system: str, user_content, model: str | None = None) -> ChatCompletionRequest:
    return ChatCompletionRequest(
        model=model,
        messages=[
            ChatMessage(role="system", content=system),
            ChatMessage(role="user", content=user_content),
        ],
    )


class TestComposeMockReply:
    """Test cases for persona-flavored mock replies."""

    @pytest.mark.parametrize(
        "system_prompt, expected",
        [
            ("You are Better Call Saul, Legal Strategist.", "Better Call Saul!"),
            ("You are SheldonGPT, Research Assistant.", "Bazinga!"),
            ("You are Wolf of Wall Street, Sales Coach.", "Listen, pal."),
            ("You are Jarvis, Personal Assistant.", "Of course, sir."),
            ("You are Q, Prompt Optimizer.", "007"),
        ],
    )
    def test_persona_replies(self, system_prompt, expected):
        """Test each persona is recognized from its system prompt."""
        reply = compose_mock_reply(system_prompt, "my question", has_image=False)

        assert expected in reply
        assert '"my question"' in reply
        assert reply.endswith(MOCK_MODE_NOTICE)

    def test_generic_reply(self):
        """Test unknown personas get the generic mock-mode reply."""
        reply = compose_mock_reply("You are a helpful assistant.", "hi", has_image=False)

        assert "mock mode" in reply
        assert '"hi"' in reply

    def test_image_reply(self):
        """Test images get the image notice whatever the persona."""
        assert compose_mock_reply("You are Jarvis.", "look", has_image=True) == IMAGE_REPLY


class TestMockCompletionBackend:
    """Test cases for MockCompletionBackend."""

    @pytest.mark.asyncio
    async def test_response_shape(self, mock_backend):
        """Test the response mirrors the chat-completions shape."""
        response = await mock_backend.complete(chat_request("You are Jarvis.", "Plan my day"))

        assert response.object == "chat.completion"
        assert response.id.startswith("mock-")
        assert response.model == "mock-llama-4"
        assert response.choices[0].message.role == "assistant"
        assert response.choices[0].finish_reason == "stop"
        assert "Plan my day" in response.content

    @pytest.mark.asyncio
    async def test_usage_counts_characters(self, mock_backend):
        """Test usage is computed from input and output lengths."""
        response = await mock_backend.complete(chat_request("You are Jarvis.", "Plan my day"))

        assert response.usage.prompt_tokens == len("Plan my day")
        assert response.usage.completion_tokens == len(response.content)
        assert response.usage.total_tokens == response.usage.prompt_tokens + response.usage.completion_tokens

    @pytest.mark.asyncio
    async def test_echoes_requested_model(self, mock_backend):
        """Test the requested model is echoed."""
        response = await mock_backend.complete(chat_request("You are Q.", "hi", model="custom"))

        assert response.model == "custom"

    @pytest.mark.asyncio
    async def test_detects_image(self, mock_backend):
        """Test a multipart last user message with an image gets the image notice."""
        content = [TextPart(text="What is this?"), ImagePart(image_url=ImageURL(url="data:image/png;base64,AAAA"))]

        response = await mock_backend.complete(chat_request("You are Q.", content))

        assert response.content == IMAGE_REPLY
        assert response.usage.prompt_tokens == len("What is this?")

    @pytest.mark.asyncio
    async def test_simulated_latency(self):
        """Test the delay is drawn from the configured range."""
        sleep = AsyncMock()
        backend = MockCompletionBackend(min_delay=1.0, max_delay=2.0, sleep=sleep)

        await backend.complete(chat_request("You are Q.", "hi"))

        delay = sleep.await_args.args[0]
        assert 1.0 <= delay <= 2.0

    @pytest.mark.asyncio
    async def test_no_delay_when_disabled(self):
        """Test a zero range skips sleeping."""
        sleep = AsyncMock()
        backend = MockCompletionBackend(min_delay=0.0, max_delay=0.0, sleep=sleep)

        await backend.complete(chat_request("You are Q.", "hi"))

        sleep.assert_not_called()


class TestOpenAICompatibleBackend:
    """Test cases for OpenAICompatibleBackend."""

    API_REQUEST = httpx.Request("POST", "https://api.example.test/v1/chat/completions")

    @pytest.fixture
    def sdk_client(self):
        client = Mock()
        client.chat.completions.create = AsyncMock(
            return_value=ChatCompletion.model_validate(
                {
                    "id": "chatcmpl-1",
                    "object": "chat.completion",
                    "created": 1700000000,
                    "model": "test-model",
                    "choices": [
                        {
                            "index": 0,
                            "message": {"role": "assistant", "content": "Hello from the API"},
                            "finish_reason": "stop",
                        }
                    ],
                    "usage": {"prompt_tokens": 3, "completion_tokens": 4, "total_tokens": 7},
                }
            )
        )
        client.close = AsyncMock()
        return client

    @pytest.fixture
    def backend(self, sdk_client):
        return OpenAICompatibleBackend(
            api_key="test-key", base_url="https://api.example.test/v1", client=sdk_client
        )

    def status_error(self, error_class, status_code: int, message: str):
        response = httpx.Response(status_code, request=self.API_REQUEST)
        return error_class(message, response=response, body=None)

    @pytest.mark.asyncio
    async def test_complete(self, backend, sdk_client):
        """Test a successful call is converted to the domain response."""
        request = ChatCompletionRequest(
            model="test-model",
            messages=[ChatMessage(role="user", content="Hi")],
            temperature=0.5,
            max_tokens=100,
            top_p=0.1,
        )

        response = await backend.complete(request)

        assert response.content == "Hello from the API"
        assert response.usage.total_tokens == 7
        kwargs = sdk_client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["messages"] == [{"role": "user", "content": "Hi"}]
        assert kwargs["temperature"] == 0.5
        assert kwargs["max_tokens"] == 100
        assert kwargs["top_p"] == 0.1

    @pytest.mark.asyncio
    async def test_multipart_messages_serialized(self, backend, sdk_client):
        """Test multipart content is sent as typed parts."""
        content = [TextPart(text="Look"), ImagePart(image_url=ImageURL(url="data:image/png;base64,AAAA"))]

        await backend.complete(ChatCompletionRequest(model="m", messages=[ChatMessage(role="user", content=content)]))

        sent = sdk_client.chat.completions.create.await_args.kwargs["messages"][0]["content"]
        assert sent == [
            {"type": "text", "text": "Look"},
            {"type": "image_url", "image_url": {"url": "data:image/png;base64,AAAA"}},
        ]

    @pytest.mark.asyncio
    async def test_not_found_maps_to_model_not_found(self, backend, sdk_client):
        """Test a 404 becomes ModelNotFoundError."""
        sdk_client.chat.completions.create.side_effect = self.status_error(
            openai.NotFoundError, 404, "The model does not exist"
        )

        with pytest.raises(ModelNotFoundError) as exc_info:
            await backend.complete(ChatCompletionRequest(model="m", messages=[]))

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_bad_request_mentioning_model(self, backend, sdk_client):
        """Test a 400 about the model becomes ModelNotFoundError."""
        sdk_client.chat.completions.create.side_effect = self.status_error(
            openai.BadRequestError, 400, "Invalid model name"
        )

        with pytest.raises(ModelNotFoundError):
            await backend.complete(ChatCompletionRequest(model="m", messages=[]))

    @pytest.mark.asyncio
    async def test_server_error_maps_to_backend_error(self, backend, sdk_client):
        """Test other status errors become CompletionBackendError."""
        sdk_client.chat.completions.create.side_effect = self.status_error(
            openai.InternalServerError, 500, "Internal error"
        )

        with pytest.raises(CompletionBackendError) as exc_info:
            await backend.complete(ChatCompletionRequest(model="m", messages=[]))

        assert not isinstance(exc_info.value, ModelNotFoundError)
        assert exc_info.value.status_code == 500
        assert exc_info.value.is_retryable

    @pytest.mark.asyncio
    async def test_timeout_maps_to_completion_timeout(self, backend, sdk_client):
        """Test SDK timeouts become CompletionTimeoutError."""
        sdk_client.chat.completions.create.side_effect = openai.APITimeoutError(request=self.API_REQUEST)

        with pytest.raises(CompletionTimeoutError):
            await backend.complete(ChatCompletionRequest(model="m", messages=[]))

    @pytest.mark.asyncio
    async def test_connection_error_maps_to_backend_error(self, backend, sdk_client):
        """Test connection failures become CompletionBackendError."""
        sdk_client.chat.completions.create.side_effect = openai.APIConnectionError(request=self.API_REQUEST)

        with pytest.raises(CompletionBackendError):
            await backend.complete(ChatCompletionRequest(model="m", messages=[]))

    @pytest.mark.asyncio
    async def test_close(self, backend, sdk_client):
        """Test closing releases the SDK client."""
        await backend.close()

        sdk_client.close.assert_awaited_once()

    def test_name(self, backend):
        assert backend.name == "openai-compatible"
