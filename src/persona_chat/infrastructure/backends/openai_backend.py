"""OpenAI-compatible completion backend (SambaNova by default)."""

import logging
from typing import Any

import openai
from openai import AsyncOpenAI

from persona_chat.domain.exceptions import (
    CompletionBackendError,
    CompletionTimeoutError,
    ModelNotFoundError,
)
from persona_chat.domain.interfaces import ICompletionBackend
from persona_chat.domain.models import ChatCompletionRequest, ChatCompletionResponse

logger = logging.getLogger(__name__)


class OpenAICompatibleBackend(ICompletionBackend):
    """Real backend talking to a chat-completions endpoint with a bearer token."""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = 60.0,
        client: AsyncOpenAI | None = None,
    ):
        self._base_url = base_url
        self._timeout = timeout
        # The client retries are disabled: the completion client owns the fallback ladder
        self._client = client or AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)

    @property
    def name(self) -> str:
        return "openai-compatible"

    async def complete(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        """Send the request and convert the SDK response into the domain model."""
        params: dict[str, Any] = {
            "model": request.model,
            "messages": [message.model_dump(exclude_none=True) for message in request.messages],
        }
        if request.temperature is not None:
            params["temperature"] = request.temperature
        if request.max_tokens is not None:
            params["max_tokens"] = request.max_tokens
        if request.top_p is not None:
            params["top_p"] = request.top_p

        logger.debug(f"Calling {self._base_url} with model {request.model} ({len(request.messages)} messages)")

        try:
            completion = await self._client.chat.completions.create(**params)
        except openai.APITimeoutError as e:
            raise CompletionTimeoutError(
                f"Completion request timed out after {self._timeout} seconds",
                timeout_duration=self._timeout,
                model=request.model,
            ) from e
        except openai.APIStatusError as e:
            raise _status_error(e, request.model) from e
        except openai.APIError as e:
            raise CompletionBackendError(f"Completion backend request failed: {e}", model=request.model) from e

        return ChatCompletionResponse.model_validate(completion.model_dump())

    async def close(self) -> None:
        await self._client.close()


def _status_error(error: openai.APIStatusError, model: str | None) -> CompletionBackendError:
    """Classify an HTTP error; unknown-model failures get their own type so they can be retried."""
    message = str(error)
    if isinstance(error, openai.NotFoundError) or (
        error.status_code in (400, 404) and "model" in message.lower()
    ):
        return ModelNotFoundError(
            f"Model '{model}' is not available: {message}",
            status_code=error.status_code,
            model=model,
        )
    return CompletionBackendError(
        f"Completion backend returned {error.status_code}: {message}",
        status_code=error.status_code,
        model=model,
        is_retryable=error.status_code >= 500 or error.status_code == 429,
    )
