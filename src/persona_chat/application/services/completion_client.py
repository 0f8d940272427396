"""Chat-completion client with real -> alternate model -> mock degradation."""

import asyncio
import logging
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Any

from persona_chat.config import Settings
from persona_chat.domain.exceptions import (
    CompletionBackendError,
    CompletionTimeoutError,
    ConfigurationError,
    ModelNotFoundError,
)
from persona_chat.domain.interfaces import ICompletionBackend
from persona_chat.domain.models import (
    ChatCompletionRequest,
    ChatCompletionResponse,
    ChatMessage,
    ImagePart,
    ImageURL,
    ModelConfig,
    TextPart,
)
from persona_chat.infrastructure.backends import MockCompletionBackend, OpenAICompatibleBackend

logger = logging.getLogger(__name__)

IMAGE_MOCK_APOLOGY = (
    "I'm sorry, but I can't analyze images right now. Image understanding requires a valid API key, and I'm "
    "currently running in mock mode. Please configure your API key to enable image processing."
)

PriorMessage = ChatMessage | dict[str, Any]


class ClientState(str, Enum):
    """Which backend serves the next call."""

    NO_CREDENTIAL = "no_credential"
    REAL_BACKEND = "real_backend"
    MOCK_BACKEND = "mock_backend"


class CompletionClient:
    """
    Produces assistant replies while hiding transport failures.

    State machine:
        NO_CREDENTIAL -> MOCK_BACKEND on the first call
        REAL_BACKEND  -> MOCK_BACKEND on any failed call
        any state     -> REAL_BACKEND only through ``set_api_key``

    MOCK_BACKEND is sticky: a successful mock reply never promotes the client back to the real backend.
    """

    def __init__(
        self,
        backend_factory: Callable[[str], ICompletionBackend],
        mock_backend: ICompletionBackend,
        api_key: str | None = None,
        fallback_model: str = "Llama-4-Maverick-17B-128E-Instruct",
        default_temperature: float = 0.1,
        default_max_tokens: int = 1024,
        default_top_p: float = 0.1,
        request_timeout: float = 60.0,
    ):
        self._backend_factory = backend_factory
        self._mock_backend = mock_backend
        self._real_backend: ICompletionBackend | None = None
        self._state = ClientState.NO_CREDENTIAL
        self._fallback_model = fallback_model
        self._default_temperature = default_temperature
        self._default_max_tokens = default_max_tokens
        self._default_top_p = default_top_p
        self._request_timeout = request_timeout
        if api_key:
            self.set_api_key(api_key)

    @classmethod
    def from_settings(cls, settings: Settings, api_key: str | None = None) -> "CompletionClient":
        """Build a client wired to the configured real backend and mock backend."""
        backend_config = settings.backend
        timeout = settings.resilience.completion_request_timeout

        def backend_factory(key: str) -> ICompletionBackend:
            return OpenAICompatibleBackend(api_key=key, base_url=backend_config.api_url, timeout=timeout)

        mock_backend = MockCompletionBackend(
            min_delay=settings.mock.min_delay,
            max_delay=settings.mock.max_delay,
            default_model=settings.mock.default_model,
        )
        return cls(
            backend_factory=backend_factory,
            mock_backend=mock_backend,
            api_key=api_key if api_key is not None else backend_config.api_key,
            fallback_model=backend_config.fallback_model,
            default_temperature=backend_config.default_temperature,
            default_max_tokens=backend_config.default_max_tokens,
            default_top_p=backend_config.default_top_p,
            request_timeout=timeout,
        )

    @property
    def state(self) -> ClientState:
        return self._state

    def is_configured(self) -> bool:
        """Check if a credential has been supplied."""
        return self._real_backend is not None

    def is_using_mock_api(self) -> bool:
        """True once calls are served by the mock backend."""
        return self._state == ClientState.MOCK_BACKEND

    def set_api_key(self, api_key: str | None) -> None:
        """Assign a credential; a non-empty key clears mock mode, an empty key removes the credential."""
        if api_key:
            self._real_backend = self._backend_factory(api_key)
            self._transition(ClientState.REAL_BACKEND, "credential assigned")
        else:
            self._real_backend = None
            self._transition(ClientState.NO_CREDENTIAL, "credential removed")

    async def generate_response(
        self,
        system_prompt: str,
        prior_messages: Sequence[PriorMessage],
        model_config: ModelConfig,
    ) -> str:
        """
        Generate an assistant reply.

        Args:
            system_prompt: Non-empty system prompt
            prior_messages: Ordered history, already ending with the new user turn
            model_config: Model, temperature and optional token cap

        Returns:
            Reply text; backend failures are answered by the mock backend instead of raising
        """
        request = self._build_request(system_prompt, prior_messages, model_config)

        if self._state != ClientState.REAL_BACKEND:
            if self._state == ClientState.NO_CREDENTIAL:
                self._transition(ClientState.MOCK_BACKEND, "no credential configured")
            return await self._complete_with_mock(request)

        try:
            response = await self._complete_with_fallback_model(request)
        except CompletionBackendError as e:
            logger.error(f"Completion backend failed, switching to mock backend: {e}")
            self._transition(ClientState.MOCK_BACKEND, "backend failure")
            return await self._complete_with_mock(request)

        return response.content

    async def generate_image_response(
        self,
        system_prompt: str,
        prior_messages: Sequence[PriorMessage],
        image_url: str,
        model_config: ModelConfig,
    ) -> str:
        """
        Generate a reply about an image attached to the last user turn.

        The mock backend cannot see images, so in mock mode (or on failure) a fixed apology is returned
        instead of a simulated reply.
        """
        if self._state != ClientState.REAL_BACKEND:
            if self._state == ClientState.NO_CREDENTIAL:
                self._transition(ClientState.MOCK_BACKEND, "no credential configured")
            return IMAGE_MOCK_APOLOGY

        request = self._build_request(system_prompt, _attach_image(prior_messages, image_url), model_config)
        try:
            response = await self._complete_with_fallback_model(request)
        except CompletionBackendError as e:
            logger.error(f"Image completion failed, switching to mock backend: {e}")
            self._transition(ClientState.MOCK_BACKEND, "backend failure")
            return IMAGE_MOCK_APOLOGY

        return response.content

    async def complete_real(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        """
        Forward a raw request to the real backend with the alternate-model retry, without mock fallback.

        Raises:
            ConfigurationError: If no credential is configured
            CompletionBackendError: If the backend fails
        """
        if self._real_backend is None:
            raise ConfigurationError("API key not configured", error_code="API_KEY_MISSING")
        return await self._complete_with_fallback_model(self._apply_defaults(request))

    async def close(self) -> None:
        if self._real_backend is not None:
            await self._real_backend.close()
        await self._mock_backend.close()

    def _build_request(
        self,
        system_prompt: str,
        prior_messages: Sequence[PriorMessage],
        model_config: ModelConfig,
    ) -> ChatCompletionRequest:
        if not system_prompt:
            raise ValueError("system_prompt must not be empty")
        messages = [ChatMessage(role="system", content=system_prompt)]
        messages.extend(ChatMessage.model_validate(message) for message in prior_messages)
        return self._apply_defaults(
            ChatCompletionRequest(
                model=model_config.model,
                messages=messages,
                temperature=model_config.temperature,
                max_tokens=model_config.max_tokens,
            )
        )

    def _apply_defaults(self, request: ChatCompletionRequest) -> ChatCompletionRequest:
        # Zero counts as unset, like the upstream API route
        return request.model_copy(
            update={
                "model": request.model or self._fallback_model,
                "temperature": request.temperature or self._default_temperature,
                "max_tokens": request.max_tokens or self._default_max_tokens,
                "top_p": request.top_p or self._default_top_p,
            }
        )

    async def _complete_with_fallback_model(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        try:
            return await self._call_real(request)
        except ModelNotFoundError as e:
            if request.model == self._fallback_model:
                raise
            logger.warning(f"Model '{request.model}' not found, retrying once with '{self._fallback_model}': {e}")
            return await self._call_real(request.model_copy(update={"model": self._fallback_model}))

    async def _call_real(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        backend = self._real_backend
        if backend is None:
            raise ConfigurationError("API key not configured", error_code="API_KEY_MISSING")
        try:
            return await asyncio.wait_for(backend.complete(request), timeout=self._request_timeout)
        except TimeoutError as e:
            raise CompletionTimeoutError(
                f"Completion request timed out after {self._request_timeout} seconds",
                timeout_duration=self._request_timeout,
                model=request.model,
            ) from e
        except CompletionBackendError:
            raise
        except Exception as e:
            raise CompletionBackendError(f"Unexpected completion backend failure: {e}", model=request.model) from e

    async def _complete_with_mock(self, request: ChatCompletionRequest) -> str:
        response = await self._mock_backend.complete(request)
        return response.content

    def _transition(self, new_state: ClientState, reason: str) -> None:
        if new_state != self._state:
            logger.info(f"Completion client {self._state.value} -> {new_state.value} ({reason})")
            self._state = new_state


def _attach_image(prior_messages: Sequence[PriorMessage], image_url: str) -> list[ChatMessage]:
    """Put the image on the last user turn, turning its text into a text part."""
    messages = [ChatMessage.model_validate(message) for message in prior_messages]
    image = ImagePart(image_url=ImageURL(url=image_url))
    if messages and messages[-1].role == "user":
        last = messages[-1]
        messages[-1] = ChatMessage(role="user", content=[TextPart(text=last.text), image])
    else:
        messages.append(ChatMessage(role="user", content=[image]))
    return messages
