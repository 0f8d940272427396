"""FastAPI application exposing the conversation store and the completion proxy."""

import logging
import platform
import threading
import time
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import psutil
from fastapi import Body, Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from persona_chat.application.factories import create_conversation_store
from persona_chat.application.store import ConversationStore
from persona_chat.config import settings
from persona_chat.domain.exceptions import (
    AgentNotFoundError,
    CompletionBackendError,
    CompletionTimeoutError,
    ConfigurationError,
    NoActiveConversationError,
    PersonaChatError,
    ValidationError,
)
from persona_chat.domain.models import ChatCompletionRequest, CompletionChoice, CompletionMessage
from persona_chat.infrastructure.backends import MockCompletionBackend
from persona_chat.observability import setup_logging

from .models import ApiKeyRequest, FeedbackRequest, ImageMessageRequest, SendMessageRequest, TurnResponse

logger = logging.getLogger(__name__)

# Application version
API_VERSION = "0.1.0"

NO_ACTIVE_CONVERSATION = "No active conversation or agent selected"

_startup_time: datetime | None = None

# Response time metrics (thread-safe)
_metrics_lock = threading.Lock()
_total_requests: int = 0
_total_response_time: float = 0.0
_last_request_time: datetime | None = None


def get_store(request: Request) -> ConversationStore:
    """Dependency injection for the conversation store."""
    return request.app.state.store


def get_mock_backend(request: Request) -> MockCompletionBackend:
    """Dependency injection for the mock completion backend."""
    return request.app.state.mock_backend


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handles startup and shutdown events for the API."""
    global _startup_time

    setup_logging(settings.app.log_level, settings.app.log_file)
    _startup_time = datetime.now(UTC)
    app.state.store = create_conversation_store(settings)
    app.state.mock_backend = MockCompletionBackend(
        min_delay=settings.mock.min_delay,
        max_delay=settings.mock.max_delay,
        default_model=settings.mock.default_model,
    )
    logger.info(f"Persona Chat API started on {settings.app.api_host}:{settings.app.api_port}")
    logger.info(f"Environment: {settings.app.environment.value}")

    yield

    await app.state.store.close()
    logger.info("Persona Chat API shutdown complete")


app = FastAPI(
    title="Persona Chat API",
    description="Persona agents over a resilient chat-completion client",
    version=API_VERSION,
    docs_url="/docs",
    lifespan=lifespan,
)


# Middleware to track response times
@app.middleware("http")
async def track_response_time(request: Request, call_next):
    """Track API response time metrics with thread-safe updates."""
    global _total_requests, _total_response_time, _last_request_time

    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time

    if not request.url.path.startswith("/health"):
        with _metrics_lock:
            _total_requests += 1
            _total_response_time += process_time
            _last_request_time = datetime.now(UTC)

    response.headers["X-Process-Time"] = str(process_time)
    return response


def _error_content(title: str, exc: PersonaChatError) -> dict[str, Any]:
    return {
        "error": title,
        "message": exc.message,
        "error_code": exc.error_code,
        "details": exc.details,
        "is_retryable": exc.is_retryable,
        "timestamp": exc.timestamp,
    }


def _retry_headers(exc: PersonaChatError) -> dict[str, str]:
    if exc.retry_after:
        return {"Retry-After": str(int(exc.retry_after))}
    return {}


@app.exception_handler(AgentNotFoundError)
async def agent_not_found_exception_handler(request: Request, exc: AgentNotFoundError):
    """Handle agent not found exceptions."""
    return JSONResponse(status_code=404, content=_error_content("Agent Not Found", exc))


@app.exception_handler(NoActiveConversationError)
async def no_active_conversation_exception_handler(request: Request, exc: NoActiveConversationError):
    """Handle actions that need a selected agent."""
    return JSONResponse(status_code=409, content=_error_content("No Active Conversation", exc))


@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError):
    """Handle validation exceptions, including rejected images."""
    return JSONResponse(status_code=400, content=_error_content("Validation Error", exc))


@app.exception_handler(CompletionTimeoutError)
async def completion_timeout_exception_handler(request: Request, exc: CompletionTimeoutError):
    """Handle completion timeout exceptions."""
    return JSONResponse(
        status_code=504,  # Gateway Timeout
        headers=_retry_headers(exc),
        content=_error_content("Completion Timeout", exc),
    )


@app.exception_handler(CompletionBackendError)
async def completion_backend_exception_handler(request: Request, exc: CompletionBackendError):
    """Handle completion backend exceptions."""
    return JSONResponse(
        status_code=502,  # Bad Gateway
        headers=_retry_headers(exc),
        content=_error_content("Completion Backend Error", exc),
    )


@app.exception_handler(PersonaChatError)
async def persona_chat_exception_handler(request: Request, exc: PersonaChatError):
    """Handle any other application exception."""
    return JSONResponse(
        status_code=500,
        headers=_retry_headers(exc),
        content=_error_content("Persona Chat Error", exc),
    )


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "message": "Welcome to Persona Chat API",
        "version": API_VERSION,
        "environment": settings.app.environment.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get("/health")
async def health_check(store: ConversationStore = Depends(get_store)):  # noqa: B008
    """
    Health check endpoint.

    Reports overall status, uptime, agent count, whether replies currently come from the mock backend,
    psutil system metrics and API response time metrics.
    """
    current_time = datetime.now(UTC)

    uptime_seconds = None
    if _startup_time:
        uptime_seconds = (current_time - _startup_time).total_seconds()

    state = store.state

    system_status = {}
    try:
        # Non-blocking: 0.0 on the first call, cached afterwards
        cpu_percent = psutil.cpu_percent(interval=None)
        memory = psutil.virtual_memory()
        disk = psutil.disk_usage("/")

        system_status = {
            "cpu": {
                "usage_percent": round(cpu_percent, 2),
                "count": psutil.cpu_count(),
            },
            "memory": {
                "usage_percent": round(memory.percent, 2),
                "available_mb": round(memory.available / (1024 * 1024), 2),
                "total_mb": round(memory.total / (1024 * 1024), 2),
            },
            "disk": {
                "usage_percent": round(disk.percent, 2),
                "available_gb": round(disk.free / (1024 * 1024 * 1024), 2),
                "total_gb": round(disk.total / (1024 * 1024 * 1024), 2),
            },
            "platform": {
                "system": platform.system(),
                "python_version": platform.python_version(),
            },
        }
    except (OSError, psutil.Error) as e:
        system_status = {"error": f"Unable to collect system metrics: {str(e)}"}

    with _metrics_lock:
        total_requests = _total_requests
        total_response_time = _total_response_time
        last_request_time = _last_request_time

    response_metrics = {
        "total_requests": total_requests,
        "average_response_time_ms": (
            round((total_response_time / total_requests) * 1000, 2) if total_requests > 0 else 0
        ),
        "last_request_time": last_request_time.isoformat() if last_request_time else None,
    }

    status = "healthy"
    for resource in ("cpu", "memory", "disk"):
        if system_status.get(resource, {}).get("usage_percent", 0) > 90:
            status = "degraded"

    return {
        "status": status,
        "timestamp": current_time.isoformat(),
        "uptime_seconds": uptime_seconds,
        "version": API_VERSION,
        "agent_count": len(state.agents),
        "api_key_configured": state.api_key_configured,
        "using_mock_api": state.using_mock_api,
        "environment": settings.app.environment.value,
        "system_status": system_status,
        "response_metrics": response_metrics,
    }


@app.post("/api/chat")
async def chat_completion(
    request: ChatCompletionRequest,
    store: ConversationStore = Depends(get_store),  # noqa: B008
):
    """
    OpenAI-compatible proxy to the real backend.

    Retries once with the fallback model when the requested model is unknown. Backend failures come back
    as a 200 carrying an apology choice so that clients can render the error as a reply.
    """
    logger.info(f"Proxying completion for model '{request.model}' ({len(request.messages)} messages)")
    try:
        response = await store.completion_client.complete_real(request)
    except ConfigurationError as e:
        logger.error(e.message)
        return JSONResponse(status_code=500, content={"error": e.message})
    except CompletionBackendError as e:
        logger.error(f"Error in chat API route: {e}")
        apology = CompletionChoice(
            message=CompletionMessage(
                content=(
                    "I apologize, but I encountered an error: Failed to generate response from AI service:\n"
                    f"{e.message}\n\nPlease try again later or check your API configuration."
                )
            )
        )
        return {
            "choices": [apology.model_dump()],
            "error": "Failed to generate response",
            "details": e.message,
            "status": e.status_code if e.status_code is not None else "unknown",
        }

    return response.model_dump(exclude={"error", "details"})


@app.post("/api/mock-chat")
async def mock_chat_completion(
    request: ChatCompletionRequest,
    mock_backend: MockCompletionBackend = Depends(get_mock_backend),  # noqa: B008
):
    """Same contract as ``/api/chat`` answered by the local mock backend."""
    response = await mock_backend.complete(request)
    return response.model_dump(exclude={"error", "details"})


@app.get("/agents")
async def list_agents(store: ConversationStore = Depends(get_store)) -> list[dict[str, Any]]:  # noqa: B008
    """List the agent registry."""
    return [agent.model_dump() for agent in store.state.agents]


@app.patch("/agents/{agent_id}")
async def update_agent(
    agent_id: str,
    updates: dict[str, Any] = Body(...),  # noqa: B008
    store: ConversationStore = Depends(get_store),  # noqa: B008
) -> dict[str, Any]:
    """Merge a partial update into an agent's settings."""
    return store.update_agent_settings(agent_id, updates).model_dump()


@app.post("/agents/{agent_id}/select")
async def select_agent(agent_id: str, store: ConversationStore = Depends(get_store)) -> dict[str, Any]:  # noqa: B008
    """Select an agent and return its conversation."""
    conversation = store.select_agent(agent_id)
    if conversation is None:
        raise AgentNotFoundError(f"Agent '{agent_id}' not found", agent_id=agent_id)
    return conversation.model_dump(mode="json")


@app.get("/state")
async def get_state(store: ConversationStore = Depends(get_store)) -> dict[str, Any]:  # noqa: B008
    """Full store snapshot."""
    return store.snapshot().model_dump(mode="json")


@app.post("/conversation/messages")
async def send_message(
    request: SendMessageRequest,
    store: ConversationStore = Depends(get_store),  # noqa: B008
) -> TurnResponse:
    """Send a user turn to the selected agent and wait for the reply."""
    conversation = _require_conversation(store)
    await store.send_message(request.content)
    return _turn_response(store, conversation.id)


@app.post("/conversation/image-messages")
async def send_image_message(
    request: ImageMessageRequest,
    store: ConversationStore = Depends(get_store),  # noqa: B008
) -> TurnResponse:
    """Send a text+image turn; ``image_url`` may be a data URL."""
    conversation = _require_conversation(store)
    await store.send_image_message(request.text, request.image_url)
    return _turn_response(store, conversation.id)


@app.delete("/conversation")
async def clear_conversation(store: ConversationStore = Depends(get_store)) -> dict[str, Any]:  # noqa: B008
    store.clear_conversation()
    return {"status": "cleared", "current_conversation_id": store.state.current_conversation_id}


@app.post("/conversation/follow-ups")
async def generate_follow_ups(store: ConversationStore = Depends(get_store)) -> list[dict[str, Any]]:  # noqa: B008
    """Regenerate follow-up suggestions for the current conversation."""
    await store.generate_follow_ups()
    return [
        {"id": suggestion.id, "text": suggestion.text, "conversation_id": suggestion.conversation_id}
        for suggestion in store.state.follow_up_suggestions
    ]


@app.post("/settings/api-key")
async def set_api_key(request: ApiKeyRequest, store: ConversationStore = Depends(get_store)) -> dict[str, Any]:  # noqa: B008
    store.set_api_key(request.api_key)
    return {
        "api_key_configured": store.state.api_key_configured,
        "using_mock_api": store.state.using_mock_api,
    }


@app.delete("/error")
async def clear_error(store: ConversationStore = Depends(get_store)) -> dict[str, Any]:  # noqa: B008
    store.clear_error()
    return {"error": None}


@app.post("/feedback")
async def submit_feedback(request: FeedbackRequest, store: ConversationStore = Depends(get_store)) -> dict[str, Any]:  # noqa: B008
    """Rate the selected agent."""
    feedback = store.submit_feedback(request.rating, request.comment, request.message_id)
    return feedback.model_dump(mode="json")


def _require_conversation(store: ConversationStore):
    conversation = store.state.current_conversation
    if conversation is None or store.state.selected_agent is None:
        raise NoActiveConversationError(NO_ACTIVE_CONVERSATION)
    return conversation


def _turn_response(store: ConversationStore, conversation_id: str) -> TurnResponse:
    state = store.state
    conversation = state.find_conversation(conversation_id)
    messages = [message.model_dump(mode="json") for message in conversation.messages] if conversation else []
    return TurnResponse(
        conversation_id=conversation_id,
        messages=messages,
        error=state.error,
        is_loading=state.is_loading,
        using_mock_api=state.using_mock_api,
    )
