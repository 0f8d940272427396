"""Authoritative conversation state and the actions that mutate it."""

import asyncio
import logging
from collections import Counter
from collections.abc import Callable, Coroutine
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from persona_chat.application.services.ai_service import AIService
from persona_chat.application.services.completion_client import CompletionClient
from persona_chat.domain.agent_catalog import find_agent, get_default_agents
from persona_chat.domain.exceptions import (
    AgentNotFoundError,
    ImageValidationError,
    NoActiveConversationError,
    ValidationError,
)
from persona_chat.domain.images import load_image_file
from persona_chat.domain.models import (
    Agent,
    Conversation,
    FollowUpSuggestion,
    Message,
    MessageBody,
    MessageRole,
    UserFeedback,
)

from .app_state import AppState

logger = logging.getLogger(__name__)

NO_ACTIVE_CONVERSATION = "No active conversation or agent selected"
CONTENT_FLAGGED = "Content flagged as inappropriate"
RESPONSE_FAILED = "Failed to get response from AI service"
EMPTY_REPLY = "I apologize, but I couldn't generate a response. Please try again."

StateListener = Callable[[AppState], None]


class ConversationStore:
    """
    Single owned state container.

    Every action computes the next state from the current one plus its input and applies it between two
    awaits, so listeners never observe a half-applied change. Replies are routed by the conversation id
    captured when the send was dispatched; a reply for a conversation that is no longer current is written
    to its own history (if it still exists) and never to the current one.
    """

    def __init__(
        self,
        ai_service: AIService,
        agents: list[Agent] | None = None,
        orchestration_timeout: float = 120.0,
    ):
        self._ai = ai_service
        self._client = ai_service.completion_client
        self._orchestration_timeout = orchestration_timeout
        self._state = AppState(
            agents=agents if agents is not None else get_default_agents(),
            api_key_configured=self._client.is_configured(),
            using_mock_api=self._client.is_using_mock_api(),
        )
        self._pending: Counter[str] = Counter()
        self._background_tasks: set[asyncio.Task] = set()
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> AppState:
        """Live state; treat as read-only and use ``snapshot`` to keep a copy."""
        return self._state

    @property
    def completion_client(self) -> CompletionClient:
        return self._client

    def snapshot(self) -> AppState:
        return self._state.model_copy(deep=True)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a callback run after every state change; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Credentials

    def set_api_key(self, api_key: str) -> None:
        self._client.set_api_key(api_key)
        self._commit(
            api_key_configured=self._client.is_configured(),
            using_mock_api=self._client.is_using_mock_api(),
        )

    # Agents and conversations

    def select_agent(self, agent_id: str) -> Conversation | None:
        """Make an agent current, reusing its conversation or starting an empty one."""
        try:
            agent = find_agent(self._state.agents, agent_id)
        except AgentNotFoundError as e:
            logger.warning(e.message)
            self._commit(error=e.message)
            return None

        existing = self._state.conversation_for_agent(agent_id)
        if existing is None:
            return self.start_conversation(agent_id)

        self._commit(
            selected_agent=agent,
            current_conversation_id=existing.id,
            follow_up_suggestions=[],
            error=None,
        )
        return existing

    def start_conversation(self, agent_id: str) -> Conversation | None:
        """Start a fresh conversation with an agent, replacing any previous one with it."""
        try:
            agent = find_agent(self._state.agents, agent_id)
        except AgentNotFoundError as e:
            self._commit(error=e.message)
            return None

        conversation = Conversation(agent_id=agent_id)
        conversations = [c for c in self._state.conversations if c.agent_id != agent_id]
        conversations.append(conversation)
        self._commit(
            selected_agent=agent,
            conversations=conversations,
            current_conversation_id=conversation.id,
            follow_up_suggestions=[],
            error=None,
        )
        logger.info(f"Started conversation {conversation.id} with '{agent.name}'")
        return conversation

    def update_agent_settings(self, agent_id: str, updates: dict[str, Any]) -> Agent:
        """
        Merge a partial update into the registry entry and the selected-agent snapshot.

        Raises:
            AgentNotFoundError: If no agent has that id
            ValidationError: If the merged agent is invalid
        """
        current = find_agent(self._state.agents, agent_id)
        try:
            updated = current.with_updates(updates)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid settings for agent '{agent_id}': {e}", details={"agent_id": agent_id}) from e

        changes: dict[str, Any] = {
            "agents": [updated if agent.id == agent_id else agent for agent in self._state.agents],
        }
        if self._state.selected_agent is not None and self._state.selected_agent.id == agent_id:
            changes["selected_agent"] = updated
        self._commit(**changes)
        return updated

    def clear_conversation(self) -> None:
        current_id = self._state.current_conversation_id
        if current_id is None:
            return
        self._commit(
            conversations=[c for c in self._state.conversations if c.id != current_id],
            current_conversation_id=None,
            follow_up_suggestions=[],
        )

    def clear_error(self) -> None:
        self._commit(error=None)

    # Messaging

    async def send_message(self, content: MessageBody) -> None:
        """
        Moderate, record and answer a user turn.

        Order per conversation: moderation, user message, assistant (or error) message, follow-ups.
        A rejected message is never recorded; a failed reply is recorded as a synthetic assistant message.
        """
        conversation = self._state.current_conversation
        agent = self._state.selected_agent
        if conversation is None or agent is None:
            self._commit(error=NO_ACTIVE_CONVERSATION)
            return

        is_appropriate = await self._ai.moderate_content(content)
        if self._state.find_conversation(conversation.id) is None:
            logger.warning(f"Conversation {conversation.id} was removed during moderation, dropping message")
            return
        if not is_appropriate:
            logger.info(f"Message rejected by moderation in conversation {conversation.id}")
            self._commit(error=CONTENT_FLAGGED)
            return

        history = conversation.get_messages()
        conversation.add_message(Message(role=MessageRole.USER, content=content))
        self._pending[conversation.id] += 1
        self._commit(error=None)

        try:
            reply = await asyncio.wait_for(
                self._ai.chat(agent, content, history),
                timeout=self._orchestration_timeout,
            )
        except TimeoutError:
            logger.error(f"Reply for conversation {conversation.id} timed out")
            self._finish_turn(
                conversation.id,
                f"I apologize, but the request timed out after {self._orchestration_timeout} seconds.",
                failed=True,
            )
            return
        except Exception as e:
            logger.error(f"Error sending message: {e}")
            self._finish_turn(conversation.id, f"I apologize, but I encountered an error: {e}", failed=True)
            return

        if self._finish_turn(conversation.id, reply or EMPTY_REPLY, failed=False):
            self._schedule(self._refresh_follow_ups(conversation.id))

    async def send_image_message(self, text: str, image_url: str) -> None:
        """Send a text+image turn; construction errors become a store error and nothing is recorded."""
        try:
            if not image_url:
                raise ImageValidationError("No image provided")
            content = self._ai.create_image_message(text, image_url)
        except Exception as e:
            logger.error(f"Failed to build image message: {e}")
            self._commit(error=f"Failed to attach image: {e}")
            return
        await self.send_message(content)

    async def send_image_file(self, text: str, path: str | Path) -> None:
        """Load an image file as a data URL and send it with ``text``."""
        try:
            image_url = load_image_file(path)
        except ImageValidationError as e:
            self._commit(error=e.message)
            return
        await self.send_image_message(text, image_url)

    async def generate_follow_ups(self) -> None:
        """Regenerate suggestions for the current conversation; no-op below two messages."""
        conversation_id = self._state.current_conversation_id
        if conversation_id is None:
            return
        await self._refresh_follow_ups(conversation_id)

    def submit_feedback(self, rating: int, comment: str | None = None, message_id: str | None = None) -> UserFeedback:
        """
        Record a rating for the selected agent.

        Raises:
            NoActiveConversationError: If no agent is selected
            ValidationError: If the rating is outside 1..5
        """
        agent = self._state.selected_agent
        if agent is None:
            raise NoActiveConversationError(NO_ACTIVE_CONVERSATION)
        try:
            feedback = UserFeedback(
                agent_id=agent.id,
                conversation_id=self._state.current_conversation_id,
                message_id=message_id,
                rating=rating,
                comment=comment,
            )
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid feedback: {e}") from e

        logger.info(f"Feedback submitted for '{agent.name}': rating={rating}")
        self._commit(feedback=[*self._state.feedback, feedback])
        return feedback

    async def wait_for_background_tasks(self) -> None:
        """Await scheduled follow-up generation."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    async def close(self) -> None:
        await self.wait_for_background_tasks()
        await self._client.close()

    # Internals

    def _finish_turn(self, conversation_id: str, text: str, failed: bool) -> bool:
        """Append the reply to the dispatching conversation; returns False if that conversation is gone."""
        self._pending[conversation_id] -= 1
        if self._pending[conversation_id] <= 0:
            del self._pending[conversation_id]
        conversation = self._state.find_conversation(conversation_id)
        if conversation is None:
            logger.warning(f"Conversation {conversation_id} was removed before its reply arrived, dropping it")
            self._commit(using_mock_api=self._client.is_using_mock_api())
            return False

        conversation.add_message(Message(role=MessageRole.ASSISTANT, content=text))
        changes: dict[str, Any] = {"using_mock_api": self._client.is_using_mock_api()}
        if failed and conversation_id == self._state.current_conversation_id:
            changes["error"] = RESPONSE_FAILED
        self._commit(**changes)
        return not failed

    async def _refresh_follow_ups(self, conversation_id: str) -> None:
        conversation = self._state.find_conversation(conversation_id)
        if conversation is None or conversation.message_count < 2:
            return
        try:
            agent = find_agent(self._state.agents, conversation.agent_id)
        except AgentNotFoundError:
            return

        suggestions = await self._ai.generate_follow_up_suggestions(agent, conversation.get_messages())

        if self._state.current_conversation_id != conversation_id:
            logger.debug(f"Discarding follow-ups for inactive conversation {conversation_id}")
            return
        self._commit(
            follow_up_suggestions=[
                FollowUpSuggestion(text=text, conversation_id=conversation_id) for text in suggestions
            ]
        )

    def _schedule(self, coroutine: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coroutine)
        self._background_tasks.add(task)
        task.add_done_callback(self._on_background_done)

    def _on_background_done(self, task: asyncio.Task) -> None:
        self._background_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Background follow-up generation failed: {task.exception()}")

    def _commit(self, **changes: Any) -> None:
        for key, value in changes.items():
            setattr(self._state, key, value)
        self._state.is_loading = self._pending[self._state.current_conversation_id] > 0
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception as e:
                logger.error(f"State listener failed: {e}")
