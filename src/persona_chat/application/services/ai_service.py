"""Orchestration between persona agents and the completion client."""

import logging
import re
from collections.abc import Sequence

from persona_chat.application.services.completion_client import CompletionClient
from persona_chat.domain.exceptions import OrchestrationError
from persona_chat.domain.models import (
    Agent,
    ChatMessage,
    ImagePart,
    ImageURL,
    Message,
    MessageBody,
    TextPart,
    content_images,
    content_text,
)
from persona_chat.domain.prompts.follow_up_prompt import FOLLOW_UP_PROMPT
from persona_chat.domain.prompts.persona_prompt import build_persona_prompt

logger = logging.getLogger(__name__)

# Substring deny-list; a stand-in for real moderation
FLAGGED_TERMS = ("explicit", "nsfw", "adult content", "pornography", "obscene")

FOLLOW_UP_TEMPERATURE = 0.7
MAX_FOLLOW_UPS = 3
MAX_FOLLOW_UP_LENGTH = 100

_NUMBERED_QUESTION = re.compile(r"^\s*\d+\.\s*(.+\?)\s*$")
_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")


def parse_follow_up_questions(response: str) -> list[str]:
    """
    Extract up to three questions from a free-text reply.

    Tiers, first match wins and tiers are never merged:
        1. numbered lines ending in "?" ("1. What is X?")
        2. any line ending in "?"
        3. sentences of the whole reply ending in "?"

    Entries longer than 100 characters are cut to 97 characters plus an ellipsis.
    """
    lines = [line.strip() for line in response.splitlines() if line.strip()]

    questions = [match.group(1).strip() for line in lines if (match := _NUMBERED_QUESTION.match(line))]
    if not questions:
        questions = [line for line in lines if line.endswith("?")]
    if not questions:
        sentences = _SENTENCE_SPLIT.split(" ".join(lines))
        questions = [sentence.strip() for sentence in sentences if sentence.strip().endswith("?")]

    return [_truncate(question) for question in questions[:MAX_FOLLOW_UPS]]


def _truncate(text: str) -> str:
    if len(text) > MAX_FOLLOW_UP_LENGTH:
        return text[: MAX_FOLLOW_UP_LENGTH - 3] + "…"
    return text


def format_history(history: Sequence[Message]) -> list[ChatMessage]:
    """Flatten stored messages into text-only request messages; earlier images are not resent."""
    return [ChatMessage(role=message.role, content=message.text) for message in history]


class AIService:
    """Builds prompts for agents, dispatches them and post-processes replies."""

    def __init__(self, completion_client: CompletionClient, moderation_enabled: bool = True):
        self._client = completion_client
        self.moderation_enabled = moderation_enabled

    @property
    def completion_client(self) -> CompletionClient:
        return self._client

    def create_system_prompt(self, agent: Agent) -> str:
        return build_persona_prompt(agent)

    async def chat(self, agent: Agent, message: MessageBody, history: Sequence[Message] = ()) -> str:
        """
        Produce the agent's reply to ``message``.

        Args:
            agent: Persona to answer as
            message: New user turn, plain text or text/image parts
            history: Prior turns, excluding ``message``

        Returns:
            Reply text

        Raises:
            OrchestrationError: If no reply could be produced
        """
        logger.info(f"Starting chat with agent '{agent.name}' ({len(history)} prior messages)")
        try:
            system_prompt = self.create_system_prompt(agent)
            formatted = format_history(history)
            formatted.append(ChatMessage(role="user", content=content_text(message)))

            images = content_images(message)
            if images:
                if len(images) > 1:
                    logger.warning(f"Message carries {len(images)} images, only the first is sent")
                return await self._client.generate_image_response(
                    system_prompt, formatted, images[0], agent.model_settings
                )

            return await self._client.generate_response(system_prompt, formatted, agent.model_settings)
        except Exception as e:
            logger.error(f"Chat with agent '{agent.name}' failed: {e}")
            raise OrchestrationError(
                f"Failed to generate response from AI service: {e}",
                agent_id=agent.id,
            ) from e

    async def generate_follow_up_suggestions(self, agent: Agent, history: Sequence[Message]) -> list[str]:
        """Ask for three follow-up questions; any failure yields an empty list."""
        try:
            model_config = agent.model_settings.model_copy(update={"temperature": FOLLOW_UP_TEMPERATURE})
            response = await self._client.generate_response(FOLLOW_UP_PROMPT, format_history(history), model_config)
            return parse_follow_up_questions(response or "")
        except Exception as e:
            logger.error(f"Error generating follow-up suggestions for '{agent.name}': {e}")
            return []

    async def moderate_content(self, content: MessageBody) -> bool:
        """
        Return True when content is appropriate.

        Only text is inspected. Internal errors fail open so that moderation never blocks the chat path.
        """
        if not self.moderation_enabled:
            return True
        try:
            text = content_text(content).lower()
            return not any(term in text for term in FLAGGED_TERMS)
        except Exception as e:
            logger.error(f"Error in content moderation, allowing content: {e}")
            return True

    @staticmethod
    def create_image_message(text: str, image_url: str) -> list[TextPart | ImagePart]:
        """Build the ``[text, image]`` content pair for a multimodal user turn."""
        return [TextPart(text=text), ImagePart(image_url=ImageURL(url=image_url))]
