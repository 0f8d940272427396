"""Local stand-in for the completion backend."""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable

from persona_chat.domain.interfaces import ICompletionBackend
from persona_chat.domain.models import (
    ChatCompletionRequest,
    ChatCompletionResponse,
    CompletionChoice,
    CompletionMessage,
    Usage,
)

logger = logging.getLogger(__name__)

MOCK_MODE_NOTICE = "(Mock mode: this reply was simulated because the completion backend is not available.)"

IMAGE_REPLY = (
    "I notice you've shared an image with me. Since I'm running in mock mode, I can't actually see the image "
    "content. With a valid API key I would analyze the image and provide relevant insights. Please configure "
    "the API key to enable image processing capabilities."
)

GENERIC_REPLY = (
    'Thank you for your message: "{message}".\n\n'
    "I'm currently running in mock mode because the completion API connection isn't working. This is a "
    "simulated response to show that the chat pipeline is functioning properly.\n\n"
    "In a real deployment you would be getting responses from the actual AI model. Please check your API "
    "configuration in the environment variables."
)

# Checked in order against the system prompt; "Q" is last because it is the loosest match
PERSONA_REPLIES: tuple[tuple[str, str], ...] = (
    (
        "Better Call Saul",
        'Well, well, well. You\'ve got a legal question on your hands, huh? "{message}" - that\'s quite the '
        "situation you've got there.\n\nAs your legal counsel, I'd advise you to consider all your options "
        "carefully. The law is complicated, but that's why you've got me in your corner.\n\n"
        "Need anything else? Just say the word. Remember: Better Call Saul!",
    ),
    (
        "SheldonGPT",
        'Fascinating question: "{message}".\n\nAccording to my superior intellect and extensive research, I can '
        "provide a comprehensive answer that few others would be capable of understanding. I suspect I'm the "
        "only one who has read all 127 relevant papers.\n\nBazinga! That was a joke. My answer, of course, is "
        "entirely factual.",
    ),
    (
        "Wolf of Wall Street",
        'Listen, pal. "{message}" - that\'s a great question. In this business you gotta be bold. You gotta take '
        "risks.\n\nHere's what I'd do in your situation: double down. Go all in. The winners in this world see "
        "an opportunity and TAKE IT.\n\nYou feeling motivated yet? Because I'm just getting started!",
    ),
    (
        "Jarvis",
        'Of course, sir. Regarding "{message}" - I\'ve analyzed the situation and prepared several options for '
        "you.\n\nMay I suggest approaching this methodically? I've organized the relevant information and can "
        "present it in whatever format you prefer.\n\nShall I proceed with the standard protocol?",
    ),
    (
        "Q",
        'Ah, 007, asking about "{message}" I see.\n\nI\'ve been working on something rather special that might '
        "help with this particular predicament. It optimizes for both precision and creativity.\n\n"
        "Shall I explain the technical specifications, or would you prefer a practical demonstration?",
    ),
)


def compose_mock_reply(system_prompt: str, user_text: str, has_image: bool) -> str:
    """Pick a persona-flavored reply by matching known names in the system prompt."""
    if has_image:
        return IMAGE_REPLY
    for marker, template in PERSONA_REPLIES:
        if marker in system_prompt:
            return f"{template.format(message=user_text)}\n\n{MOCK_MODE_NOTICE}"
    return GENERIC_REPLY.format(message=user_text)


class MockCompletionBackend(ICompletionBackend):
    """Always-succeeding backend that synthesizes replies locally."""

    def __init__(
        self,
        min_delay: float = 1.0,
        max_delay: float = 2.0,
        default_model: str = "mock-llama-4",
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._min_delay = min_delay
        self._max_delay = max(max_delay, min_delay)
        self._default_model = default_model
        self._sleep = sleep

    @property
    def name(self) -> str:
        return "mock"

    async def complete(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        last_user = request.last_user_message
        user_text = last_user.text if last_user else ""
        has_image = bool(last_user and last_user.has_image)

        logger.info(f"Mock backend answering (image={has_image}, {len(user_text)} chars)")
        content = compose_mock_reply(request.system_prompt, user_text, has_image)

        if self._max_delay > 0:
            await self._sleep(random.uniform(self._min_delay, self._max_delay))

        return ChatCompletionResponse(
            id=f"mock-{random.getrandbits(48):x}",
            model=request.model or self._default_model,
            choices=[CompletionChoice(message=CompletionMessage(content=content))],
            usage=Usage(
                prompt_tokens=len(user_text),
                completion_tokens=len(content),
                total_tokens=len(user_text) + len(content),
            ),
        )
