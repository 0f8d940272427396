"""Process-wide application state."""

from pydantic import BaseModel, Field

from persona_chat.domain.models import Agent, Conversation, FollowUpSuggestion, UserFeedback


class AppState(BaseModel):
    """Everything the presentation layer renders; mutated only by ``ConversationStore`` actions."""

    agents: list[Agent]
    selected_agent: Agent | None = None
    conversations: list[Conversation] = Field(default_factory=list)
    current_conversation_id: str | None = None
    api_key_configured: bool = False
    follow_up_suggestions: list[FollowUpSuggestion] = Field(default_factory=list)
    is_loading: bool = False
    error: str | None = None
    using_mock_api: bool = False
    feedback: list[UserFeedback] = Field(default_factory=list)

    @property
    def current_conversation(self) -> Conversation | None:
        return self.find_conversation(self.current_conversation_id)

    def find_conversation(self, conversation_id: str | None) -> Conversation | None:
        if conversation_id is None:
            return None
        for conversation in self.conversations:
            if conversation.id == conversation_id:
                return conversation
        return None

    def conversation_for_agent(self, agent_id: str) -> Conversation | None:
        for conversation in self.conversations:
            if conversation.agent_id == agent_id:
                return conversation
        return None
