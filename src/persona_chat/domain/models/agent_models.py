"""Domain models for persona agents."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MessageRole(Enum):
    """Message roles in conversations."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Tool(BaseModel):
    """A tool an agent advertises in its system prompt."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    enabled: bool = True


class Capability(Tool):
    """An optional capability; same shape as a tool."""

    pass


class ModelConfig(BaseModel):
    """Completion parameters for an agent."""

    model_config = ConfigDict(frozen=True)

    model: str
    temperature: float = Field(default=0.7, ge=0.0, le=1.0)
    max_tokens: int | None = Field(default=None, gt=0)


class Agent(BaseModel):
    """Immutable persona template."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    id: str
    name: str
    role: str
    tagline: str
    description: str
    avatar: str = ""
    tv_reference: str
    model_settings: ModelConfig
    tools: list[Tool] = Field(default_factory=list)
    capabilities: list[Capability] | None = None
    knowledge_sources: list[str] = Field(default_factory=list)
    web_access: bool = False

    @property
    def enabled_tools(self) -> list[Tool]:
        """Tools that are switched on."""
        return [tool for tool in self.tools if tool.enabled]

    @property
    def enabled_capabilities(self) -> list[Capability]:
        """Capabilities that are switched on."""
        return [capability for capability in self.capabilities or [] if capability.enabled]

    def with_updates(self, updates: dict[str, Any]) -> "Agent":
        """Return a validated copy with a partial update merged in. The id never changes."""
        data = self.model_dump()
        for key, value in updates.items():
            if key == "id":
                continue
            if isinstance(value, BaseModel):
                value = value.model_dump()
            if isinstance(value, dict) and isinstance(data.get(key), dict):
                data[key] = {**data[key], **value}
            else:
                data[key] = value
        return Agent.model_validate(data)
