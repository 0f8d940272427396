"""System prompt for a persona agent."""

from ..models import Agent

PERSONA_PROMPT = """You are {name}, {role}. {description} Your character is based on {tv_reference}.

Your tagline is: "{tagline}"

Respond in a way that reflects your character's personality and expertise. {tools_line}
{capabilities_line}
Your knowledge sources include: {knowledge_sources}.
{web_access_line}

Always stay in character and provide helpful, accurate information to the user."""


def build_persona_prompt(agent: Agent) -> str:
    """Render the system prompt for an agent from its enabled tools and capabilities."""
    tools = agent.enabled_tools
    if tools:
        tools_line = "You have access to the following tools: " + "; ".join(
            f"{tool.name} ({tool.description})" for tool in tools
        ) + "."
    else:
        tools_line = "You have no tools available."

    capabilities = agent.enabled_capabilities
    capabilities_line = ""
    if capabilities:
        capabilities_line = "Your capabilities include: " + "; ".join(
            f"{capability.name} ({capability.description})" for capability in capabilities
        ) + ".\n"

    return PERSONA_PROMPT.format(
        name=agent.name,
        role=agent.role,
        description=agent.description,
        tv_reference=agent.tv_reference,
        tagline=agent.tagline,
        tools_line=tools_line,
        capabilities_line=capabilities_line,
        knowledge_sources=", ".join(agent.knowledge_sources) or "general knowledge",
        web_access_line=(
            "You have access to the web for retrieving information."
            if agent.web_access
            else "You do not have web access."
        ),
    )
