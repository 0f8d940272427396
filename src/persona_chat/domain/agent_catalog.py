"""Static catalog of persona agents."""

from .exceptions import AgentNotFoundError
from .models import Agent, ModelConfig, Tool

DEFAULT_MODEL = "sambanova/llama-3-70b"

AGENTS: tuple[Agent, ...] = (
    Agent(
        id="better-call-saul",
        name="Better Call Saul",
        role="Legal Strategist",
        tagline="Subpoenas faster than you can blink.",
        description=(
            "Provides legal advice, drafts contracts and disclaimers, and assists with regulatory compliance."
        ),
        avatar="/images/agents/saul.png",
        tv_reference="Saul Goodman (Breaking Bad)",
        model_settings=ModelConfig(model=DEFAULT_MODEL, temperature=0.7),
        tools=[
            Tool(
                id="document-generator",
                name="Document Generator",
                description="Generates legal documents and contracts",
            ),
            Tool(id="legal-research", name="Legal Research", description="Searches legal databases and precedents"),
        ],
        knowledge_sources=["Legal databases", "Case law repositories"],
        web_access=True,
    ),
    Agent(
        id="sheldon-gpt",
        name="SheldonGPT",
        role="Research Assistant",
        tagline="Smarter than you. And will remind you.",
        description=(
            "Conducts academic, technical, and scientific research, providing citations where applicable."
        ),
        avatar="/images/agents/sheldon.png",
        tv_reference="Sheldon Cooper (The Big Bang Theory)",
        model_settings=ModelConfig(model=DEFAULT_MODEL, temperature=0.2),
        tools=[
            Tool(id="academic-search", name="Academic Search", description="Searches academic databases and journals"),
            Tool(
                id="citation-generator",
                name="Citation Generator",
                description="Generates properly formatted citations",
            ),
        ],
        knowledge_sources=["Academic journals", "Scientific databases"],
        web_access=True,
    ),
    Agent(
        id="wolf-of-wall-street",
        name="Wolf of Wall Street",
        role="Sales Assistant",
        tagline="Sell anything. Charm everyone.",
        description="Generates sales email scripts, persuasive pitches, and growth hacking strategies.",
        avatar="/images/agents/wolf.png",
        tv_reference="Jordan Belfort (Wolf of Wall Street)",
        model_settings=ModelConfig(model=DEFAULT_MODEL, temperature=0.8),
        tools=[
            Tool(id="email-generator", name="Email Generator", description="Generates persuasive sales emails"),
            Tool(id="pitch-creator", name="Pitch Creator", description="Creates compelling sales pitches"),
        ],
        knowledge_sources=["Sales strategies", "Marketing databases"],
        web_access=True,
    ),
    Agent(
        id="jarvis",
        name="Jarvis",
        role="Admin / Personal Assistant",
        tagline="Always at your service - efficient, sharp, and dependable.",
        description="Manages tasks, sets reminders, handles calendar entries, and provides user notifications.",
        avatar="/images/agents/jarvis.png",
        tv_reference="Iron Man's AI",
        model_settings=ModelConfig(model=DEFAULT_MODEL, temperature=0.5),
        tools=[
            Tool(id="task-manager", name="Task Manager", description="Manages and organizes tasks"),
            Tool(
                id="calendar-assistant",
                name="Calendar Assistant",
                description="Manages calendar events and reminders",
            ),
        ],
        knowledge_sources=["Productivity systems", "Time management resources"],
        web_access=True,
    ),
    Agent(
        id="q",
        name="Q",
        role="Prompt Optimizer & Data Analyst",
        tagline="Gadget your AI with perfect prompts.",
        description="Creates advanced prompts, analyzes user data, and assists in workflow automation design.",
        avatar="/images/agents/q.png",
        tv_reference="Q (James Bond)",
        model_settings=ModelConfig(model=DEFAULT_MODEL, temperature=0.6),
        tools=[
            Tool(id="prompt-engineer", name="Prompt Engineer", description="Optimizes prompts for AI systems"),
            Tool(id="data-analyzer", name="Data Analyzer", description="Analyzes and visualizes data"),
        ],
        knowledge_sources=["AI prompt engineering", "Data analysis techniques"],
        web_access=True,
    ),
)


def get_default_agents() -> list[Agent]:
    """Fresh list of the catalog agents; agents are immutable so entries are shared."""
    return list(AGENTS)


def find_agent(agents: list[Agent], agent_id: str) -> Agent:
    """
    Look up an agent by id.

    Raises:
        AgentNotFoundError: If no agent has that id
    """
    for agent in agents:
        if agent.id == agent_id:
            return agent
    raise AgentNotFoundError(f"Agent '{agent_id}' not found", agent_id=agent_id)
