"""Command-line interface for Persona Chat."""

import asyncio

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from persona_chat.application.factories import create_conversation_store
from persona_chat.application.store import ConversationStore
from persona_chat.config import settings
from persona_chat.domain.agent_catalog import find_agent, get_default_agents
from persona_chat.domain.exceptions import AgentNotFoundError
from persona_chat.observability import setup_logging

# Initialize Typer app
app = typer.Typer(
    name="persona_chat",
    help="Persona Chat CLI - chat with persona agents",
    add_completion=False,
)

# Rich console for pretty output
console = Console()

REPL_HELP = "Commands: /quit, /clear, /followups, /image <path> <text>"


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log to stderr")):
    """Persona Chat CLI."""
    if verbose:
        setup_logging(settings.app.log_level, settings.app.log_file)


@app.command()
def info():
    """Display application information."""
    table = Table(title="Persona Chat Info")

    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Environment", settings.app.environment.value)
    table.add_row("Debug Mode", str(settings.app.debug))
    table.add_row("API Host", settings.app.api_host)
    table.add_row("API Port", str(settings.app.api_port))
    table.add_row("Completion API URL", settings.backend.api_url)
    table.add_row("API Key Configured", str(settings.backend.is_configured))
    table.add_row("Fallback Model", settings.backend.fallback_model)
    table.add_row("Moderation Enabled", str(settings.moderation.enabled))
    table.add_row("Orchestration Timeout", f"{settings.resilience.orchestration_timeout}s")

    console.print(table)


@app.command()
def list_agents():
    """List available persona agents."""
    table = Table(title="Available Agents")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Role", style="yellow")
    table.add_column("Tagline")

    for agent in get_default_agents():
        table.add_row(agent.id, agent.name, agent.role, agent.tagline)

    console.print(table)


@app.command()
def chat(
    agent_id: str = typer.Argument(..., help="ID of the agent to chat with"),
    message: str | None = typer.Option(None, "--message", "-m", help="Send one message and exit"),
    image: str | None = typer.Option(None, "--image", "-i", help="Image file to attach to --message"),
):
    """Chat with a persona agent (interactive unless --message is given)."""
    try:
        agent = find_agent(get_default_agents(), agent_id)
    except AgentNotFoundError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1) from e

    async def run_chat():
        store = create_conversation_store(settings)
        store.select_agent(agent.id)
        if not store.state.api_key_configured:
            console.print("[dim]No API key configured, replies come from the mock backend[/dim]")
        try:
            if message is not None:
                await _send(store, message, image)
            else:
                await _repl(store, agent.id)
        finally:
            await store.close()

    console.print(Panel(f"{agent.tagline}\n[dim]{agent.role} - {agent.tv_reference}[/dim]", title=agent.name))
    asyncio.run(run_chat())


async def _repl(store: ConversationStore, agent_id: str) -> None:
    console.print(f"[dim]{REPL_HELP}[/dim]")
    while True:
        try:
            line = await asyncio.to_thread(console.input, "[bold cyan]You:[/bold cyan] ")
        except (EOFError, KeyboardInterrupt):
            break

        line = line.strip()
        if not line:
            continue
        if line == "/quit":
            break
        if line == "/clear":
            store.clear_conversation()
            store.start_conversation(agent_id)
            console.print("[dim]Conversation cleared[/dim]")
        elif line == "/followups":
            await store.generate_follow_ups()
            _render_follow_ups(store)
        elif line.startswith("/image"):
            parts = line.split(maxsplit=2)
            if len(parts) < 2:
                console.print("[yellow]Usage: /image <path> <text>[/yellow]")
                continue
            await _send(store, parts[2] if len(parts) > 2 else "", parts[1])
        elif line.startswith("/"):
            console.print(f"[yellow]Unknown command.[/yellow] {REPL_HELP}")
        else:
            await _send(store, line)


async def _send(store: ConversationStore, text: str, image_path: str | None = None) -> None:
    before = store.state.current_conversation
    count_before = before.message_count if before else 0
    with console.status("[cyan]Thinking...[/cyan]"):
        if image_path:
            await store.send_image_file(text, image_path)
        else:
            await store.send_message(text)

    state = store.state
    conversation = state.current_conversation
    replied = conversation is not None and conversation.message_count > count_before
    if replied and conversation.messages[-1].role == "assistant":
        name = state.selected_agent.name if state.selected_agent else "Assistant"
        console.print(f"[bold green]{name}:[/bold green] {escape(conversation.messages[-1].text)}")
    if state.error:
        console.print(f"[red]Error:[/red] {escape(state.error)}")
        store.clear_error()
    if state.using_mock_api:
        console.print("[dim](mock mode)[/dim]")


def _render_follow_ups(store: ConversationStore) -> None:
    suggestions = store.state.follow_up_suggestions
    if not suggestions:
        console.print("[dim]No follow-up suggestions yet[/dim]")
        return
    console.print("[bold]Suggested follow-ups:[/bold]")
    for i, suggestion in enumerate(suggestions, 1):
        console.print(f"  {i}. {escape(suggestion.text)}")


@app.command()
def serve(
    host: str | None = typer.Option(None, help="Host to bind to"),
    port: int | None = typer.Option(None, help="Port to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
):
    """Start the FastAPI server."""
    import uvicorn

    host = host or settings.app.api_host
    port = port or settings.app.api_port
    console.print(f"[cyan]Starting server on {host}:{port}[/cyan]")
    uvicorn.run(
        "persona_chat.infrastructure.api.main:app",
        host=host,
        port=port,
        reload=reload,
    )


@app.command()
def config(
    show_sensitive: bool = typer.Option(False, help="Show sensitive configuration values"),
):
    """Display current configuration."""
    table = Table(title="Configuration")
    table.add_column("Section", style="cyan")
    table.add_column("Key", style="yellow")
    table.add_column("Value", style="green")

    for key, value in settings.app.model_dump().items():
        table.add_row("app", key, str(value))

    # Hide the credential unless requested
    backend_config = settings.backend.model_dump()
    if not show_sensitive and backend_config.get("api_key"):
        backend_config["api_key"] = "***HIDDEN***"

    for key, value in backend_config.items():
        table.add_row("backend", key, str(value))

    for section, section_config in (
        ("mock", settings.mock),
        ("moderation", settings.moderation),
        ("resilience", settings.resilience),
    ):
        for key, value in section_config.model_dump().items():
            table.add_row(section, key, str(value))

    console.print(table)


@app.command()
def validate():
    """Validate configuration."""
    console.print("[cyan]Validating configuration...[/cyan]")

    errors = []
    warnings = []

    if not settings.backend.api_url.startswith(("http://", "https://")):
        errors.append(f"Completion API URL is not an HTTP(S) URL: {settings.backend.api_url}")
    if settings.mock.min_delay < 0 or settings.mock.max_delay < 0:
        errors.append("Mock delays must not be negative")
    if settings.resilience.orchestration_timeout <= 0 or settings.resilience.completion_request_timeout <= 0:
        errors.append("Timeouts must be positive")

    if not settings.backend.is_configured:
        warnings.append("SAMBANOVA_API_KEY not set - replies will come from the mock backend")
    if not settings.moderation.enabled:
        warnings.append("Content moderation is disabled")

    if errors:
        console.print("[red]Validation Errors:[/red]")
        for error in errors:
            console.print(f"  ❌ {error}")

    if warnings:
        console.print("[yellow]Warnings:[/yellow]")
        for warning in warnings:
            console.print(f"  ⚠️  {warning}")

    if not errors and not warnings:
        console.print("[green]✅ Configuration is valid![/green]")
    elif not errors:
        console.print("[yellow]Configuration is valid with warnings[/yellow]")
    else:
        console.print("[red]Configuration has errors that need to be fixed[/red]")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
