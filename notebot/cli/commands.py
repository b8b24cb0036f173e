"""CLI commands for notebot."""

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from notebot import __logo__, __version__
from notebot.config.schema import Config

if TYPE_CHECKING:
    from notebot.agent.errors import ErrorLogger
    from notebot.agent.loop import AgentLoop
    from notebot.bus.queue import MessageBus
    from notebot.notes.store import NoteStore

app = typer.Typer(
    name="notebot",
    help=f"{__logo__} notebot - notes assistant",
    no_args_is_help=True,
)

console = Console()

# User id the CLI reads and writes notes as (matches AgentLoop.process_direct)
CLI_USER_ID = "cli_user"


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} notebot v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(None, "--version", callback=version_callback, is_eager=True),
):
    """notebot - notes assistant."""
    pass


@dataclass
class Services:
    """Long-lived collaborators built once from config."""

    config: Config
    notes: "NoteStore"
    error_logger: "ErrorLogger"

    async def close(self) -> None:
        await self.notes.content.close()


def build_services(config: Config) -> Services:
    """Construct the note store and its backends from ``config``."""
    from notebot.agent.errors import ErrorLogger
    from notebot.llm.embeddings import EmbeddingService
    from notebot.notes import NoteCache, NoteIndex, NoteStore
    from notebot.providers.resolver import ProviderResolver
    from notebot.storage import AutoDriveContentStore, ChromaVectorIndex, LocalContentStore
    from notebot.utils.helpers import ensure_dir

    data_path = ensure_dir(config.data_path)
    error_logger = ErrorLogger(data_path)
    resolver = ProviderResolver(config.providers, config.agent.provider)

    if config.storage.backend == "autodrive":
        content = AutoDriveContentStore(
            api_key=config.storage.auto_drive.api_key,
            api_base=config.storage.auto_drive.api_base,
            chunk_size=config.storage.auto_drive.chunk_size,
            timeout=config.notes.storage_timeout,
        )
    else:
        content = LocalContentStore(config.storage.local.path)

    embed_key, embed_base = resolver.resolve(config.embedding.provider, model=config.embedding.model)
    embedder = EmbeddingService(
        model=config.embedding.model,
        api_key=embed_key,
        api_base=embed_base,
        timeout=config.embedding.timeout,
    )

    vectors = ChromaVectorIndex.connect(
        host=config.vector.host,
        port=config.vector.port,
        path=str(ensure_dir(config.vector.path_expanded)),
        collection_prefix=config.vector.collection_prefix,
    )

    notes = NoteStore(
        content=content,
        embedder=embedder,
        vectors=vectors,
        index=NoteIndex(data_path / "db.json"),
        cache=NoteCache(
            capacity=config.notes.cache_capacity,
            max_age=config.notes.cache_max_age_seconds,
        ),
        max_concurrency=config.notes.max_concurrency,
        timeout=config.notes.storage_timeout,
        error_logger=error_logger,
    )
    return Services(config=config, notes=notes, error_logger=error_logger)


def _make_agent(config: Config, services: Services, bus: "MessageBus") -> "AgentLoop":
    from notebot.agent.context import ContextBuilder
    from notebot.agent.loop import AgentLoop
    from notebot.providers.litellm_provider import LiteLLMProvider
    from notebot.providers.resolver import ProviderResolver
    from notebot.session.history import ConversationHistoryManager

    api_key, api_base = ProviderResolver(config.providers, config.agent.provider).resolve(
        model=config.agent.model
    )
    if not api_key:
        console.print("[red]Error: No API key configured.[/red]")
        console.print("Set one in ~/.notebot/config.json under providers.openai.apiKey")
        raise typer.Exit(1)

    provider = LiteLLMProvider(
        api_key=api_key,
        api_base=api_base,
        default_model=config.agent.model,
        max_tokens=config.agent.max_tokens,
        temperature=config.agent.temperature,
        timeout=config.agent.request_timeout,
    )
    return AgentLoop(
        bus=bus,
        provider=provider,
        notes=services.notes,
        history=ConversationHistoryManager(config.agent.max_history),
        context=ContextBuilder(name=config.agent.name),
        max_turns=config.agent.max_turns,
        search_limit=config.notes.search_limit,
        error_logger=services.error_logger,
    )


def _load(verbose: bool = False) -> Config:
    from notebot.config.loader import load_config
    from notebot.logging_config import setup_logging

    setup_logging("DEBUG" if verbose else None)
    return load_config()


# ============================================================================
# Onboard / Setup
# ============================================================================


@app.command()
def onboard():
    """Initialize notebot configuration and data directory."""
    from notebot.config.loader import get_config_path, save_config
    from notebot.utils.helpers import get_data_path

    config_path = get_config_path()

    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    config = Config()
    save_config(config)
    console.print(f"[green]✓[/green] Created config at {config_path}")

    data_dir = get_data_path(config.notes.data_dir)
    console.print(f"[green]✓[/green] Created data directory at {data_dir}")

    console.print(f"\n{__logo__} notebot is ready!")
    console.print("\nNext steps:")
    console.print("  1. Add your API key to [cyan]~/.notebot/config.json[/cyan]")
    console.print('  2. Chat: [cyan]notebot agent -m "Remember that my locker code is 4812"[/cyan]')
    console.print("  3. Enable Telegram or Discord under [cyan]channels[/cyan] and run [cyan]notebot gateway[/cyan]")


# ============================================================================
# Gateway / Agent
# ============================================================================


@app.command()
def gateway(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Start the notebot gateway (chat channels + agent)."""
    from notebot.bus.queue import MessageBus
    from notebot.channels.manager import ChannelManager

    config = _load(verbose)
    console.print(f"{__logo__} Starting notebot gateway...")

    bus = MessageBus()
    services = build_services(config)
    agent = _make_agent(config, services, bus)
    channels = ChannelManager(config, bus)

    if channels.enabled_channels:
        console.print(f"[green]✓[/green] Channels enabled: {', '.join(channels.enabled_channels)}")
    else:
        console.print("[yellow]Warning: No channels enabled[/yellow]")
    console.print(f"[green]✓[/green] Content store: {config.storage.backend}")

    async def run():
        try:
            await asyncio.gather(agent.run(), channels.start_all())
        finally:
            await agent.stop()
            await channels.stop_all()
            await services.close()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\nShutting down...")


@app.command()
def agent(
    message: str = typer.Option(None, "--message", "-m", help="Message to send to the agent"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Chat with the agent from the terminal."""
    from notebot.bus.queue import MessageBus

    config = _load(verbose)
    services = build_services(config)
    agent_loop = _make_agent(config, services, MessageBus())

    def _print_replies(replies: list[str]) -> None:
        for reply in replies:
            console.print(f"\n{__logo__} ", end="")
            console.print(Markdown(reply))

    async def run_once():
        try:
            _print_replies(await agent_loop.process_direct(message, user_id=CLI_USER_ID))
        finally:
            await services.close()

    async def run_interactive():
        console.print(f"{__logo__} Interactive mode (Ctrl+C to exit)\n")
        try:
            while True:
                try:
                    user_input = await asyncio.to_thread(console.input, "[bold blue]You:[/bold blue] ")
                except EOFError:
                    break
                if not user_input.strip():
                    continue
                _print_replies(await agent_loop.process_direct(user_input, user_id=CLI_USER_ID))
        finally:
            await services.close()

    try:
        asyncio.run(run_once() if message else run_interactive())
    except KeyboardInterrupt:
        console.print("\nGoodbye!")


# ============================================================================
# Notes
# ============================================================================


notes_app = typer.Typer(help="Inspect stored notes")
app.add_typer(notes_app, name="notes")


@notes_app.command("list")
def notes_list(
    tag: str = typer.Option(None, "--tag", "-t", help="Only notes with this tag"),
    user: str = typer.Option(CLI_USER_ID, "--user", "-u", help="User id, e.g. telegram_123"),
):
    """List a user's notes."""
    from notebot.notes import NoteIndex

    config = _load()
    index = NoteIndex(config.data_path / "db.json")
    metas = index.entries(user)
    if tag:
        metas = [meta for meta in metas if tag in meta.tags]

    if not metas:
        console.print("No notes found.")
        return

    table = Table(title=f"Notes for {user}")
    table.add_column("CID", style="cyan", no_wrap=True)
    table.add_column("Title")
    table.add_column("Tags", style="dim")
    table.add_column("Created", style="dim")
    for meta in metas:
        table.add_row(meta.cid, meta.title, ", ".join(meta.tags), meta.created_at)
    console.print(table)


@notes_app.command("search")
def notes_search(
    query: str = typer.Argument(..., help="Search query"),
    limit: int = typer.Option(5, "--limit", "-n", help="Maximum results"),
    user: str = typer.Option(CLI_USER_ID, "--user", "-u", help="User id, e.g. telegram_123"),
):
    """Search a user's notes by semantic similarity."""
    config = _load()
    services = build_services(config)

    async def run():
        try:
            return await services.notes.search_similar(user, query, limit=limit)
        finally:
            await services.close()

    hits = asyncio.run(run())
    if not hits:
        console.print(f"No notes found matching: {query}")
        return

    table = Table(title=f"Results for: {query}")
    table.add_column("Score", justify="right")
    table.add_column("CID", style="cyan", no_wrap=True)
    table.add_column("Title")
    table.add_column("Content")
    for hit in hits:
        preview = hit.note.content[:80] + ("..." if len(hit.note.content) > 80 else "")
        table.add_row(f"{hit.score:.3f}", hit.cid, hit.note.title, preview)
    console.print(table)


@notes_app.command("show")
def notes_show(
    cid: str = typer.Argument(..., help="Note CID"),
    user: str = typer.Option(CLI_USER_ID, "--user", "-u", help="User id, e.g. telegram_123"),
):
    """Show the full content of a note."""
    config = _load()
    services = build_services(config)

    async def run():
        try:
            return await services.notes.get_note(user, cid)
        finally:
            await services.close()

    note = asyncio.run(run())
    if note is None:
        console.print(f"[red]Note {cid} not found for {user}[/red]")
        raise typer.Exit(1)

    console.print(f"[bold]{note.title}[/bold]  [dim]{note.created_at}[/dim]")
    if note.tags:
        console.print(f"[dim]Tags: {', '.join(note.tags)}[/dim]")
    console.print()
    console.print(note.content)


if __name__ == "__main__":
    app()
