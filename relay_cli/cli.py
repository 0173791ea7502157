"""Main CLI entry point for Relay CLI."""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from . import __app_name__, __version__
from .chat import ChatSession
from .config import get_config, get_env_file_path, update_config
from .exchange import WebhookExchange
from .log import setup_logging
from .models import MessageLog, MessageRole, Turn

# Rich console for beautiful output
console = Console()

EXIT_COMMANDS = ["exit", "quit", "/quit", "/exit"]


def get_input(prompt: str = "You") -> str:
    """Read one line from the user. Ctrl+C cancels the line."""
    try:
        return console.input(f"[bold yellow]{prompt}[/bold yellow] > ")
    except KeyboardInterrupt:
        console.print("\n[dim]Input cancelled.[/dim]")
        return ""


def render_turn(turn: Turn) -> None:
    """Print a single turn."""
    if turn.role == MessageRole.USER:
        console.print(Panel(turn.content, title="[bold yellow]You[/bold yellow]",
                            border_style="yellow", padding=(0, 1)))
    else:
        console.print(Panel(Markdown(turn.content), title="[bold blue]Assistant[/bold blue]",
                            border_style="blue", padding=(0, 1)))


def render_log(messages: MessageLog) -> None:
    if not messages:
        console.print("[dim]Empty conversation. Say something![/dim]")
        return
    for turn in messages:
        render_turn(turn)


app = typer.Typer(
    name=__app_name__,
    help="Chat with a conversation webhook from the terminal",
    add_completion=True,
    invoke_without_command=True,
)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"[bold blue]{__app_name__}[/bold blue] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True,
        help="Show version information."
    ),
) -> None:
    """Relay CLI - chat with a conversation webhook.

    Run without any command to start interactive chat mode.
    """
    if ctx.invoked_subcommand is None:
        asyncio.run(_chat_async())


@app.command()
def config(
    endpoint: Optional[str] = typer.Option(
        None, "--endpoint", "-e", help="Set the chat webhook URL"
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", "-t", min=0.1, help="Set the HTTP timeout in seconds"
    ),
    show: bool = typer.Option(
        False, "--show", "-s", help="Show current configuration"
    ),
) -> None:
    """Configure Relay CLI settings."""
    if endpoint:
        update_config(chat_api=endpoint)
        console.print(f"[green][OK][/green] Endpoint set to: [cyan]{endpoint}[/cyan]")

    if timeout is not None:
        update_config(timeout=timeout)
        console.print(f"[green][OK][/green] Timeout set to: [cyan]{timeout}s[/cyan]")

    if show:
        cfg = get_config()
        console.print(Panel.fit(
            f"[bold]Current Configuration[/bold]\n\n"
            f"Endpoint: {'[cyan]' + cfg.chat_api + '[/cyan]' if cfg.is_configured else '[red][X] Not set[/red]'}\n"
            f"Timeout: [cyan]{cfg.timeout}s[/cyan]\n"
            f"Log level: [cyan]{cfg.log_level}[/cyan]\n"
            f"Env file: [dim]{get_env_file_path()}[/dim]",
            title="Relay CLI Config"
        ))
        return

    if not endpoint and timeout is None:
        console.print("[yellow]Use --help to see available options[/yellow]")


async def _chat_async() -> None:
    """Async chat handler - main interactive mode."""
    cfg = get_config()
    setup_logging(cfg.log_level)

    if not cfg.is_configured:
        console.print(Panel(
            "[bold red]Chat Endpoint Not Configured[/bold red]\n\n"
            "Messages cannot be sent until a webhook URL is set:\n"
            f"  [cyan]{__app_name__} config --endpoint <url>[/cyan]\n\n"
            "Or set environment variable:\n"
            "  [cyan]export RELAY_CHAT_API=<url>[/cyan]",
            border_style="red"
        ))

    session = ChatSession(WebhookExchange(cfg))

    console.print(Panel.fit(
        f"[bold blue]Welcome to Relay CLI[/bold blue]\n"
        f"Endpoint: [cyan]{cfg.chat_api if cfg.is_configured else 'not configured'}[/cyan]\n"
        f"Type [yellow]/help[/yellow] for commands | [yellow]exit[/yellow] or [yellow]/quit[/yellow] to exit",
        title=f"Relay CLI v{__version__}"
    ))

    try:
        while True:
            try:
                user_input = get_input()

                if not user_input.strip():
                    continue

                command = user_input.strip()
                if command.lower() in EXIT_COMMANDS:
                    console.print("[dim]Goodbye![/dim]")
                    break

                if command.startswith("/"):
                    _handle_command(session, command)
                    continue

                await _handle_message(session, user_input)

            except KeyboardInterrupt:
                console.print("\n[dim]Interrupted. Type 'exit' to quit.[/dim]")
            except EOFError:
                break
    finally:
        await session.close()


def _handle_command(session: ChatSession, command: str) -> None:
    """Handle a built-in slash command."""
    name, _, arg = command.partition(" ")

    if name == "/help":
        _show_help()
    elif name == "/new":
        session.new_conversation()
        console.print("[dim]Started a new conversation.[/dim]")
    elif name == "/list":
        _show_conversations(session)
    elif name == "/open":
        entries = session.conversations()
        try:
            index = int(arg.strip())
        except ValueError:
            console.print("[yellow]Usage: /open <number>[/yellow]")
            return
        if not 1 <= index <= len(entries):
            console.print(f"[red]No conversation #{index}.[/red] Use /list to see them.")
            return
        entry = entries[index - 1]
        console.print(f"[dim]Opened:[/dim] [cyan]{entry.title}[/cyan]")
        render_log(session.select(entry.id))
    else:
        console.print(f"[red]Unknown command:[/red] {command}")


async def _handle_message(session: ChatSession, message: str) -> None:
    """Handle sending a message and displaying the response."""
    # Everything after the outbound log (history + the new user turn) is new.
    sent = len(session.state.store.active_log()) + 1

    with console.status("[dim]...[/dim]", spinner="dots"):
        await session.submit(message)

    if session.error:
        console.print(f"[red]Error:[/red] {session.error}")
        return

    replies = [t for t in session.visible[sent:] if t.role == MessageRole.ASSISTANT]
    if not replies:
        # The responder rewrote history; show its latest answer.
        replies = [t for t in session.visible if t.role == MessageRole.ASSISTANT][-1:]
    for turn in replies:
        render_turn(turn)


def _show_conversations(session: ChatSession) -> None:
    entries = session.conversations()
    if not entries:
        console.print("[dim]No past conversations.[/dim]")
        return

    table = Table(show_header=True, header_style="bold magenta", border_style="cyan")
    table.add_column("#", style="cyan", width=4)
    table.add_column("Title", style="green")
    table.add_column("Messages", style="blue", width=9)
    table.add_column("", width=8)

    for i, entry in enumerate(entries, 1):
        marker = "[bold]active[/bold]" if entry.id == session.active_id else ""
        table.add_row(str(i), entry.title, str(len(entry.messages)), marker)

    console.print(table)


def _show_help() -> None:
    """Show help for chat commands."""
    help_text = f"""[bold]Built-in Commands:[/bold]
  [yellow]exit[/yellow], [yellow]quit[/yellow]  - Exit Relay CLI
  [yellow]/help[/yellow]        - Show this help message
  [yellow]/new[/yellow]         - Start a new conversation
  [yellow]/list[/yellow]        - List past conversations (newest first)
  [yellow]/open <n>[/yellow]    - Switch to conversation number n

[bold]Configuration:[/bold]
    [cyan]{__app_name__} config --endpoint <url>[/cyan]  - Set webhook URL
    [cyan]{__app_name__} config --timeout <sec>[/cyan]   - Set HTTP timeout
    [cyan]{__app_name__} config --show[/cyan]            - Show current config

[bold]Tips:[/bold]
  - Type any message without prefix to send it
  - If a message fails it stays in the log; send again to retry
  - Conversations are kept until you exit
"""
    console.print(Panel(help_text, title="Help", border_style="blue"))


def run() -> None:
    """Entry point for the CLI."""
    app()
