"""Terminal chat front end driving ``ChatSession``."""

import asyncio
import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.table import Table

from chat_client.api import ApiError, ConversationApi
from chat_client.session import ChatSession, LocalMessage
from config import API_BASE_URL

logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
    handlers=[RichHandler(rich_tracebacks=True, show_time=False)],
)
logger = logging.getLogger(__name__)

app = typer.Typer(
    name="chat-cli",
    help="Chat with the conversational agent from the terminal",
)
console = Console()

HELP_TEXT = """Commands:
  /new                  start a new conversation
  /list [page]          list conversations
  /open <n|threadId>    open a conversation from the last listing
  /search <query>       search conversations
  /rename <title>       rename the active conversation
  /delete [n|threadId]  delete a conversation (active one by default)
  /help                 show this help
  /quit                 exit"""


def render_message(message: LocalMessage) -> None:
    if message.sender == "user":
        suffix = " [red](failed)[/red]" if message.status == "failed" else ""
        console.print(f"[bold cyan]You:[/bold cyan] {message.content}{suffix}")
    elif message.is_error_notice:
        console.print(f"[bold red]AI:[/bold red] {message.content}")
    else:
        console.print("[bold green]AI:[/bold green]")
        console.print(Markdown(message.content))


def render_conversations(session: ChatSession) -> None:
    if not session.conversations:
        console.print("[dim]No conversations found[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Title")
    table.add_column("Messages", justify="right")
    table.add_column("Thread")
    for index, conversation in enumerate(session.conversations, start=1):
        marker = "*" if conversation["threadId"] == session.active_thread_id else ""
        table.add_row(
            f"{index}{marker}",
            conversation["title"],
            str(conversation["messageCount"]),
            conversation["threadId"],
        )
    console.print(table)

    if session.pagination and session.pagination.get("total"):
        console.print(f"[dim]Page {session.pagination['current']} of {session.pagination['total']}[/dim]")


def resolve_thread(session: ChatSession, ref: str) -> str:
    """Accept either a 1-based index into the last listing or a thread id."""
    if ref.isdigit() and 0 < int(ref) <= len(session.conversations):
        return session.conversations[int(ref) - 1]["threadId"]
    return ref


async def handle_command(session: ChatSession, line: str) -> bool:
    """Run a slash command; returns False when the user wants to quit."""
    command, _, arg = line[1:].partition(" ")
    arg = arg.strip()

    if command in ("quit", "exit"):
        return False
    if command == "help":
        console.print(HELP_TEXT)
    elif command == "new":
        session.new_conversation()
        console.print("[dim]New conversation; it is created when you send a message.[/dim]")
    elif command == "list":
        await session.refresh_directory(page=int(arg) if arg.isdigit() else 1)
        render_conversations(session)
    elif command == "search":
        await session.search(arg)
        render_conversations(session)
    elif command == "open":
        if not arg:
            console.print("[yellow]Usage: /open <n|threadId>[/yellow]")
        elif await session.select(resolve_thread(session, arg)):
            console.rule(session.title or "")
            for message in session.messages:
                render_message(message)
        else:
            console.print(f"[red]{session.last_error}[/red]")
    elif command == "rename":
        if not session.active_thread_id:
            console.print("[yellow]No active conversation[/yellow]")
        else:
            await session.rename(session.active_thread_id, arg)
            console.print(f"[dim]Renamed to {session.title}[/dim]")
    elif command == "delete":
        thread_id = resolve_thread(session, arg) if arg else session.active_thread_id
        if not thread_id:
            console.print("[yellow]No conversation to delete[/yellow]")
        else:
            await session.delete(thread_id)
            console.print("[dim]Conversation deleted[/dim]")
    else:
        console.print(f"[yellow]Unknown command /{command}; try /help[/yellow]")
    return True


async def run_chat(base_url: str) -> None:
    async with ConversationApi(base_url=base_url) as api:
        session = ChatSession(api)
        console.print("[bold]Conversational agent[/bold] - type /help for commands")

        while True:
            try:
                line = await asyncio.to_thread(console.input, "[bold cyan]> [/bold cyan]")
            except (EOFError, KeyboardInterrupt):
                break

            line = line.strip()
            if not line:
                continue

            if line.startswith("/"):
                try:
                    if not await handle_command(session, line):
                        break
                except ApiError as e:
                    console.print(f"[red]{e.message}[/red]")
                continue

            with console.status("Thinking..."):
                ok = await session.send(line)

            if ok:
                render_message(session.messages[-1])
                if session.title:
                    console.print(f"[dim]{session.title}[/dim]")
            else:
                render_message(session.messages[-1])
                console.print(f"[red]{session.last_error}[/red]")
                session.dismiss_error()


@app.command()
def chat(
    base_url: str = typer.Option(API_BASE_URL, "--base-url", "-u", help="Backend API root"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Start an interactive chat session."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    asyncio.run(run_chat(base_url))


if __name__ == "__main__":
    app()
