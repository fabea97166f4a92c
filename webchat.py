#!/usr/bin/env python3
"""
Webchat - web-augmented chat with shareable conversations

Usage:
    python webchat.py serve                           # Start the HTTP API
    python webchat.py ask "question" [--session ID]   # Answer one message
    python webchat.py fetch URL [URL ...]             # Fetch context for URLs
    python webchat.py search "query"                  # Resolve a query to URLs
"""

import asyncio
import sys
import uuid

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from shared.config import load_config, section
from shared.logging import configure_logging

console = Console(force_terminal=True)


def cmd_serve(args: list[str]):
    """Start the HTTP API."""
    import uvicorn
    from chat.src.api import create_app

    config = load_config()
    server = section(config, "server")
    host = server.get("host", "127.0.0.1")
    port = int(server.get("port", 8000))

    console.print(f"\n[bold]Starting webchat on http://{host}:{port}[/bold]\n")
    uvicorn.run(create_app(config), host=host, port=port, log_level="info")


async def _ask(question: str, session_id: str):
    from chat.src.api import build_service

    service = build_service(load_config())
    try:
        result = await service.answer(session_id, question)
    finally:
        await service.close()
        await service.store.close()

    console.print(Panel(result.answer, title=f"session {session_id}"))
    for url in result.urls:
        console.print(f"  [cyan]{url}[/cyan]")


def cmd_ask(args: list[str]):
    """Answer one message."""
    session_id = None
    if "--session" in args:
        idx = args.index("--session")
        if idx + 1 < len(args):
            session_id = args[idx + 1]
        args = args[:idx] + args[idx + 2:]

    if not args:
        console.print("[red]Usage: webchat.py ask \"question\" [--session ID][/red]")
        return
    asyncio.run(_ask(" ".join(args), session_id or str(uuid.uuid4())))


async def _fetch(urls: list[str]):
    from acquirer.src.orchestrator import AcquisitionOrchestrator

    orchestrator = AcquisitionOrchestrator.from_config(load_config())
    contexts = await orchestrator.acquire_context(urls)

    table = Table(title="Fetched context")
    table.add_column("URL", style="cyan")
    table.add_column("Chars", style="green")
    table.add_column("Preview")
    for url, text in zip(urls, contexts):
        table.add_row(url, str(len(text)), text[:80].replace("\n", " "))
    console.print(table)


def cmd_fetch(args: list[str]):
    """Fetch context for URLs."""
    if not args:
        console.print("[red]Usage: webchat.py fetch URL [URL ...][/red]")
        return
    asyncio.run(_fetch(args))


async def _search(query: str):
    from acquirer.src.searcher import build_resolver, needs_search

    resolver = build_resolver(section(load_config(), "search"))
    try:
        urls = await resolver.resolve(query)
    finally:
        await resolver.close()

    console.print(f"needs_search: [bold]{needs_search(query)}[/bold]")
    for url in urls:
        console.print(f"  [cyan]{url}[/cyan]")
    if not urls:
        console.print("[yellow]No results[/yellow]")


def cmd_search(args: list[str]):
    """Resolve a query to URLs."""
    if not args:
        console.print("[red]Usage: webchat.py search \"query\"[/red]")
        return
    asyncio.run(_search(" ".join(args)))


def cmd_help(args: list[str]):
    """Show help."""
    console.print(__doc__)


COMMANDS = {
    "serve": cmd_serve,
    "ask": cmd_ask,
    "fetch": cmd_fetch,
    "search": cmd_search,
    "help": cmd_help,
    "--help": cmd_help,
    "-h": cmd_help,
}


def main():
    config = load_config()
    logging_config = section(config, "logging")
    configure_logging(
        level=logging_config.get("level", "INFO"),
        json_output=logging_config.get("json", False),
    )

    if len(sys.argv) < 2:
        cmd_help([])
        return

    cmd = sys.argv[1].lower()

    if cmd in COMMANDS:
        COMMANDS[cmd](sys.argv[2:])
    else:
        console.print(f"[red]Unknown command: {cmd}[/red]")
        cmd_help([])


if __name__ == "__main__":
    main()
