"""UNMASK CLI - command-line interface for the relationship analytics service.

Usage:
    unmask init-db                     Create or migrate the database
    unmask import-csv messages.csv     Import a text-message export
    unmask vectorize --all             Chunk and embed every message
    unmask classify "text"             Show the intent classifier's verdict
    unmask chat "text"                 Ask the agents a question
    unmask stats                       Show dashboard statistics
    unmask serve                       Start the API server
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import NoReturn

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from unmask import __version__
from unmask.config import get_config
from unmask.errors import UnmaskError, VectorizeError
from unmask.observability import setup_logging

console = Console()
logger = logging.getLogger(__name__)


def _format_unmask_error(error: UnmaskError) -> None:
    """Print an UnmaskError with its code and details."""
    console.print(f"[red]Error: {error.message}[/red] [dim]({error.code.value})[/dim]")
    for key, value in error.details.items():
        console.print(f"  [dim]{key}:[/dim] {value}")


def cmd_init_db(args: argparse.Namespace) -> int:
    """Create the schema (or migrate an existing database)."""
    from unmask.db import UnmaskDB

    db = UnmaskDB(Path(args.db) if args.db else None)
    created = db.init_schema()
    indices = db.verify_indices()
    state = "created" if created else "up to date"
    console.print(f"[green]Database {state}:[/green] {db.db_path}")
    if indices.get("created"):
        names = ", ".join(sorted(indices["created"]))
        console.print(f"[dim]Created missing indices: {names}[/dim]")
    return 0


def cmd_import_csv(args: argparse.Namespace) -> int:
    """Import a CSV file of messages."""
    from unmask.db import get_db
    from unmask.ingest import import_csv

    path = Path(args.file)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        console.print(f"[red]Cannot read {path}: {e}[/red]")
        return 1

    result = import_csv(get_db(), text)
    console.print(
        f"[green]Imported {result.inserted_count}[/green] of {result.total_records} rows "
        f"({result.skipped_count} skipped, {len(result.errors)} failed)"
    )
    for error in result.errors[:5]:
        console.print(f"  [yellow]{error['error']}[/yellow]")
    return 0 if not result.errors else 1


def cmd_vectorize(args: argparse.Namespace) -> int:
    """Chunk, embed and store messages."""
    from unmask.db import get_db
    from unmask.llm import get_llm_client
    from unmask.vectorize import populate, populate_all

    db = get_db()
    llm = get_llm_client()
    if not llm.available:
        console.print("[yellow]No OpenAI key configured; using offline pseudo-embeddings.[/yellow]")

    try:
        if args.all:
            results = populate_all(db, llm, batch_size=args.batch_size, offset=args.offset)
        else:
            results = [populate(db, llm, batch_size=args.batch_size, offset=args.offset)]
    except VectorizeError as e:
        _format_unmask_error(e)
        return 1

    table = Table(title="Vectorization")
    table.add_column("Offset", justify="right")
    table.add_column("Messages", justify="right")
    table.add_column("Conversations", justify="right")
    table.add_column("Failed", justify="right")
    for r in results:
        table.add_row(
            str(r.offset),
            str(r.messages_processed),
            str(r.conversations),
            str(r.failed_chunks),
        )
    console.print(table)

    last = results[-1]
    if last.has_more:
        next_offset = last.offset + last.batch_size
        console.print(f"[dim]More messages remain. Continue with --offset {next_offset}[/dim]")
    return 0


def cmd_classify(args: argparse.Namespace) -> int:
    """Run the keyword intent classifier on a message."""
    from unmask.agents.registry import route_for_intent
    from unmask.intent import KeywordIntentClassifier

    result = KeywordIntentClassifier().classify(args.text)
    route = route_for_intent(result.intent)

    table = Table(title="Intent Classification", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Intent", result.intent.value)
    table.add_row("Confidence", f"{result.confidence:.2f}")
    table.add_row("Reasoning", result.reasoning)
    table.add_row("Emotional context", result.emotional_context)
    table.add_row("Urgency", result.urgency)
    table.add_row("Routed to", route.primary_agent)
    console.print(table)
    return 0


def cmd_chat(args: argparse.Namespace) -> int:
    """Send one message through the orchestrator."""
    from unmask.agents import format_agent_response, get_orchestrator

    user_id = args.user or get_config().orchestrator.default_user_id
    response = get_orchestrator().process(user_id, args.text)
    console.print(
        Panel(
            format_agent_response(response.response, response.agent_type, response.confidence),
            title=response.agent_type,
        )
    )
    if response.next_steps:
        console.print("[bold]Next steps:[/bold]")
        for i, step in enumerate(response.next_steps, 1):
            console.print(f"  {i}. {step}")
    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    """Print dashboard statistics."""
    from unmask.db import get_db
    from unmask.insights import dashboard_stats

    data = dashboard_stats(get_db())
    stats = data["stats"]
    insights = data["insights"]

    table = Table(title="UNMASK Statistics", show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Total messages", f"{stats['totalMessages']:,}")
    table.add_row("Years of data", str(stats["yearsOfData"]))
    table.add_row("Participants", str(stats["participants"]))
    table.add_row("Most active hour", insights["mostActiveHour"])
    table.add_row("Average per day", str(insights["averagePerDay"]))
    table.add_row("Communication health", f"{insights['communicationHealth']}/10")
    table.add_row("Vectorized", "yes" if data["metadata"]["vectorized"] else "no")
    console.print(table)
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the API server.

    Args:
        args: Parsed arguments with host, port, and reload options.

    Returns:
        Exit code.
    """
    import uvicorn

    server = get_config().server
    host = args.host or server.host
    port = args.port or server.port

    console.print(
        Panel(
            f"[bold green]Starting UNMASK API Server[/bold green]\n"
            f"Host: {host}\n"
            f"Port: {port}\n"
            f"Reload: {'Enabled' if args.reload else 'Disabled'}",
            title="API Server",
        )
    )

    try:
        uvicorn.run("api.main:app", host=host, port=port, reload=args.reload, log_level="info")
        return 0
    except Exception as e:
        console.print(f"[red]Error starting server: {e}[/red]")
        return 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands.

    Returns:
        Configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        prog="unmask",
        description="UNMASK - relationship analytics over your text-message history",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="enable debug logging for troubleshooting"
    )
    parser.add_argument("--json-logs", action="store_true", help="emit logs as JSON lines")
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", title="commands")

    init_parser = subparsers.add_parser("init-db", help="create or migrate the database")
    init_parser.add_argument("--db", help="database path (defaults to the configured path)")
    init_parser.set_defaults(func=cmd_init_db)

    import_parser = subparsers.add_parser("import-csv", help="import a CSV message export")
    import_parser.add_argument("file", help="path to the CSV file")
    import_parser.set_defaults(func=cmd_import_csv)

    vec_parser = subparsers.add_parser("vectorize", help="chunk and embed stored messages")
    vec_parser.add_argument("--batch-size", type=int, default=None, help="messages per batch")
    vec_parser.add_argument("--offset", type=int, default=0, help="messages to skip")
    vec_parser.add_argument("--all", action="store_true", help="process every remaining batch")
    vec_parser.set_defaults(func=cmd_vectorize)

    classify_parser = subparsers.add_parser("classify", help="classify a message's intent")
    classify_parser.add_argument("text", help="message to classify")
    classify_parser.set_defaults(func=cmd_classify)

    chat_parser = subparsers.add_parser("chat", help="ask the relationship agents a question")
    chat_parser.add_argument("text", help="question to ask")
    chat_parser.add_argument("--user", help="user id (defaults to the configured user)")
    chat_parser.set_defaults(func=cmd_chat)

    stats_parser = subparsers.add_parser("stats", help="show dashboard statistics")
    stats_parser.set_defaults(func=cmd_stats)

    serve_parser = subparsers.add_parser("serve", help="start the API server")
    serve_parser.add_argument("--host", help="bind address (defaults to config)")
    serve_parser.add_argument("-p", "--port", type=int, help="port (defaults to config)")
    serve_parser.add_argument("--reload", action="store_true", help="auto-reload on changes")
    serve_parser.set_defaults(func=cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command-line arguments. Uses sys.argv if None.

    Returns:
        Exit code.
    """
    parser = create_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose, json_format=args.json_logs)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        result: int = args.func(args)
    except UnmaskError as e:
        _format_unmask_error(e)
        logger.debug("Command failed", exc_info=True)
        return 1
    return result


def run() -> NoReturn:
    """Entry point that handles interrupts and exit codes."""
    try:
        exit_code = main()
    except KeyboardInterrupt:
        console.print("\n[dim]Interrupted.[/dim]")
        exit_code = 130
    sys.exit(exit_code)


if __name__ == "__main__":
    run()
