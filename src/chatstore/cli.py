"""
CLI entry point for chatstore.

This module provides the Typer-based command-line interface for inspecting
and maintaining a chat history store.

Commands:
    list        List stored sessions, optionally grouped by date
    show        Show one session and its messages
    rename      Change a session's description
    fork        Branch a session at a message
    duplicate   Copy a session
    delete      Delete a session
    export      Write every session to a JSON backup
    import      Load sessions from a JSON export
    purge       Delete every session
    info        Show store path, schema version and size

The CLI only parses arguments and renders results; all storage behaviour
lives in ChatHistory.
"""

import json
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from chatstore import __version__
from chatstore.errors import ChatStoreError
from chatstore.listing import bin_by_date, visible_sessions
from chatstore.log import configure_logging
from chatstore.schema import ChatRecord, StoreConfig, load_config
from chatstore.sessions import ChatHistory
from chatstore.transfer import delete_all_sessions, export_sessions, import_sessions, load_import_file

app = typer.Typer(
    name="chatstore",
    help="Inspect and maintain a local chat history store.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()

DbOption = Annotated[
    Optional[Path],
    typer.Option(
        "--db",
        help="Path to the SQLite history file. Defaults to the configured path.",
        resolve_path=True,
    ),
]

ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help="Path to a YAML store configuration.",
        exists=True,
        readable=True,
        resolve_path=True,
    ),
]

JsonOption = Annotated[
    bool,
    typer.Option(
        "--json",
        help="Output results in JSON format.",
    ),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]chatstore[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            help="Log debug events to stderr.",
        ),
    ] = False,
    json_logs: Annotated[
        bool,
        typer.Option(
            "--json-logs",
            help="Render log events as JSON.",
        ),
    ] = False,
) -> None:
    """
    chatstore - Local chat session storage.

    Sessions are kept in a single SQLite file with unique slugs, and can be
    forked, duplicated, exported and imported.
    """
    configure_logging(verbose=verbose, json_logs=json_logs)


# =============================================================================
# Helpers
# =============================================================================


def _resolve_config(db: Path | None, config_path: Path | None) -> StoreConfig:
    config = load_config(config_path) if config_path else StoreConfig()
    if db is not None:
        config = config.model_copy(update={"db_path": db})
    return config


def _open_history(db: Path | None, config_path: Path | None) -> ChatHistory:
    try:
        config = _resolve_config(db, config_path)
    except Exception as e:
        console.print(f"[red]Error loading config: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    history = ChatHistory.open(config)
    if history is None:
        console.print(f"[red]Chat history is unavailable at {escape(str(config.db_path))}[/red]")
        raise typer.Exit(code=1)
    return history


def _fail(error: ChatStoreError, json_output: bool = False) -> None:
    if json_output:
        print(json.dumps({"error": True, **error.to_dict()}, indent=2, default=str))
    else:
        console.print(f"[red]{escape(str(error))}[/red]")
    raise typer.Exit(code=1)


def _record_summary(record: ChatRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "urlId": record.url_id,
        "description": record.description,
        "messages": len(record.messages),
        "timestamp": record.timestamp,
    }


def _truncate(text: str, width: int = 60) -> str:
    if len(text) > width:
        return text[: width - 3] + "..."
    return text


# =============================================================================
# Commands
# =============================================================================


@app.command("list")
def list_sessions(
    db: DbOption = None,
    config: ConfigOption = None,
    search: Annotated[
        Optional[str],
        typer.Option(
            "--search",
            "-s",
            help="Only show sessions whose description contains this text.",
        ),
    ] = None,
    group: Annotated[
        bool,
        typer.Option(
            "--group",
            "-g",
            help="Group sessions by date.",
        ),
    ] = False,
    show_all: Annotated[
        bool,
        typer.Option(
            "--all",
            "-a",
            help="Include sessions without a slug or description.",
        ),
    ] = False,
    json_output: JsonOption = False,
) -> None:
    """
    List stored sessions, newest first.

    Example:
        $ chatstore list --group --search deploy
    """
    with _open_history(db, config) as history:
        try:
            records = history.get_all_sessions()
        except ChatStoreError as e:
            _fail(e, json_output)

    if not show_all:
        records = visible_sessions(records, search=search)
    elif search:
        needle = search.casefold()
        records = [r for r in records if needle in (r.description or "").casefold()]

    if json_output:
        print(json.dumps({"sessions": [_record_summary(r) for r in records], "count": len(records)}, indent=2))
        return

    if not records:
        console.print("[dim]No sessions found.[/dim]")
        return

    sections = bin_by_date(records) if group else [None]
    for section in sections:
        rows = section.items if section else records
        table = Table(
            title=section.category if section else None,
            show_header=True,
            header_style="bold",
        )
        table.add_column("ID", style="dim")
        table.add_column("Slug", style="cyan")
        table.add_column("Description")
        table.add_column("Messages", justify="right")
        table.add_column("Updated")

        for record in rows:
            table.add_row(
                record.id,
                record.url_id or "",
                escape(_truncate(record.description or "")),
                str(len(record.messages)),
                record.timestamp[:19],
            )
        console.print(table)


@app.command()
def show(
    id_or_slug: Annotated[str, typer.Argument(help="Session id or slug.")],
    db: DbOption = None,
    config: ConfigOption = None,
    json_output: JsonOption = False,
) -> None:
    """
    Show a session and its messages.

    Example:
        $ chatstore show my-chat
    """
    with _open_history(db, config) as history:
        try:
            record = history.get_session(id_or_slug)
        except ChatStoreError as e:
            _fail(e, json_output)

    if record is None:
        console.print(f"[red]Session not found: {escape(id_or_slug)}[/red]")
        raise typer.Exit(code=1)

    if json_output:
        print(json.dumps(record.model_dump(by_alias=True), indent=2, default=str))
        return

    console.print(f"[bold]Session {escape(record.id)}[/bold]")
    console.print(f"  Slug: {escape(record.url_id or '')}")
    console.print(f"  Description: {escape(record.description or '')}")
    console.print(f"  Updated: {record.timestamp[:19]}")
    console.print()

    if not record.messages:
        console.print("[dim]No messages.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", style="dim", width=4)
    table.add_column("ID", style="cyan")
    table.add_column("Role", width=10)
    table.add_column("Content")
    for index, message in enumerate(record.messages, start=1):
        table.add_row(
            str(index),
            escape(str(message.get("id", ""))),
            escape(str(message.get("role", ""))),
            escape(_truncate(str(message.get("content", "")))),
        )
    console.print(table)


@app.command()
def rename(
    id_or_slug: Annotated[str, typer.Argument(help="Session id or slug.")],
    description: Annotated[str, typer.Argument(help="New description.")],
    db: DbOption = None,
    config: ConfigOption = None,
) -> None:
    """Change a session's description."""
    with _open_history(db, config) as history:
        try:
            record = history.update_description(id_or_slug, description)
        except ChatStoreError as e:
            _fail(e)
    console.print(f"[green]✓[/green] Renamed {escape(record.id)} to {escape(description)!r}")


@app.command()
def fork(
    id_or_slug: Annotated[str, typer.Argument(help="Session id or slug.")],
    message_id: Annotated[str, typer.Argument(help="Last message to keep in the fork.")],
    db: DbOption = None,
    config: ConfigOption = None,
) -> None:
    """
    Branch a session at a message.

    Example:
        $ chatstore fork 12 msg-3
    """
    with _open_history(db, config) as history:
        try:
            slug = history.fork_session(id_or_slug, message_id)
        except ChatStoreError as e:
            _fail(e)
    console.print(f"[green]✓[/green] Forked into [cyan]{escape(slug)}[/cyan]")


@app.command()
def duplicate(
    id_or_slug: Annotated[str, typer.Argument(help="Session id or slug.")],
    db: DbOption = None,
    config: ConfigOption = None,
) -> None:
    """Copy a session with all of its messages."""
    with _open_history(db, config) as history:
        try:
            slug = history.duplicate_session(id_or_slug)
        except ChatStoreError as e:
            _fail(e)
    console.print(f"[green]✓[/green] Duplicated into [cyan]{escape(slug)}[/cyan]")


@app.command()
def delete(
    id_or_slug: Annotated[str, typer.Argument(help="Session id or slug.")],
    db: DbOption = None,
    config: ConfigOption = None,
) -> None:
    """Delete a session. Deleting an unknown session is not an error."""
    with _open_history(db, config) as history:
        try:
            record = history.get_session(id_or_slug)
            history.delete_session(record.id if record else id_or_slug)
        except ChatStoreError as e:
            _fail(e)

    if record is None:
        console.print(f"[yellow]No session {escape(id_or_slug)}; nothing to delete[/yellow]")
    else:
        console.print(f"[green]✓[/green] Deleted {escape(record.id)}")


@app.command("export")
def export_command(
    db: DbOption = None,
    config: ConfigOption = None,
    out: Annotated[
        Optional[Path],
        typer.Option(
            "--out",
            "-o",
            help="File to write. Defaults to stdout.",
            resolve_path=True,
        ),
    ] = None,
) -> None:
    """
    Export every session to a JSON backup.

    Example:
        $ chatstore export --out backup.json
    """
    with _open_history(db, config) as history:
        try:
            document = export_sessions(history)
        except ChatStoreError as e:
            _fail(e)

    text = json.dumps(document, indent=2, default=str)
    if out is None:
        print(text)
        return

    out.write_text(text + "\n", encoding="utf-8")
    console.print(f"[green]✓[/green] Exported {len(document['history'])} sessions to {escape(str(out))}")


@app.command("import")
def import_command(
    source: Annotated[
        Path,
        typer.Argument(
            help="JSON export to import.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    db: DbOption = None,
    config: ConfigOption = None,
) -> None:
    """
    Import sessions from a JSON export.

    Accepts a full backup, a {"chats": [...]} bundle or a single chat.
    """
    with _open_history(db, config) as history:
        try:
            count = import_sessions(history, load_import_file(source))
        except ChatStoreError as e:
            _fail(e)
    console.print(f"[green]✓[/green] Imported {count} sessions")


@app.command()
def purge(
    db: DbOption = None,
    config: ConfigOption = None,
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Do not ask for confirmation.",
        ),
    ] = False,
) -> None:
    """Delete every session. This cannot be undone."""
    if not yes:
        typer.confirm("Delete every stored session? This cannot be undone.", abort=True)

    with _open_history(db, config) as history:
        try:
            count = delete_all_sessions(history)
        except ChatStoreError as e:
            _fail(e)
    console.print(f"[green]✓[/green] Deleted {count} sessions")


@app.command()
def info(
    db: DbOption = None,
    config: ConfigOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show the store path, schema version and number of sessions."""
    with _open_history(db, config) as history:
        try:
            count = history.records.count()
        except ChatStoreError as e:
            _fail(e, json_output)
        db_path = str(history.handle.db_path)
        version = history.handle.schema_version

    if json_output:
        print(json.dumps({"path": db_path, "schema_version": version, "sessions": count}, indent=2))
        return

    console.print(f"[bold]Store[/bold]: {escape(db_path)}")
    console.print(f"Schema version: {version}")
    console.print(f"Sessions: {count}")
