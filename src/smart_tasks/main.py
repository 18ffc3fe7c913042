import asyncio
from typing import Annotated, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from typer import Argument, Exit, Option, Typer

from .config import SearchSettings, resolve_db_path, resolve_log_level
from .embeddings import EmbeddingProvider
from .errors import SearchError, TaskNotFoundError
from .logging_setup import setup_logging
from .search import SearchResult, TaskSearchService
from .storage import DuckDBTaskStore
from .tasks import TaskService

app = Typer(help="Personal task manager with semantic search.")

DbPathOption = Annotated[
    Optional[str],
    Option("--db-path", help="DuckDB file to use (defaults to SMART_TASKS_DB_PATH)."),
]
UserOption = Annotated[str, Option("--user", "-u", help="Id of the task owner.")]


def _open_store(db_path: str | None) -> DuckDBTaskStore:
    return DuckDBTaskStore(resolve_db_path(db_path))


def _optional_embedder() -> EmbeddingProvider | None:
    try:
        return EmbeddingProvider()
    except ValueError:
        return None


@app.callback()
def configure(
    log_level: Annotated[
        Optional[str], Option("--log-level", help="Logging level (defaults to INFO).")
    ] = None,
) -> None:
    setup_logging(resolve_log_level(log_level))


@app.command()
def serve(
    host: Annotated[str, Option("--host")] = "127.0.0.1",
    port: Annotated[int, Option("--port")] = 8000,
) -> None:
    """Run the HTTP API."""
    from .server import run_server

    run_server(host=host, port=port)


@app.command()
def session(user: UserOption, db_path: DbPathOption = None) -> None:
    """Mint a session token for a user."""
    store = _open_store(db_path)
    try:
        token = store.create_session(user)
    finally:
        store.close()
    Console().print(token)


@app.command()
def add(
    text: Annotated[str, Argument(help="Task description.")],
    user: UserOption,
    priority: Annotated[str, Option("--priority", "-p")] = "medium",
    status: Annotated[str, Option("--status", "-s")] = "pending",
    parent: Annotated[Optional[str], Option("--parent", help="Parent task id.")] = None,
    db_path: DbPathOption = None,
) -> None:
    """Create a task (or a subtask with --parent)."""
    console = Console()
    store = _open_store(db_path)
    try:
        task = TaskService(store, _optional_embedder()).create_task(
            user,
            text,
            priority=priority,  # type: ignore[arg-type]
            status=status,  # type: ignore[arg-type]
            parent_task_id=parent,
        )
    except (ValueError, TaskNotFoundError) as exc:
        console.print(f"[bold red]Could not create task:[/] {exc}")
        raise Exit(code=1)
    finally:
        store.close()
    embedded = "yes" if task.embedding is not None else "no"
    console.print(f"[bold green]Created[/] {task.id} (embedding stored: {embedded})")


@app.command(name="list")
def list_tasks(user: UserOption, db_path: DbPathOption = None) -> None:
    """Show a user's tasks with their subtasks."""
    console = Console()
    store = _open_store(db_path)
    try:
        trees = TaskService(store).list_tasks(user)
    finally:
        store.close()

    if not trees:
        console.print("[yellow]No tasks yet.[/]")
        return

    table = Table(title=f"Tasks for {user}")
    table.add_column("Id", style="dim")
    table.add_column("Task")
    table.add_column("Priority")
    table.add_column("Status")
    for tree in trees:
        table.add_row(tree.task.id, tree.task.text, tree.task.priority, tree.task.status)
        for sub in tree.subtasks:
            table.add_row(sub.id, f"  - {sub.text}", sub.priority, sub.status)
    console.print(table)


async def run_search(
    query: str, *, user: str, db_path: str | None = None
) -> list[SearchResult]:
    store = _open_store(db_path)
    token = store.create_session(user)
    try:
        service = TaskSearchService(
            store, store, _optional_embedder(), SearchSettings.from_env()
        )
        return await service.search(token, query)
    finally:
        store.revoke_session(token)
        store.close()


@app.command()
def search(
    query: Annotated[str, Argument(help="What you are looking for.")],
    user: UserOption,
    db_path: DbPathOption = None,
) -> None:
    """Semantic search over a user's top-level tasks."""
    console = Console()
    try:
        results = asyncio.run(run_search(query, user=user, db_path=db_path))
    except SearchError as exc:
        panel = Panel(
            exc.public_message,
            title_align="left",
            title="Search failed",
            border_style="bold red",
        )
        console.print(panel)
        raise Exit(code=1)

    if not results:
        console.print("[yellow]No matching tasks.[/]")
        return

    table = Table(title=f"Results for {query!r}")
    table.add_column("Similarity", justify="right")
    table.add_column("Task")
    table.add_column("Priority")
    table.add_column("Status")
    for result in results:
        table.add_row(
            f"{result.similarity:.3f}", result.text, result.priority, result.status
        )
    console.print(table)
