"""CLI commands for CRM hub."""

import asyncio
import json
import uuid

import typer
from rich.console import Console

from crmhub import __version__
from crmhub.storage.database.webhook_models import WebhookEvent

app = typer.Typer(name="crmhub", help="CRM hub CLI")
console = Console()


@app.command()
def version() -> None:
    """Show version."""
    console.print(f"[bold green]CRM Hub v{__version__}[/bold green]")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind"),
    port: int = typer.Option(8000, help="Port to bind"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
) -> None:
    """Start API server."""
    import uvicorn

    console.print(f"[yellow]Starting server on {host}:{port}[/yellow]")
    uvicorn.run("crmhub.api.app:app", host=host, port=port, reload=reload)


@app.command("init-db")
def init_db_command() -> None:
    """Create database tables."""
    from crmhub.storage.database.base import close_db, init_db

    async def _run() -> None:
        await init_db()
        await close_db()

    asyncio.run(_run())
    console.print("[green]✓ Tables created[/green]")


@app.command()
def dispatch(
    event: WebhookEvent = typer.Argument(..., help="Event trigger to fire"),
    user_id: str = typer.Option(..., "--user-id", help="Acting user id"),
    data: str = typer.Option("{}", "--data", help="JSON payload"),
) -> None:
    """Fire a webhook event by hand."""
    from crmhub.storage.database.base import close_db
    from crmhub.webhooks.publisher import run_webhook_dispatch

    try:
        uuid.UUID(user_id)
    except ValueError:
        console.print(f"[red]Not a user id: {user_id}[/red]")
        raise typer.Exit(code=1)

    try:
        payload = json.loads(data)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON payload: {e}[/red]")
        raise typer.Exit(code=1)

    async def _run() -> None:
        await run_webhook_dispatch(event.value, user_id, payload)
        await close_db()

    console.print(f"[yellow]Dispatching {event.value} for {user_id}[/yellow]")
    asyncio.run(_run())
    console.print("[green]✓ Done[/green]")


if __name__ == "__main__":
    app()
