"""Main CLI entry point for Review Engine.

Usage:
    review-engine serve --port 8000
    review-engine audit <review-id>
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from review_engine.config import ReviewEngineConfig, load_config
from review_engine.database.connection import get_engine, get_session_factory
from review_engine.engine.roles import Actor
from review_engine.engine.schemas import AuditEntryOut
from review_engine.engine.service import ReviewService
from review_engine.errors import ReviewEngineError
from review_engine.integrations.challenge import ChallengeClient
from review_engine.integrations.resources import ResourceClient
from review_engine.logging import setup_logging

app = typer.Typer(
    name="review-engine",
    help="Review Engine: review lifecycle and visibility authorization",
    no_args_is_help=True,
)

console = Console()


class AppContext:
    """Application context shared across CLI commands.

    Attributes:
        config: Loaded Review Engine configuration
        engine: Async SQLAlchemy engine
        session_factory: Factory for creating database sessions
    """

    def __init__(self, config: ReviewEngineConfig):
        self.config = config
        self.engine = get_engine(config.database)
        self.session_factory = get_session_factory(self.engine)


_app_context: AppContext | None = None


def get_app_context() -> AppContext:
    """Get the shared application context.

    Raises:
        RuntimeError: If context has not been initialized
    """
    if _app_context is None:
        raise RuntimeError("Application context not initialized. Call initialize_context first.")
    return _app_context


def initialize_context(config: ReviewEngineConfig) -> AppContext:
    """Initialize the global application context."""
    global _app_context
    _app_context = AppContext(config)
    return _app_context


@app.command()
def serve(
    host: Annotated[
        Optional[str],
        typer.Option("--host", "-h", help="Host to bind to (default from config)"),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option("--port", "-p", help="Port to bind to (default from config)"),
    ] = None,
) -> None:
    """Start the Review Engine HTTP API."""
    import uvicorn

    from review_engine.web.app import create_app

    ctx = get_app_context()
    bind_host = host or ctx.config.web.host
    bind_port = port or ctx.config.web.port

    console.print("[bold cyan]Starting Review Engine[/bold cyan]")
    console.print(f"[dim]Host:[/dim] {bind_host}")
    console.print(f"[dim]Port:[/dim] {bind_port}")
    console.print()

    uvicorn.run(
        create_app(ctx.config),
        host=bind_host,
        port=bind_port,
        log_level=ctx.config.logging.level.lower(),
    )


@app.command()
def audit(
    review_id: Annotated[str, typer.Argument(help="Review identifier")],
) -> None:
    """Print the audit history of a review, including deleted reviews."""
    ctx = get_app_context()
    services = ctx.config.services

    async def _load_audit() -> list[AuditEntryOut]:
        challenge_client = ChallengeClient(
            services.challenge_api_url, services.auth_token, services.timeout_seconds
        )
        resource_client = ResourceClient(
            services.resource_api_url, services.auth_token, services.timeout_seconds
        )
        service = ReviewService(ctx.session_factory, challenge_client, resource_client)
        try:
            return await service.get_review_audit(Actor(is_machine=True), review_id)
        finally:
            await challenge_client.close()
            await resource_client.close()
            await ctx.engine.dispose()

    try:
        entries = asyncio.run(_load_audit())
    except ReviewEngineError as e:
        console.print(f"[red]{e.code}:[/red] {e.message}")
        raise typer.Exit(code=1)

    table = Table(title=f"Audit history of review {review_id}")
    table.add_column("When", style="dim")
    table.add_column("Actor", style="cyan")
    table.add_column("Changes")
    for entry in entries:
        table.add_row(entry.created_at.isoformat(), entry.actor_id, entry.description)
    console.print(table)


@app.callback()
def main_callback(
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file (TOML format)",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Load configuration, set up logging and initialize the application context."""
    try:
        config = load_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading configuration:[/red] {e}")
        raise typer.Exit(code=1)

    if verbose:
        config.logging.level = "DEBUG"
    setup_logging(config.logging)
    initialize_context(config)

    if verbose:
        console.print("[dim]Debug logging enabled[/dim]")


if __name__ == "__main__":
    app()
