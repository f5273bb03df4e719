"""CLI entrypoint for the crawl validation service."""

from __future__ import annotations

import asyncio
import subprocess

import typer

from .config import Settings, get_settings
from .engine.heritrix import HeritrixClient
from .logging_utils import configure_logging
from .validation.snapshot import QueueSnapshotStore

app = typer.Typer(help="Crawl Validation Service command line interface")


@app.callback()
def main(log_level: str = typer.Option("WARNING", help="Logging level")) -> None:
    configure_logging(level=log_level.upper())


@app.command()
def show_config() -> None:
    """Print the active configuration."""

    settings = get_settings()
    typer.echo(settings.model_dump_json(indent=2))


@app.command()
def queue() -> None:
    """List documents waiting in the persisted validation queue."""

    settings = get_settings()
    tasks = QueueSnapshotStore(settings.queue_snapshot_path).read()
    for task in tasks:
        typer.echo(f"{task.job_id or '-'}\t{task.source_uri}\t{task.local_path}")
    typer.echo(f"{len(tasks)} pending validation task(s)")


@app.command()
def check_engine() -> None:
    """Check that the crawl engine answers."""

    settings = get_settings()

    async def _check() -> bool:
        client = HeritrixClient.from_settings(settings)
        try:
            return await client.is_available()
        finally:
            await client.aclose()

    if not asyncio.run(_check()):
        typer.echo(f"Crawl engine at {settings.heritrix_url} is not available", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Crawl engine at {settings.heritrix_url} is available")


@app.command()
def migrate(direction: str = typer.Argument("upgrade"), revision: str = typer.Argument("head")) -> None:
    """Run Alembic migrations."""

    settings: Settings = get_settings()
    subprocess.run(["alembic", "-c", str(settings.alembic_ini_path), direction, revision], check=True)


if __name__ == "__main__":
    app()
