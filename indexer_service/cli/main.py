"""Command-line entry point using Cyclopts."""

import asyncio
import sys

import cyclopts
from rich.console import Console
from rich.table import Table

from indexer_service.config import Config, configure_logging
from indexer_service.domain.indexer.model.value import IndexerId

app = cyclopts.App(
    name="indexer-service",
    help="Run and supervise indexer processes.",
)

console = Console()
err_console = Console(stderr=True)


def _load_config() -> Config:
    try:
        return Config()  # type: ignore[call-arg]
    except ValueError as e:
        err_console.print(f"[red]Invalid configuration:[/red] {e}")
        sys.exit(1)


@app.command
def serve(host: str | None = None, port: int | None = None) -> None:
    """Start the HTTP API, queue workers and liveness monitor.

    Args:
        host: Host to bind to. Defaults to server.host from config.
        port: Port to listen on. Defaults to server.port from config.
    """
    import uvicorn

    config = _load_config()
    host = host or config.server.host
    port = port or config.server.port

    console.print(f"[green]Serving[/green] on http://{host}:{port}")
    console.print(f"  [dim]Database:[/dim] {config.database.url}")
    console.print(f"  [dim]Data:[/dim] {config.storage.data_dir}")
    uvicorn.run(
        "indexer_service.application.api.rest.app:create_app",
        factory=True,
        host=host,
        port=port,
        log_config=None,  # Keep configure_logging()'s handlers
    )


@app.command
def migrate() -> None:
    """Upgrade the database schema to the latest revision."""
    from indexer_service.infrastructure.persistence.migrate import run_migrations

    config = _load_config()
    configure_logging(config.logging)
    run_migrations(config.database.url)
    console.print(f"[green]Database is up to date[/green] ({config.database.url})")


@app.command
def probe() -> None:
    """Run one liveness check and report indexers whose process is gone.

    Dead indexers are sent to the failure queue exactly as the scheduled
    monitor would; a running server's workers then mark them FailedRunning.
    """
    config = _load_config()
    configure_logging(config.logging)
    dead = asyncio.run(_probe(config))

    if not dead:
        console.print("[green]All running indexers are alive[/green]")
        return

    table = Table(title="Indexers reported dead")
    table.add_column("Indexer")
    for indexer_id in dead:
        table.add_row(str(indexer_id))
    console.print(table)


async def _probe(config: Config) -> list[IndexerId]:
    from indexer_service.application.di import create_container
    from indexer_service.domain.indexer.schedule.liveness import LivenessMonitor
    from indexer_service.util.di.base import Scope

    container = create_container(config)
    try:
        async with container(scope=Scope.UOW) as scope:
            monitor = await scope.get(LivenessMonitor)
            return await monitor.check(probe_timeout=config.monitor.probe_timeout)
    finally:
        await container.close()


if __name__ == "__main__":
    app()
