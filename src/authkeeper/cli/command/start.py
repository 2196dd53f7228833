"""Start command implementation"""

import asyncio
import signal
from datetime import timedelta

import click
from rich.console import Console

from ..util import get_instance_path, is_initialized, load_settings

console = Console()


async def serve(settings) -> None:
    """Connect, run the reaper until SIGINT/SIGTERM, then clean up

    Args:
        settings: Loaded Settings instance
    """
    from authkeeper.backend.database import connect
    from authkeeper.backend.reaper import UnverifiedAccountReaper

    database = await connect(
        settings.database_url,
        settings.database_name,
        echo=settings.database_echo,
    )
    if not database.is_connected:
        console.print(f"[red]Error connecting to the database: {database.error}[/red]")
        raise click.Abort()

    reaper = UnverifiedAccountReaper(
        database,
        cron=settings.cleanup_cron,
        retention=timedelta(minutes=settings.unverified_retention_minutes),
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows: Ctrl+C surfaces as KeyboardInterrupt instead
            pass

    try:
        reaper.start()
        console.print(f"[cyan]Next sweep: {reaper.next_run_time}[/cyan]")
        await stop_event.wait()
    finally:
        reaper.stop()
        await database.dispose()


@click.command(name="start", help="Start the unverified-account cleanup service")
@click.argument(
    "path",
    type=click.Path(),
    required=False,
)
def start(path: str = None):
    """Start the cleanup service in the foreground

    Args:
        path: Instance directory path (default: ~/.authkeeper)
    """
    instance_path = get_instance_path(path)

    if not is_initialized(instance_path):
        console.print(
            f"[red]Error: Not initialized at {instance_path}[/red]"
        )
        console.print(
            f"[yellow]Run: authkeeper init {path if path else ''}[/yellow]"
        )
        raise click.Abort()

    try:
        settings = load_settings(instance_path)
    except Exception as e:
        console.print(f"[red]Error loading config: {e}[/red]")
        raise click.Abort()

    from authkeeper.backend.logging import setup_logging

    setup_logging(instance_path, settings)

    console.print(f"[cyan]Starting authkeeper from {instance_path}[/cyan]")
    console.print(f"[cyan]Cleanup schedule: {settings.cleanup_cron}[/cyan]")
    console.print("")

    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        pass
    console.print("[cyan]authkeeper stopped[/cyan]")
