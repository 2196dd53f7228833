"""Sweep command implementation"""

import asyncio
from datetime import timedelta

import click
from rich.console import Console

from ..util import get_instance_path, is_initialized, load_settings

console = Console()


async def run_sweep(settings) -> int:
    """Connect, remove stale unverified accounts once, disconnect

    Args:
        settings: Loaded Settings instance

    Returns:
        Number of deleted records
    """
    from authkeeper.backend.database import connect
    from authkeeper.backend.reaper import remove_unverified_accounts

    database = await connect(
        settings.database_url,
        settings.database_name,
        echo=settings.database_echo,
    )
    try:
        return await remove_unverified_accounts(
            database,
            retention=timedelta(minutes=settings.unverified_retention_minutes),
        )
    finally:
        await database.dispose()


@click.command(name="sweep", help="Remove stale unverified accounts once")
@click.argument(
    "path",
    type=click.Path(),
    required=False,
)
def sweep(path: str = None):
    """Run a single unverified-account sweep

    Args:
        path: Instance directory path (default: ~/.authkeeper)
    """
    from authkeeper.backend.exception import AuthkeeperException

    instance_path = get_instance_path(path)

    if not is_initialized(instance_path):
        console.print(
            f"[red]Error: Not initialized at {instance_path}[/red]"
        )
        raise click.Abort()

    try:
        settings = load_settings(instance_path)
    except Exception as e:
        console.print(f"[red]Error loading config: {e}[/red]")
        raise click.Abort()

    try:
        deleted = asyncio.run(run_sweep(settings))
    except AuthkeeperException as e:
        console.print(f"[red]Sweep failed ({e.code}): {e.message}[/red]")
        raise click.Abort()

    console.print(f"[green]Removed {deleted} unverified account(s)[/green]")
