"""Init command implementation"""

import click
from rich.console import Console

from ..util import get_instance_path, is_initialized

console = Console()


@click.command(name="init", help="Initialize a new authkeeper instance")
@click.argument(
    "path",
    type=click.Path(),
    required=False,
)
def init(path: str = None):
    """Initialize a new authkeeper instance

    Args:
        path: Instance directory path (default: ~/.authkeeper)
    """
    instance_path = get_instance_path(path)

    if is_initialized(instance_path):
        console.print(
            f"[red]Error: Already initialized at {instance_path}[/red]"
        )
        raise click.Abort()

    # 1. Create directory structure
    console.print(f"Initializing authkeeper instance at {instance_path}")
    console.print("")

    instance_path.mkdir(parents=True, exist_ok=True)
    (instance_path / "data").mkdir(exist_ok=True)
    (instance_path / "logs").mkdir(exist_ok=True)

    # 2. Generate config.toml with default settings
    console.print("Generating configuration...")

    db_path = instance_path / "data" / "authkeeper.db"
    config_content = f"""database_url = "sqlite:///{db_path.as_posix()}"
database_name = "authkeeper"

bcrypt_rounds = 10
verification_code_expire_minutes = 5
reset_password_expire_minutes = 15

unverified_retention_minutes = 30
cleanup_cron = "*/30 * * * *"

logging_level = "INFO"
logging_when = "midnight"
logging_backup_count = 30
"""

    config_file = instance_path / "config.toml"
    config_file.write_text(config_content)

    # 3. Display success message
    console.print("")
    console.print("[green]✓ authkeeper instance initialized successfully![/green]")
    console.print("")
    console.print(f"Location: {instance_path}")
    console.print("")
    console.print("Next steps:")
    console.print("  1. (Optional) Edit configuration:")
    console.print(f"     {config_file}")
    console.print("")
    console.print("  2. Start the cleanup service:")
    if path:
        console.print(f"     authkeeper start {path}")
    else:
        console.print("     authkeeper start")
    console.print("")
    console.print(f"Database: {db_path}")
    console.print(f"Logs: {instance_path / 'logs'}/")
