"""authkeeper CLI entry point"""

import click

from .command.init import init
from .command.start import start
from .command.sweep import sweep


@click.group(
    name="authkeeper",
    help="authkeeper - user account store and unverified-account cleanup",
)
def main():
    """Main CLI entry point"""
    pass


# Register commands
main.add_command(init)
main.add_command(start)
main.add_command(sweep)


if __name__ == "__main__":
    main()
