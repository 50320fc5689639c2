"""Main CLI entry point for CabShare application."""

import logging

import click

from cabshare import config

# Set context settings to properly display help for all commands
CONTEXT_SETTINGS = {
    "help_option_names": ["-h", "--help"],
    "max_content_width": 120,
    "show_default": True
}

from cabshare.cli_module.commands.auth_commands import auth_group
from cabshare.cli_module.commands.profile_commands import profile_group
from cabshare.cli_module.commands.ride_commands import ride_group


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option("--verbose", "-v", is_flag=True, help="Show informational log messages")
def cli(verbose):
    """CabShare CLI application for sharing rides."""
    level = logging.INFO if verbose else getattr(logging, config.LOG_LEVEL.upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


# Register all command groups
cli.add_command(auth_group)
cli.add_command(profile_group)
cli.add_command(ride_group)


def main():
    """Entry point for the application."""
    cli()


if __name__ == '__main__':
    main()
