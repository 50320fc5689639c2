"""Command modules for the CabShare CLI."""

from cabshare.cli_module.commands.auth_commands import auth_group
from cabshare.cli_module.commands.profile_commands import profile_group
from cabshare.cli_module.commands.ride_commands import ride_group

__all__ = [
    'auth_group',
    'profile_group',
    'ride_group',
]
