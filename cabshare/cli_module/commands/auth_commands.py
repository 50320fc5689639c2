"""Authentication commands for the CabShare CLI."""

import click

from cabshare.services.auth_service import AuthError
from cabshare.services.session_store import ValidationError
from cabshare.cli_module.utils import get_auth_service, get_session


@click.group(name="auth")
def auth_group():
    """Authentication commands."""
    pass


@auth_group.command()
@click.option("--email", prompt=True, help="Your email address")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True,
              help="Your password")
@click.option("--name", prompt=True, help="Your name")
@click.option("--phone", default="", help="Your phone number")
def signup(email, password, name, phone):
    """Create an account."""
    try:
        session = get_auth_service().sign_up(email, password, name, phone or None)
        click.echo(f"Welcome to CabShare, {name}!")
        click.echo(f"Email: {session.email}")
        click.echo("You are now logged in.")
    except (AuthError, ValidationError) as e:
        click.echo(f"Error during registration: {str(e)}", err=True)


@auth_group.command()
@click.option("--email", prompt=True, help="Your email address")
@click.option("--password", prompt=True, hide_input=True, help="Your password")
def signin(email, password):
    """Log in with credentials."""
    try:
        session = get_auth_service().sign_in(email, password)
        profile = session.profile
        name = profile.name if profile else session.email
        click.echo(f"Welcome back, {name}!")
    except (AuthError, ValidationError) as e:
        click.echo(f"Error during signin: {str(e)}", err=True)


@auth_group.command()
def signout():
    """Log out and clear the current session."""
    auth_service = get_auth_service()
    if auth_service.current_session() is None:
        click.echo("You were not signed in.")
        return

    auth_service.sign_out()
    click.echo("You have been signed out.")


@auth_group.command()
def whoami():
    """Show current user information."""
    session = get_session()
    if session is None:
        click.echo("You are not signed in.")
        return

    profile = session.profile
    if profile is None:
        click.echo(f"Signed in as {session.email} (no profile found).")
        return

    click.echo(f"Signed in as {profile.name} <{profile.email}>")
    click.echo(f"User ID: {profile.id}")
    click.echo(f"Rating: {profile.rating:.1f} ⭐ ({profile.total_rides} rides)")
    click.echo(f"Verified: {'Yes' if profile.is_verified else 'No'}")
