"""Profile commands for the CabShare CLI."""

from datetime import datetime

import click
from tabulate import tabulate

from cabshare.models import Gender
from cabshare.models.user import MAX_RIDE_DISTANCE_CHOICES
from cabshare.services.ride_service import RideService
from cabshare.services.session_store import ValidationError
from cabshare.cli_module.utils import get_notifier, get_simulator, require_session


@click.group(name="profile")
def profile_group():
    """Profile, preferences and block list commands."""
    pass


def _format_date(value):
    try:
        return datetime.fromisoformat(value).strftime('%Y-%m-%d %H:%M')
    except (ValueError, TypeError):
        return value


@profile_group.command(name="show")
@require_session
def show_profile(session):
    """Show your profile and preferences."""
    profile = session.profile
    if profile is None:
        click.echo("No profile found.", err=True)
        return

    prefs = profile.preferences
    click.echo(f"\n👤 {profile.name}")
    click.echo(f"   Email: {profile.email}")
    if profile.phone:
        click.echo(f"   Phone: {profile.phone}")
    click.echo(f"   Rating: {profile.rating:.1f} ⭐")
    click.echo(f"   Total rides: {profile.total_rides}")
    click.echo(f"   Member since: {_format_date(profile.join_date)}")
    click.echo(f"   Verified: {'Yes' if profile.is_verified else 'No'}")

    click.echo("\n⚙️  Preferences:")
    click.echo(f"   Messages: {'allowed' if prefs.allow_messages else 'disabled'}")
    click.echo(f"   Calls: {'allowed' if prefs.allow_calls else 'disabled'}")
    click.echo(f"   Max ride distance: {prefs.max_ride_distance}m")
    click.echo(f"   Preferred gender: {prefs.preferred_gender.value}")
    click.echo(f"   Blocked users: {len(profile.blocked_users)}")


@profile_group.command(name="update")
@click.option("--name", help="New display name")
@click.option("--phone", help="New phone number")
@require_session
def update_profile(session, name, phone):
    """Update your name or phone number."""
    updates = {key: value for key, value in (("name", name), ("phone", phone)) if value}
    if not updates:
        click.echo("Nothing to update.")
        return

    try:
        profile = session.store.update_profile(updates)
    except ValidationError as e:
        click.echo(f"Error: {str(e)}", err=True)
        return

    if profile is None:
        click.echo("No profile found.", err=True)
        return
    click.echo("Profile updated.")


@profile_group.command(name="preferences")
@click.option("--allow-messages/--no-messages", default=None, help="Accept messages from ride partners")
@click.option("--allow-calls/--no-calls", default=None, help="Accept calls from ride partners")
@click.option("--max-distance", type=click.Choice([str(d) for d in MAX_RIDE_DISTANCE_CHOICES]),
              help="Maximum distance to a ride partner in meters")
@click.option("--gender", type=click.Choice([g.value for g in Gender]),
              help="Preferred gender of ride partners")
@require_session
def update_preferences(session, allow_messages, allow_calls, max_distance, gender):
    """Update your ride preferences."""
    preferences = {}
    if allow_messages is not None:
        preferences["allow_messages"] = allow_messages
    if allow_calls is not None:
        preferences["allow_calls"] = allow_calls
    if max_distance is not None:
        preferences["max_ride_distance"] = int(max_distance)
    if gender is not None:
        preferences["preferred_gender"] = Gender(gender)

    if not preferences:
        click.echo("Nothing to update.")
        return

    try:
        profile = session.store.update_profile({"preferences": preferences})
    except ValidationError as e:
        click.echo(f"Error: {str(e)}", err=True)
        return

    if profile is None:
        click.echo("No profile found.", err=True)
        return
    click.echo("Preferences updated.")


@profile_group.command(name="block")
@click.argument("user_id")
@require_session
def block_user(session, user_id):
    """Block a user."""
    if session.store.block_user(user_id) is None:
        click.echo("No profile found.", err=True)
        return
    # Blocked users leave the current match set too
    session.store.remove_match(user_id)
    click.echo(f"User {user_id} has been blocked.")


@profile_group.command(name="unblock")
@click.argument("user_id")
@require_session
def unblock_user(session, user_id):
    """Unblock a user."""
    if session.store.unblock_user(user_id) is None:
        click.echo("No profile found.", err=True)
        return
    click.echo(f"User {user_id} has been unblocked.")


@profile_group.command(name="blocked")
@require_session
def list_blocked(session):
    """List the users you have blocked."""
    profile = session.profile
    if profile is None or not profile.blocked_users:
        click.echo("You have not blocked anyone.")
        return

    for user_id in profile.blocked_users:
        click.echo(f"  - {user_id}")


@profile_group.command(name="history")
@require_session
def ride_history(session):
    """View your ride history, newest first."""
    history = RideService(session, get_simulator(), get_notifier()).get_history()

    if not history:
        click.echo("Your completed rides will appear here.")
        return

    table_data = []
    for ride in sorted(history, key=lambda r: r.date, reverse=True):
        table_data.append([
            ride.id,
            _format_date(ride.date),
            ride.partner_name,
            f"{ride.partner_rating:.1f}",
            ride.destination,
            ride.status.value,
            "⭐" * ride.user_rating if ride.user_rating else "-",
        ])

    click.echo(tabulate(
        table_data,
        headers=["Ride ID", "Date", "Partner", "Partner Rating", "Destination", "Status", "Your Rating"],
        tablefmt="pretty"
    ))
    click.echo(f"\n{len(history)} ride{'s' if len(history) != 1 else ''} completed")
