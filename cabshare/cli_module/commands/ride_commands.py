"""Ride commands for the CabShare CLI."""

import click
from tabulate import tabulate

from cabshare.services.matching_service import (
    DEFAULT_LOCATION, MatchingService, MatchingServiceError
)
from cabshare.services.ride_service import RideService, RideServiceError
from cabshare.services.session_store import ActiveRideConflictError, ValidationError
from cabshare.cli_module.utils import get_notifier, get_simulator, require_session


@click.group(name="ride")
def ride_group():
    """Ride search, matching and tracking commands."""
    pass


def _matching_service(session):
    return MatchingService(session, get_simulator(), get_notifier())


def _ride_service(session):
    return RideService(session, get_simulator(), get_notifier())


def _print_matches(matches):
    table_data = []
    for match in matches:
        contact = []
        if match.preferences.allow_messages:
            contact.append("msg")
        if match.preferences.allow_calls:
            contact.append("call")
        table_data.append([
            match.id,
            f"{match.name}{' ✓' if match.is_verified else ''}",
            f"{match.rating:.1f}",
            f"{match.distance}m",
            match.destination,
            f"{match.match_percentage}%",
            match.total_rides,
            ", ".join(contact) or "-",
        ])

    click.echo(tabulate(
        table_data,
        headers=["ID", "Name", "Rating", "Distance", "Destination", "Match", "Rides", "Contact"],
        tablefmt="pretty"
    ))


@ride_group.command(name="find")
@click.option("--destination", prompt="Where would you like to go?", help="Your destination")
@click.option("--location", default=DEFAULT_LOCATION, help="Your current location")
@require_session
def find_ride(session, destination, location):
    """Search for people heading your way."""
    service = _matching_service(session)
    try:
        future = service.find_ride(destination, location)
        click.echo("Searching for ride partners...")
        matches = future.result()
    except ValidationError as e:
        click.echo(f"Destination Required: {str(e)}", err=True)
        return
    finally:
        service.simulator.shutdown()

    if not matches:
        click.echo("No matches found. Try again later or adjust your preferences.")
        return

    click.echo(f"\n🚗 {len(matches)} people found near you\n")
    _print_matches(matches)
    click.echo("\nUse 'cabshare ride select <ID>' to share a ride.")


@ride_group.command(name="matches")
@require_session
def list_matches(session):
    """Show the matches from your last search."""
    matches = _matching_service(session).get_matches()
    if not matches:
        click.echo("No matches found. Use 'cabshare ride find' to search for rides.")
        return
    _print_matches(matches)


@ride_group.command(name="reject")
@click.argument("match_id")
@require_session
def reject_match(session, match_id):
    """Pass on a match."""
    try:
        remaining = _matching_service(session).reject_match(match_id)
        click.echo(f"Match rejected. {len(remaining)} matches left.")
    except MatchingServiceError as e:
        click.echo(f"Error: {str(e)}", err=True)


@ride_group.command(name="block")
@click.argument("match_id")
@click.confirmation_option(prompt="They won't be able to see your rides or contact you. Block this user?")
@require_session
def block_match(session, match_id):
    """Block the user behind a match."""
    try:
        _matching_service(session).block_match(match_id)
        click.echo(f"User {match_id} has been blocked.")
    except MatchingServiceError as e:
        click.echo(f"Error: {str(e)}", err=True)


@ride_group.command(name="select")
@click.argument("match_id")
@click.confirmation_option(prompt="Would you like to share a ride with this match?")
@require_session
def select_match(session, match_id):
    """Confirm a shared ride with a match."""
    try:
        ride = _matching_service(session).select_match(match_id)
    except (MatchingServiceError, ActiveRideConflictError) as e:
        click.echo(f"Error: {str(e)}", err=True)
        return

    click.echo("\n✅ Ride Confirmed!\n")
    click.echo(f"Your ride with {ride.partner_name} has been confirmed.")
    click.echo(f"Ride ID: {ride.id}")
    click.echo("Use 'cabshare ride track' to follow your ride.")


@ride_group.command(name="call")
@click.argument("match_id")
@require_session
def call_match(session, match_id):
    """Call a match, if they accept calls."""
    try:
        match = _matching_service(session).check_can_call(match_id)
        click.echo(f"Calling {match.name} at {match.phone}...")
    except MatchingServiceError as e:
        click.echo(f"Calls Disabled: {str(e)}", err=True)


@ride_group.command(name="message")
@click.argument("match_id")
@require_session
def message_match(session, match_id):
    """Check that a match accepts messages."""
    try:
        match = _matching_service(session).check_can_message(match_id)
        click.echo(f"{match.name} accepts messages.")
    except MatchingServiceError as e:
        click.echo(f"Messages Disabled: {str(e)}", err=True)


@ride_group.command(name="track")
@require_session
def track_ride(session):
    """Follow the active ride until arrival."""
    service = _ride_service(session)

    def show(progress):
        click.echo(f"[{progress.stage.value}] {progress.message} "
                   f"(ETA {progress.eta_minutes} min, near {progress.location})")

    try:
        ride = service.get_active_ride()
        if ride is not None:
            click.echo(f"Tracking your ride with {ride.partner_name} to {ride.destination}...")
        service.track_ride(on_update=show).result()
    except RideServiceError as e:
        click.echo(f"Error: {str(e)}", err=True)
        return
    finally:
        service.simulator.shutdown()

    click.echo("\nUse 'cabshare ride complete' to finish the ride.")


@ride_group.command(name="complete")
@require_session
def complete_ride(session):
    """Finish the active ride."""
    try:
        pending = _ride_service(session).complete_ride()
        click.echo(f"Ride with {pending.partner_name} completed.")
        click.echo("Use 'cabshare ride rate' to rate your ride or 'cabshare ride skip' to skip.")
    except RideServiceError as e:
        click.echo(f"Error: {str(e)}", err=True)


@ride_group.command(name="rate")
@click.option("--score", prompt="How was your ride? (1-5)", type=int, help="Rating from 1 to 5 stars")
@click.option("--comment", default="", help="Optional comment about the ride")
@require_session
def rate_ride(session, score, comment):
    """Rate your last ride."""
    try:
        profile = _ride_service(session).submit_rating(score, comment)
    except ValidationError as e:
        click.echo(f"Rating Required: {str(e)}", err=True)
        return
    except RideServiceError as e:
        click.echo(f"Error: {str(e)}", err=True)
        return

    click.echo("Thank you! Your rating has been submitted.")
    if profile is not None:
        click.echo(f"Your rating is now {profile.rating:.1f} ⭐")


@ride_group.command(name="skip")
@require_session
def skip_rating(session):
    """Skip rating your last ride."""
    try:
        _ride_service(session).skip_rating()
        click.echo("Rating skipped.")
    except RideServiceError as e:
        click.echo(f"Error: {str(e)}", err=True)


@ride_group.command(name="status")
@require_session
def ride_status(session):
    """Show your current search, active ride and pending rating."""
    store = session.store
    request = store.get_current_request()
    ride = store.get_active_ride()
    pending = store.get_pending_rating()

    if request is None and ride is None and pending is None:
        click.echo("Nothing in progress. Use 'cabshare ride find' to search for rides.")
        return

    if request is not None:
        click.echo(f"🔍 Searching: {request.destination} (from {request.current_location})")
        click.echo(f"   Matches: {len(store.get_current_matches())}")
    if ride is not None:
        click.echo(f"🚗 Active ride with {ride.partner_name} to {ride.destination}")
        if ride.partner_phone:
            click.echo(f"   Partner phone: {ride.partner_phone}")
    if pending is not None:
        click.echo(f"⭐ Waiting for your rating of the ride with {pending.partner_name}")
