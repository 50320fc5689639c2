"""Utility functions for the CLI interface."""

from functools import wraps
from typing import Optional

import click

from cabshare import config
from cabshare.services.auth_service import AuthService, Session
from cabshare.services.notification_service import NotificationService
from cabshare.services.session_store import SessionStore
from cabshare.services.simulation import Simulator
from cabshare.storage import create_store


def get_store() -> SessionStore:
    """Session store over the configured storage backend."""
    return SessionStore(create_store())


def get_auth_service() -> AuthService:
    return AuthService(get_store())


def get_simulator() -> Simulator:
    return Simulator(config.SIMULATION_SCALE)


def echo_notification(title: str, body: str) -> None:
    click.echo(f"🔔 {title}: {body}")


def get_notifier() -> NotificationService:
    return NotificationService(echo_notification)


def get_session() -> Optional[Session]:
    """Get the signed-in session, if any."""
    return get_auth_service().current_session()


def require_session(f):
    """
    Decorator for commands that act for the signed-in user.

    The session is passed to the command as its first argument.
    """
    @wraps(f)
    def wrapped(*args, **kwargs):
        session = get_session()
        if session is None:
            click.echo("You are not signed in. Please sign in first.", err=True)
            return
        return f(session, *args, **kwargs)
    return wrapped
