"""Notification delivery for CabShare application."""

import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

MATCH_TITLE = "New Ride Match! 🚗"
RIDE_UPDATE_TITLE = "Ride Update"


class NotificationService:
    """
    Fire-and-forget notifications.

    Delivery goes to an optional sender callable (the CLI echoes to the
    terminal); every notification is also logged. A failing sender is
    logged and otherwise ignored.
    """

    def __init__(self, sender: Optional[Callable[[str, str], None]] = None):
        self.sender = sender

    def send(self, title: str, body: str) -> None:
        logger.info(f"Notification: {title} - {body}")
        if self.sender is None:
            return
        try:
            self.sender(title, body)
        except Exception as e:
            logger.error(f"Failed to deliver notification '{title}': {str(e)}")

    def send_match_notification(self, match_name: str, destination: str) -> None:
        self.send(MATCH_TITLE, f"{match_name} is heading to {destination}")

    def send_ride_update_notification(self, message: str) -> None:
        self.send(RIDE_UPDATE_TITLE, message)
