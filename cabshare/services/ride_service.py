"""Ride service for CabShare application."""

import logging
from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from cabshare.models import ActiveRide, PendingRating, RideHistoryEntry, UserProfile
from cabshare.services.auth_service import Session
from cabshare.services.notification_service import NotificationService
from cabshare.services.session_store import validate_score
from cabshare.services.simulation import Simulator

logger = logging.getLogger(__name__)

# Seconds between simulated location updates
LOCATION_INTERVAL = 3
LOCATIONS = [
    "Main Street & 1st Ave",
    "Downtown Plaza",
    "City Center",
    "Airport Highway",
    "Terminal Approach",
]


class RideStage(Enum):
    """Stages of a tracked ride."""
    WAITING = "waiting"
    PICKUP = "pickup"
    ENROUTE = "enroute"
    ARRIVED = "arrived"


# (stage, seconds after the previous stage, ETA in minutes, message)
PROGRESSION = [
    (RideStage.PICKUP, 5, 12, "Driver is on the way to pick you up"),
    (RideStage.ENROUTE, 5, 8, "You are now en route to your destination"),
    (RideStage.ARRIVED, 5, 0, "You have arrived at your destination"),
]


@dataclass
class RideProgress:
    """One update from a tracked ride."""
    stage: RideStage
    eta_minutes: int
    message: str
    location: str


class RideServiceError(Exception):
    """Custom exception for ride service errors."""
    pass


def location_at(elapsed: float) -> str:
    """Simulated position after elapsed seconds of tracking."""
    updates = min(int(elapsed // LOCATION_INTERVAL), len(LOCATIONS))
    if updates == 0:
        return "Loading..."
    return LOCATIONS[updates - 1]


class RideService:
    """Service for tracking, completing and rating the active ride."""

    def __init__(self, session: Session, simulator: Simulator, notifier: NotificationService):
        self.session = session
        self.store = session.store
        self.simulator = simulator
        self.notifier = notifier

    def _require_active_ride(self) -> ActiveRide:
        ride = self.store.get_active_ride()
        if ride is None:
            raise RideServiceError("You have no active ride.")
        return ride

    def _require_pending_rating(self) -> PendingRating:
        pending = self.store.get_pending_rating()
        if pending is None:
            raise RideServiceError("No ride is waiting for a rating.")
        return pending

    def get_active_ride(self) -> Optional[ActiveRide]:
        return self.store.get_active_ride()

    def track_ride(self, on_update: Optional[Callable[[RideProgress], None]] = None) -> Future:
        """
        Start simulated tracking of the active ride.

        Each stage sends a ride update notification and is passed to
        on_update as it happens.

        Returns:
            Future: Resolves to the final RideProgress (arrived)

        Raises:
            RideServiceError: If there is no active ride
        """
        ride = self._require_active_ride()
        return self.simulator.submit(self._simulate_progress, ride, on_update)

    def _simulate_progress(self, ride: ActiveRide,
                           on_update: Optional[Callable[[RideProgress], None]]) -> RideProgress:
        elapsed = 0
        progress = None
        for stage, interval, eta, message in PROGRESSION:
            self.simulator.sleep(interval)
            elapsed += interval
            progress = RideProgress(stage=stage, eta_minutes=eta, message=message,
                                    location=location_at(elapsed))
            logger.info(f"Ride {ride.id}: {stage.value}")
            self.notifier.send_ride_update_notification(message)
            if on_update:
                on_update(progress)
        return progress

    def complete_ride(self) -> PendingRating:
        """End the active ride and queue it for rating."""
        ride = self._require_active_ride()

        pending = PendingRating(ride_id=ride.id, partner_name=ride.partner_name)
        self.store.set_pending_rating(pending)
        self.store.clear_active_ride()
        logger.info(f"Completed ride {ride.id}")
        return pending

    def get_pending_rating(self) -> Optional[PendingRating]:
        return self.store.get_pending_rating()

    def submit_rating(self, score: int, comment: Optional[str] = None) -> Optional[UserProfile]:
        """
        Rate the ride waiting for a rating.

        Args:
            score: Rating value (1-5 stars)
            comment: Optional comment

        Returns:
            UserProfile: Profile with the recomputed rating

        Raises:
            RideServiceError: If no ride is waiting for a rating, or the ride
                is not in the profile's history
            ValidationError: If the score is out of range
        """
        pending = self._require_pending_rating()
        validate_score(score)

        profile = self.session.profile
        if profile is None or profile.find_ride(pending.ride_id) is None:
            raise RideServiceError(
                f"Ride {pending.ride_id} is not in your ride history. "
                "Use 'cabshare ride skip' to dismiss it.")

        profile = self.store.submit_rating(pending.ride_id, score, comment or None)
        self.store.clear_pending_rating()
        return profile

    def skip_rating(self) -> Optional[UserProfile]:
        """
        Complete the waiting ride without rating it.

        The pending rating is cleared even when the ride is not in history.
        """
        pending = self._require_pending_rating()

        profile = self.store.mark_ride_completed(pending.ride_id)
        self.store.clear_pending_rating()
        return profile

    def get_history(self) -> List[RideHistoryEntry]:
        profile = self.session.profile
        return list(profile.ride_history) if profile else []
