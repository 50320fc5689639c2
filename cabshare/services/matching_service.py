"""Matching service for CabShare application."""

import random
import logging
from concurrent.futures import Future
from typing import List, Optional
from uuid import uuid4

from cabshare.models import ActiveRide, ContactPreferences, Match, RideRequest
from cabshare.services.auth_service import Session
from cabshare.services.notification_service import NotificationService
from cabshare.services.session_store import ActiveRideConflictError, ValidationError
from cabshare.services.simulation import Simulator

logger = logging.getLogger(__name__)

# Seconds a simulated search takes
SEARCH_DELAY = 2.0
DEFAULT_LOCATION = "Location unavailable"

# Fixed pool of people the simulated search finds
CANDIDATES = [
    {
        "id": "user1",
        "name": "Sarah Chen",
        "rating": 4.8,
        "distance": 200,
        "destination": "Airport Terminal 2",
        "avatar": "👩‍💼",
        "is_verified": True,
        "total_rides": 45,
        "phone": "+1234567890",
        "preferences": {"allow_messages": True, "allow_calls": True},
    },
    {
        "id": "user2",
        "name": "Mike Johnson",
        "rating": 4.9,
        "distance": 350,
        "destination": "Downtown Mall",
        "avatar": "👨‍💻",
        "is_verified": True,
        "total_rides": 32,
        "phone": "+1234567891",
        "preferences": {"allow_messages": True, "allow_calls": False},
    },
    {
        "id": "user3",
        "name": "Emma Wilson",
        "rating": 4.7,
        "distance": 450,
        "destination": "Central Station",
        "avatar": "👩‍🎓",
        "is_verified": False,
        "total_rides": 18,
        "phone": "+1234567892",
        "preferences": {"allow_messages": False, "allow_calls": True},
    },
]


class MatchingServiceError(Exception):
    """Custom exception for matching service errors."""
    pass


class MatchingService:
    """Service for finding, rejecting, blocking and selecting ride matches."""

    def __init__(self, session: Session, simulator: Simulator,
                 notifier: NotificationService, rng: Optional[random.Random] = None):
        self.session = session
        self.store = session.store
        self.simulator = simulator
        self.notifier = notifier
        self.rng = rng or random.Random()

    def find_ride(self, destination: str, current_location: str = DEFAULT_LOCATION) -> Future:
        """
        Start a simulated search for ride partners.

        Args:
            destination: Where the user wants to go
            current_location: Where the user is, as display text

        Returns:
            Future: Resolves to the list of matches found

        Raises:
            ValidationError: If the destination is blank
        """
        destination = (destination or "").strip()
        if not destination:
            raise ValidationError("Please enter your destination to find a ride.")

        request = RideRequest(
            destination=destination,
            current_location=current_location or DEFAULT_LOCATION,
            user_id=self.session.user_id,
        )
        return self.simulator.submit(self._search, request, delay=SEARCH_DELAY)

    def _search(self, request: RideRequest) -> List[Match]:
        self.store.set_current_request(request)
        matches = self.generate_matches(request)
        self.store.set_current_matches(matches)
        logger.info(f"Found {len(matches)} matches for request {request.id}")

        if matches:
            self.notifier.send_match_notification(matches[0].name, matches[0].destination)
        return matches

    def generate_matches(self, request: RideRequest) -> List[Match]:
        """Build matches from the candidate pool, leaving out blocked users."""
        profile = self.session.profile
        blocked = set(profile.blocked_users) if profile else set()

        matches = []
        for candidate in CANDIDATES:
            if candidate["id"] in blocked:
                continue
            fields = dict(candidate)
            fields["preferences"] = ContactPreferences(**candidate["preferences"])
            matches.append(Match(
                ride_request_id=request.id,
                match_percentage=self.rng.randint(70, 99),
                **fields
            ))
        return matches

    def get_matches(self) -> List[Match]:
        """Current matches without anyone the user has blocked."""
        profile = self.session.profile
        blocked = set(profile.blocked_users) if profile else set()
        return [match for match in self.store.get_current_matches() if match.id not in blocked]

    def _get_match(self, match_id: str) -> Match:
        for match in self.store.get_current_matches():
            if match.id == match_id:
                return match
        raise MatchingServiceError(f"No current match with ID {match_id}")

    def reject_match(self, match_id: str) -> List[Match]:
        """Record the rejection and drop the match. Returns the remaining matches."""
        self._get_match(match_id)
        self.store.add_rejected_user(match_id)
        return self.store.remove_match(match_id)

    def block_match(self, match_id: str) -> List[Match]:
        """Block the user behind a match and drop it from the current set."""
        match = self._get_match(match_id)
        self.store.block_user(match.id)
        logger.info(f"Blocked {match.name} ({match.id})")
        return self.reject_match(match_id)

    def select_match(self, match_id: str) -> ActiveRide:
        """
        Confirm a ride with a match.

        The ride is added to history as active and becomes the active ride;
        the current matches and request are cleared.

        Raises:
            MatchingServiceError: If the match is unknown or there is no profile
            ActiveRideConflictError: If another ride is already active
        """
        match = self._get_match(match_id)

        current = self.store.get_active_ride()
        if current is not None:
            raise ActiveRideConflictError(
                f"Ride {current.id} with {current.partner_name} is still active.")

        request = self.store.get_current_request()
        destination = request.destination if request else ""

        entry = self.store.record_ride_completion(str(uuid4()), match.partner, destination)
        if entry is None:
            raise MatchingServiceError("Failed to confirm ride: no profile found.")

        ride = ActiveRide.from_history_entry(entry, match.partner)
        self.store.set_active_ride(ride)
        self.store.clear_current_matches()
        self.store.clear_current_request()
        logger.info(f"Confirmed ride {ride.id} with {match.name}")
        return ride

    def check_can_message(self, match_id: str) -> Match:
        match = self._get_match(match_id)
        if not match.preferences.allow_messages:
            raise MatchingServiceError(
                f"{match.name} has disabled messages. Try calling instead.")
        return match

    def check_can_call(self, match_id: str) -> Match:
        match = self._get_match(match_id)
        if not match.preferences.allow_calls:
            raise MatchingServiceError(
                f"{match.name} has disabled calls. Try messaging instead.")
        return match
