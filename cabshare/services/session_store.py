"""Session and profile store for CabShare application."""

import json
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from cabshare.models import (
    ActiveRide, CorruptStateError, Match, Partner, PendingRating,
    RideHistoryEntry, RideRequest, RideStatus, UserProfile,
)
from cabshare.models.user import MAX_RIDE_DISTANCE_CHOICES
from cabshare.storage import keys
from cabshare.storage.kv_store import KeyValueStore, StorageError

logger = logging.getLogger(__name__)

# Fields that update_profile never changes
PROTECTED_FIELDS = ['id', 'join_date']


class ValidationError(Exception):
    """Raised when user input is rejected before any state is changed."""
    pass


class ActiveRideConflictError(Exception):
    """Raised when a new active ride would silently replace another one."""
    pass


def validate_score(score: Any) -> int:
    """
    Check a ride rating.

    Args:
        score: Rating value (1-5 stars)

    Returns:
        int: The validated score

    Raises:
        ValidationError: If the score is not a whole number from 1 to 5
    """
    if isinstance(score, bool) or not isinstance(score, int):
        raise ValidationError("Rating must be a whole number of stars.")
    if not 1 <= score <= 5:
        raise ValidationError("Rating must be between 1 and 5 stars.")
    return score


def _decode_matches(data: Any) -> List[Match]:
    if not isinstance(data, list):
        raise CorruptStateError("Match set must be a list")
    return [Match.from_dict(match) for match in data]


def _decode_user_ids(data: Any) -> List[str]:
    if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
        raise CorruptStateError("Rejected users must be a list of IDs")
    return data


def _encode(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class SessionStore:
    """
    Read/modify/write operations over the user profile and the current ride
    session, backed by a key-value store.

    Storage failures never reach the caller: failed reads are logged and
    treated as absent, failed writes are logged and abandoned. Operations
    are expected to run one at a time; nothing here locks.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    # Raw access

    def read_json(self, key: str, decode: Optional[Callable[[Any], Any]] = None) -> Any:
        """
        Read and decode the JSON value stored under key.

        Args:
            key: Storage key
            decode: Optional validating decoder applied to the parsed JSON

        Returns:
            The decoded value, or None when absent, unreadable or corrupt
        """
        try:
            raw = self.store.get_item(key)
            if raw is None:
                return None
            if not isinstance(raw, str):
                raise CorruptStateError(f"expected text, got {type(raw).__name__}")
            data = json.loads(raw)
            return decode(data) if decode else data
        except StorageError as e:
            logger.error(f"Error reading '{key}': {str(e)}")
        except CorruptStateError as e:
            logger.error(f"Corrupt state under '{key}': {str(e)}")
        except ValueError as e:
            logger.error(f"Stored '{key}' is not valid JSON: {str(e)}")
        return None

    def write_json(self, key: str, data: Any) -> bool:
        """Serialize data and store it under key. Returns False on failure."""
        try:
            self.store.set_item(key, json.dumps(data))
            return True
        except (TypeError, ValueError) as e:
            logger.error(f"Could not serialize '{key}': {str(e)}")
        except StorageError as e:
            logger.error(f"Error writing '{key}': {str(e)}")
        return False

    def remove(self, *storage_keys: str) -> bool:
        """Remove one or more keys. Returns False on failure."""
        try:
            self.store.multi_remove(list(storage_keys))
            return True
        except StorageError as e:
            logger.error(f"Error removing {', '.join(storage_keys)}: {str(e)}")
            return False

    # Profile

    def get_profile(self) -> Optional[UserProfile]:
        return self.read_json(keys.USER_PROFILE, UserProfile.from_dict)

    def save_profile(self, profile: UserProfile) -> bool:
        return self.write_json(keys.USER_PROFILE, profile.to_dict())

    def create_profile(self, email: str, name: str, phone: Optional[str] = None,
                       user_id: Optional[str] = None, is_verified: bool = False) -> UserProfile:
        """
        Create and persist a fresh profile.

        The profile starts with a 5.0 rating, no rides, no blocked users and
        default preferences. It is returned even if persisting it failed.
        """
        profile = UserProfile(email=email, name=name, phone=phone,
                              id=user_id, is_verified=is_verified)
        self.save_profile(profile)
        logger.info(f"Created profile {profile.id} for {email}")
        return profile

    def update_profile(self, updates: Dict[str, Any]) -> Optional[UserProfile]:
        """
        Shallow-merge updates into the stored profile and persist it.

        The preferences field is merged key by key rather than replaced.

        Args:
            updates: Profile fields to change

        Returns:
            UserProfile: The updated profile, or None when there is no profile

        Raises:
            ValidationError: If the merged profile is not valid
        """
        profile = self.get_profile()
        if profile is None:
            logger.warning("No profile to update")
            return None

        data = profile.to_dict()
        for key, value in updates.items():
            if key in PROTECTED_FIELDS:
                logger.warning(f"Ignoring update to protected field '{key}'")
                continue
            if key == "preferences":
                distance = value.get("max_ride_distance")
                if distance is not None and distance not in MAX_RIDE_DISTANCE_CHOICES:
                    raise ValidationError(
                        f"Max ride distance must be one of {MAX_RIDE_DISTANCE_CHOICES} meters.")
                data["preferences"].update(
                    {name: _encode(pref) for name, pref in value.items()})
            elif key == "ride_history":
                data[key] = [ride.to_dict() if isinstance(ride, RideHistoryEntry) else ride
                             for ride in value]
            else:
                data[key] = _encode(value)

        try:
            updated = UserProfile.from_dict(data)
        except CorruptStateError as e:
            raise ValidationError(f"Invalid profile update: {str(e)}")

        self.save_profile(updated)
        return updated

    def block_user(self, user_id: str) -> Optional[UserProfile]:
        """Add a user to the block list. Blocking twice changes nothing."""
        profile = self.get_profile()
        if profile is None:
            return None
        if profile.is_blocked(user_id):
            return profile
        return self.update_profile({"blocked_users": profile.blocked_users + [user_id]})

    def unblock_user(self, user_id: str) -> Optional[UserProfile]:
        profile = self.get_profile()
        if profile is None:
            return None
        remaining = [blocked for blocked in profile.blocked_users if blocked != user_id]
        return self.update_profile({"blocked_users": remaining})

    # Ride history

    def record_ride_completion(self, ride_id: str, partner: Partner,
                               destination: str) -> Optional[RideHistoryEntry]:
        """
        Append an active ride to the history and count it in total_rides.

        Returns:
            RideHistoryEntry: The new entry, or None when there is no profile
        """
        profile = self.get_profile()
        if profile is None:
            logger.warning(f"No profile to record ride {ride_id} in")
            return None

        entry = RideHistoryEntry(
            id=ride_id,
            partner_id=partner.id,
            partner_name=partner.name,
            partner_rating=partner.rating,
            destination=destination,
            status=RideStatus.ACTIVE,
        )
        profile.ride_history.append(entry)
        profile.total_rides += 1
        self.save_profile(profile)
        return entry

    def submit_rating(self, ride_id: str, score: int,
                      comment: Optional[str] = None) -> Optional[UserProfile]:
        """
        Rate a ride in history and recompute the profile rating.

        Args:
            ride_id: ID of the ride to rate
            score: Rating value (1-5 stars)
            comment: Optional comment

        Returns:
            UserProfile: The updated profile, or None when there is no profile

        Raises:
            ValidationError: If the score is out of range
        """
        validate_score(score)

        profile = self.get_profile()
        if profile is None:
            logger.warning(f"No profile to rate ride {ride_id} in")
            return None

        ride = profile.find_ride(ride_id)
        if ride is None:
            logger.warning(f"Ride {ride_id} is not in the ride history")
            return profile

        ride.user_rating = score
        ride.comment = comment
        ride.status = RideStatus.COMPLETED
        profile.recompute_rating()

        self.save_profile(profile)
        return profile

    def mark_ride_completed(self, ride_id: str) -> Optional[UserProfile]:
        """Complete a ride in history without rating it."""
        profile = self.get_profile()
        if profile is None:
            return None

        ride = profile.find_ride(ride_id)
        if ride is None:
            logger.warning(f"Ride {ride_id} is not in the ride history")
            return profile

        ride.status = RideStatus.COMPLETED
        self.save_profile(profile)
        return profile

    # Current ride request

    def get_current_request(self) -> Optional[RideRequest]:
        return self.read_json(keys.CURRENT_RIDE_REQUEST, RideRequest.from_dict)

    def set_current_request(self, request: RideRequest) -> bool:
        return self.write_json(keys.CURRENT_RIDE_REQUEST, request.to_dict())

    def clear_current_request(self) -> bool:
        return self.remove(keys.CURRENT_RIDE_REQUEST)

    # Current matches

    def get_current_matches(self) -> List[Match]:
        return self.read_json(keys.CURRENT_MATCHES, _decode_matches) or []

    def set_current_matches(self, matches: List[Match]) -> bool:
        return self.write_json(keys.CURRENT_MATCHES, [match.to_dict() for match in matches])

    def remove_match(self, match_id: str) -> List[Match]:
        """Remove a match by ID, keeping the rest in order. Returns what is left."""
        remaining = [match for match in self.get_current_matches() if match.id != match_id]
        self.set_current_matches(remaining)
        return remaining

    def clear_current_matches(self) -> bool:
        return self.remove(keys.CURRENT_MATCHES)

    # Active ride

    def get_active_ride(self) -> Optional[ActiveRide]:
        return self.read_json(keys.ACTIVE_RIDE, ActiveRide.from_dict)

    def set_active_ride(self, ride: ActiveRide, replace: bool = False) -> bool:
        """
        Store the active ride.

        Raises:
            ActiveRideConflictError: If a different ride is already active
                and replace is False
        """
        current = self.get_active_ride()
        if current is not None and current.id != ride.id and not replace:
            raise ActiveRideConflictError(
                f"Ride {current.id} with {current.partner_name} is still active.")
        return self.write_json(keys.ACTIVE_RIDE, ride.to_dict())

    def clear_active_ride(self) -> bool:
        return self.remove(keys.ACTIVE_RIDE)

    # Pending rating

    def get_pending_rating(self) -> Optional[PendingRating]:
        return self.read_json(keys.PENDING_RATING, PendingRating.from_dict)

    def set_pending_rating(self, pending: PendingRating) -> bool:
        return self.write_json(keys.PENDING_RATING, pending.to_dict())

    def clear_pending_rating(self) -> bool:
        return self.remove(keys.PENDING_RATING)

    # Rejected users

    def get_rejected_users(self) -> List[str]:
        return self.read_json(keys.REJECTED_USERS, _decode_user_ids) or []

    def add_rejected_user(self, user_id: str) -> List[str]:
        rejected = self.get_rejected_users()
        if user_id not in rejected:
            rejected.append(user_id)
            self.write_json(keys.REJECTED_USERS, rejected)
        return rejected

    def clear_session(self) -> bool:
        """Remove the signed-in user, profile and search state."""
        return self.remove(*keys.SESSION_KEYS)
