from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from cabshare.models.decoding import (
    CorruptStateError, get_enum, get_field, get_number, require_mapping
)
from cabshare.models.ride import RideHistoryEntry

DEFAULT_RATING = 5.0
MAX_RIDE_DISTANCE_CHOICES = (300, 500, 1000)


class Gender(Enum):
    """Preferred gender of ride partners."""
    MALE = "male"
    FEMALE = "female"
    ANY = "any"


@dataclass
class Preferences:
    """Ride and contact preferences of a user."""
    allow_messages: bool = True
    allow_calls: bool = True
    max_ride_distance: int = 500
    preferred_gender: Gender = Gender.ANY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allow_messages": self.allow_messages,
            "allow_calls": self.allow_calls,
            "max_ride_distance": self.max_ride_distance,
            "preferred_gender": self.preferred_gender.value,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Preferences":
        record = "Preferences"
        data = require_mapping(data, record)
        return cls(
            allow_messages=get_field(data, "allow_messages", bool, record,
                                     optional=True, default=True),
            allow_calls=get_field(data, "allow_calls", bool, record,
                                  optional=True, default=True),
            max_ride_distance=get_number(data, "max_ride_distance", record,
                                         minimum=0, integer=True,
                                         optional=True, default=500),
            preferred_gender=get_enum(data, "preferred_gender", Gender, record,
                                      optional=True, default=Gender.ANY),
        )


@dataclass
class UserProfile:
    """
    Represents the signed-in user of the ride-share app.

    Attributes:
        email: User's email address
        name: User's display name
        phone: User's phone number
        id: Unique identifier for the user
        rating: Mean of the ratings in ride history (0-5)
        total_rides: Number of rides the user has confirmed
        join_date: When the profile was created (ISO format)
        is_verified: Whether the user's identity is verified
        blocked_users: IDs of users this user has blocked
        preferences: Ride and contact preferences
        ride_history: Rides confirmed by the user, oldest first
    """
    email: str
    name: str
    phone: Optional[str] = None
    id: str = None
    rating: float = DEFAULT_RATING
    total_rides: int = 0
    join_date: str = None
    is_verified: bool = False
    blocked_users: List[str] = None
    preferences: Preferences = None
    ride_history: List[RideHistoryEntry] = None

    def __post_init__(self):
        """Initialize default values."""
        if self.id is None:
            self.id = str(uuid4())
        if self.join_date is None:
            self.join_date = datetime.now().isoformat()
        if self.blocked_users is None:
            self.blocked_users = []
        if self.preferences is None:
            self.preferences = Preferences()
        if self.ride_history is None:
            self.ride_history = []

    def is_blocked(self, user_id: str) -> bool:
        """Check if a user is on the block list."""
        return user_id in self.blocked_users

    def find_ride(self, ride_id: str) -> Optional[RideHistoryEntry]:
        """Find a ride in history by its ID."""
        for ride in self.ride_history:
            if ride.id == ride_id:
                return ride
        return None

    def recompute_rating(self) -> float:
        """
        Recompute the rating from scratch as the plain mean of every rated
        ride. The rating is left untouched while nothing has been rated.
        """
        ratings = [ride.user_rating for ride in self.ride_history if ride.is_rated]
        if ratings:
            self.rating = sum(ratings) / len(ratings)
        return self.rating

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "phone": self.phone,
            "rating": self.rating,
            "total_rides": self.total_rides,
            "join_date": self.join_date,
            "is_verified": self.is_verified,
            "blocked_users": list(self.blocked_users),
            "preferences": self.preferences.to_dict(),
            "ride_history": [ride.to_dict() for ride in self.ride_history],
        }

    @classmethod
    def from_dict(cls, data: Any) -> "UserProfile":
        record = "UserProfile"
        data = require_mapping(data, record)

        blocked_users = get_field(data, "blocked_users", list, record,
                                  optional=True, default=[])
        if not all(isinstance(user_id, str) for user_id in blocked_users):
            raise CorruptStateError(f"{record}.blocked_users must hold string IDs")

        history = get_field(data, "ride_history", list, record,
                            optional=True, default=[])

        return cls(
            id=get_field(data, "id", str, record),
            email=get_field(data, "email", str, record),
            name=get_field(data, "name", str, record),
            phone=get_field(data, "phone", str, record, optional=True),
            rating=get_number(data, "rating", record, 0, 5),
            total_rides=get_number(data, "total_rides", record, minimum=0, integer=True),
            join_date=get_field(data, "join_date", str, record),
            is_verified=get_field(data, "is_verified", bool, record,
                                  optional=True, default=False),
            blocked_users=list(blocked_users),
            preferences=Preferences.from_dict(data.get("preferences") or {}),
            ride_history=[RideHistoryEntry.from_dict(ride) for ride in history],
        )
