"""Match entity for the CabShare application."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from cabshare.models.decoding import get_field, get_number, require_mapping
from cabshare.models.ride import Partner


@dataclass
class ContactPreferences:
    """Whether a candidate accepts messages and calls."""
    allow_messages: bool = True
    allow_calls: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {"allow_messages": self.allow_messages, "allow_calls": self.allow_calls}

    @classmethod
    def from_dict(cls, data: Any) -> "ContactPreferences":
        record = "ContactPreferences"
        data = require_mapping(data, record)
        return cls(
            allow_messages=get_field(data, "allow_messages", bool, record,
                                     optional=True, default=True),
            allow_calls=get_field(data, "allow_calls", bool, record,
                                  optional=True, default=True),
        )


@dataclass
class Match:
    """
    A candidate ride partner surfaced for a ride request.

    Attributes:
        id: ID of the candidate user
        name: Candidate's display name
        rating: Candidate's rating (0-5)
        distance: Distance to the candidate in meters
        destination: Where the candidate is heading
        phone: Candidate's phone number
        avatar: Emoji avatar shown next to the name
        is_verified: Whether the candidate is verified
        total_rides: Number of rides the candidate has taken
        preferences: Whether the candidate accepts messages and calls
        match_percentage: Presentation-only compatibility score
        ride_request_id: ID of the request this match was found for
    """
    id: str
    name: str
    rating: float
    distance: int
    destination: str
    phone: str = ""
    avatar: str = ""
    is_verified: bool = False
    total_rides: int = 0
    preferences: ContactPreferences = None
    match_percentage: int = 0
    ride_request_id: Optional[str] = None

    def __post_init__(self):
        """Initialize default values."""
        if self.preferences is None:
            self.preferences = ContactPreferences()

    @property
    def partner(self) -> Partner:
        """Snapshot of this candidate as a ride partner."""
        return Partner(id=self.id, name=self.name, rating=self.rating,
                       phone=self.phone, avatar=self.avatar)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "rating": self.rating,
            "distance": self.distance,
            "destination": self.destination,
            "phone": self.phone,
            "avatar": self.avatar,
            "is_verified": self.is_verified,
            "total_rides": self.total_rides,
            "preferences": self.preferences.to_dict(),
            "match_percentage": self.match_percentage,
            "ride_request_id": self.ride_request_id,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Match":
        record = "Match"
        data = require_mapping(data, record)
        return cls(
            id=get_field(data, "id", str, record),
            name=get_field(data, "name", str, record),
            rating=get_number(data, "rating", record, 0, 5),
            distance=get_number(data, "distance", record, minimum=0, integer=True),
            destination=get_field(data, "destination", str, record),
            phone=get_field(data, "phone", str, record, optional=True, default=""),
            avatar=get_field(data, "avatar", str, record, optional=True, default=""),
            is_verified=get_field(data, "is_verified", bool, record,
                                  optional=True, default=False),
            total_rides=get_number(data, "total_rides", record, minimum=0,
                                   integer=True, optional=True, default=0),
            preferences=ContactPreferences.from_dict(data.get("preferences") or {}),
            match_percentage=get_number(data, "match_percentage", record, 0, 100,
                                        integer=True, optional=True, default=0),
            ride_request_id=get_field(data, "ride_request_id", str, record,
                                      optional=True),
        )
