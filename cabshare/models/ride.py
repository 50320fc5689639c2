"""Ride entities for the CabShare application."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4

from cabshare.models.decoding import get_enum, get_field, get_number, require_mapping


class RideStatus(Enum):
    """Status of a ride in the user's history."""
    ACTIVE = "active"
    COMPLETED = "completed"


class RequestStatus(Enum):
    """Status of a destination search."""
    SEARCHING = "searching"


@dataclass
class Partner:
    """Snapshot of the ride partner taken when a ride is confirmed."""
    id: str
    name: str
    rating: float
    phone: Optional[str] = None
    avatar: Optional[str] = None


@dataclass
class RideHistoryEntry:
    """
    A ride in the user's history.

    Attributes:
        id: Unique identifier for the ride
        partner_id: ID of the ride partner
        partner_name: Name of the ride partner at confirmation time
        partner_rating: Rating of the ride partner at confirmation time
        destination: Where the ride was heading
        date: When the ride was confirmed (ISO format)
        status: ACTIVE until rated or skipped, then COMPLETED
        user_rating: Score the user gave the ride (1-5), if any
        comment: Optional comment left with the rating
    """
    partner_id: str
    partner_name: str
    partner_rating: float
    destination: str
    id: str = None
    date: str = None
    status: RideStatus = RideStatus.ACTIVE
    user_rating: Optional[int] = None
    comment: Optional[str] = None

    def __post_init__(self):
        """Initialize default values."""
        if self.id is None:
            self.id = str(uuid4())
        if self.date is None:
            self.date = datetime.now().isoformat()

    @property
    def is_rated(self) -> bool:
        return self.user_rating is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "partner_id": self.partner_id,
            "partner_name": self.partner_name,
            "partner_rating": self.partner_rating,
            "destination": self.destination,
            "date": self.date,
            "status": self.status.value,
            "user_rating": self.user_rating,
            "comment": self.comment,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "RideHistoryEntry":
        record = "RideHistoryEntry"
        data = require_mapping(data, record)
        return cls(
            id=get_field(data, "id", str, record),
            partner_id=get_field(data, "partner_id", str, record),
            partner_name=get_field(data, "partner_name", str, record),
            partner_rating=get_number(data, "partner_rating", record, 0, 5),
            destination=get_field(data, "destination", str, record),
            date=get_field(data, "date", str, record),
            status=get_enum(data, "status", RideStatus, record),
            user_rating=get_number(data, "user_rating", record, 1, 5,
                                   integer=True, optional=True),
            comment=get_field(data, "comment", str, record, optional=True),
        )


@dataclass
class RideRequest:
    """A destination search submitted by the user."""
    destination: str
    current_location: str
    user_id: Optional[str] = None
    id: str = None
    timestamp: str = None
    status: RequestStatus = RequestStatus.SEARCHING

    def __post_init__(self):
        """Initialize default values."""
        if self.id is None:
            self.id = str(uuid4())
        if self.timestamp is None:
            self.timestamp = datetime.now().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "destination": self.destination,
            "current_location": self.current_location,
            "timestamp": self.timestamp,
            "status": self.status.value,
            "user_id": self.user_id,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "RideRequest":
        record = "RideRequest"
        data = require_mapping(data, record)
        return cls(
            id=get_field(data, "id", str, record),
            destination=get_field(data, "destination", str, record),
            current_location=get_field(data, "current_location", str, record),
            timestamp=get_field(data, "timestamp", str, record),
            status=get_enum(data, "status", RequestStatus, record),
            user_id=get_field(data, "user_id", str, record, optional=True),
        )


@dataclass
class ActiveRide:
    """The single ride the user has committed to."""
    id: str
    partner_id: str
    partner_name: str
    partner_rating: float
    destination: str
    partner_phone: Optional[str] = None
    partner_avatar: Optional[str] = None
    date: str = None
    status: RideStatus = RideStatus.ACTIVE

    def __post_init__(self):
        """Initialize default values."""
        if self.date is None:
            self.date = datetime.now().isoformat()

    @classmethod
    def from_history_entry(cls, entry: RideHistoryEntry, partner: Partner) -> "ActiveRide":
        """Build the active ride for a freshly recorded history entry."""
        return cls(
            id=entry.id,
            partner_id=entry.partner_id,
            partner_name=entry.partner_name,
            partner_rating=entry.partner_rating,
            destination=entry.destination,
            partner_phone=partner.phone,
            partner_avatar=partner.avatar,
            date=entry.date,
            status=entry.status,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "partner_id": self.partner_id,
            "partner_name": self.partner_name,
            "partner_rating": self.partner_rating,
            "partner_phone": self.partner_phone,
            "partner_avatar": self.partner_avatar,
            "destination": self.destination,
            "date": self.date,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ActiveRide":
        record = "ActiveRide"
        data = require_mapping(data, record)
        return cls(
            id=get_field(data, "id", str, record),
            partner_id=get_field(data, "partner_id", str, record),
            partner_name=get_field(data, "partner_name", str, record),
            partner_rating=get_number(data, "partner_rating", record, 0, 5),
            partner_phone=get_field(data, "partner_phone", str, record, optional=True),
            partner_avatar=get_field(data, "partner_avatar", str, record, optional=True),
            destination=get_field(data, "destination", str, record),
            date=get_field(data, "date", str, record),
            status=get_enum(data, "status", RideStatus, record),
        )


@dataclass
class PendingRating:
    """A completed ride waiting for the user's score."""
    ride_id: str
    partner_name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"ride_id": self.ride_id, "partner_name": self.partner_name}

    @classmethod
    def from_dict(cls, data: Any) -> "PendingRating":
        record = "PendingRating"
        data = require_mapping(data, record)
        return cls(
            ride_id=get_field(data, "ride_id", str, record),
            partner_name=get_field(data, "partner_name", str, record),
        )
