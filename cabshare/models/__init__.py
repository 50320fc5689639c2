"""Entity models for the CabShare application."""
from cabshare.models.decoding import CorruptStateError
from cabshare.models.user import UserProfile, Preferences, Gender
from cabshare.models.ride import (
    ActiveRide, Partner, PendingRating, RequestStatus, RideHistoryEntry,
    RideRequest, RideStatus,
)
from cabshare.models.match import ContactPreferences, Match


__all__ = [
    'CorruptStateError',
    'UserProfile',
    'Preferences',
    'Gender',
    'ActiveRide',
    'Partner',
    'PendingRating',
    'RequestStatus',
    'RideHistoryEntry',
    'RideRequest',
    'RideStatus',
    'ContactPreferences',
    'Match',
]
