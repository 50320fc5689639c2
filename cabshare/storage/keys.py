"""Storage keys used by the CabShare session store."""

USER = "user"
USER_PROFILE = "userProfile"
CURRENT_RIDE_REQUEST = "currentRideRequest"
CURRENT_MATCHES = "currentMatches"
ACTIVE_RIDE = "activeRide"
PENDING_RATING = "pendingRating"
REJECTED_USERS = "rejectedUsers"
ACCOUNTS = "accounts"

# Removed on sign-out
SESSION_KEYS = [USER, USER_PROFILE, CURRENT_MATCHES, CURRENT_RIDE_REQUEST]
