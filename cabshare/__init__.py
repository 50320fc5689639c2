"""CabShare: ride-share matching with a local session store."""

__version__ = "0.1.0"
