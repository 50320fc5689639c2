"""Services for the CabShare application."""
