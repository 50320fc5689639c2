"""Command line interface for the CabShare application."""
