"""API route modules."""

from . import admin, ping, submissions

__all__ = ["admin", "ping", "submissions"]
