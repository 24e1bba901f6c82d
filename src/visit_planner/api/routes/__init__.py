"""Route group exports."""

from . import geocode, health, schedule

__all__ = ["geocode", "health", "schedule"]
