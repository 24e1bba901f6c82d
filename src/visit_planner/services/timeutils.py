"""Clock-time helpers working in minutes since midnight."""

from __future__ import annotations

import math

from ..config import settings
from ..models.domain import ArrivalStatus


def time_to_minutes(value: str) -> int:
    """Convert ``HH:MM`` into minutes since midnight."""

    try:
        hours, minutes = value.split(":")
        return int(hours) * 60 + int(minutes)
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid time '{value}', expected HH:MM.") from exc


def minutes_to_time(minutes: float) -> str:
    """Format minutes since midnight as ``HH:MM``. Hours are not wrapped at midnight."""

    whole = int(minutes)
    hours, mins = divmod(whole, 60)
    return f"{hours:02d}:{mins:02d}"


def time_difference(first: str, second: str) -> int:
    return abs(time_to_minutes(first) - time_to_minutes(second))


def is_within_grace_period(actual: str, target: str, grace_period: int = settings.grace_period_minutes) -> bool:
    return time_difference(actual, target) <= grace_period


def get_arrival_status(
    arrival: str,
    preferred: str,
    grace_period: int = settings.grace_period_minutes,
) -> ArrivalStatus:
    if is_within_grace_period(arrival, preferred, grace_period):
        return "on_time"
    return "early" if time_to_minutes(arrival) < time_to_minutes(preferred) else "late"


def round_half_up(value: float, digits: int = 0) -> float:
    """Round to ``digits`` places with halves going toward positive infinity."""

    factor = 10 ** digits
    rounded = math.floor(value * factor + 0.5) / factor
    return int(rounded) if digits == 0 else rounded
