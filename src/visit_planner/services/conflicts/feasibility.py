"""Pre-optimization feasibility checks and route validation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ...config import settings
from ...models.domain import Appointment, GeocodedAppointment, VisitStop
from ..geospatial import haversine_km
from ..timeutils import minutes_to_time, round_half_up, time_to_minutes
from .detector import group_by_date, sort_by_start_time

UNREACHABLE_DISTANCE_KM = 200.0
UNREACHABLE_GAP_MINUTES = 120
LIMITED_OPTIMIZATION_RATIO = 0.8


@dataclass(slots=True)
class OptimizationCheck:
    can_optimize: bool
    reason: str


def check_schedule_feasibility(appointments: Sequence[GeocodedAppointment]) -> list[str]:
    """Return human-readable violations between consecutive inflexible appointments."""

    errors: list[str] = []
    for date, day_appointments in group_by_date(appointments).items():
        inflexible = sort_by_start_time(apt for apt in day_appointments if apt.is_inflexible)
        timed_pairs = [
            (current, following)
            for current, following in zip(inflexible, inflexible[1:])
            if current.start_time and following.start_time
        ]

        for current, following in timed_pairs:
            gap = time_to_minutes(following.start_time) - time_to_minutes(current.start_time)
            if gap < current.visit_duration_minutes:
                errors.append(
                    f"Date {date}: {current.app_name} (at {current.start_time}) and {following.app_name} "
                    f"(at {following.start_time}) are too close. Need at least "
                    f"{current.visit_duration_minutes} minutes between them."
                )

        for current, following in timed_pairs:
            gap = time_to_minutes(following.start_time) - time_to_minutes(current.start_time)
            distance = haversine_km(current.latitude, current.longitude, following.latitude, following.longitude)
            if distance > UNREACHABLE_DISTANCE_KM and gap < UNREACHABLE_GAP_MINUTES:
                errors.append(
                    f"Date {date}: {current.app_name} and {following.app_name} might be impossible to reach "
                    f"(distance: {round_half_up(distance)}km, time gap: {gap}min)."
                )
    return errors


def can_optimize_route(appointments: Sequence[GeocodedAppointment]) -> OptimizationCheck:
    total = len(appointments)
    inflexible = sum(1 for apt in appointments if apt.is_inflexible)
    flexible = total - inflexible

    if flexible == 0:
        return OptimizationCheck(False, "All appointments are inflexible. No optimization possible.")

    if inflexible / total > LIMITED_OPTIMIZATION_RATIO:
        return OptimizationCheck(
            True,
            f"Only {flexible} flexible appointments out of {total}. Optimization will be limited.",
        )

    errors = check_schedule_feasibility(appointments)
    if errors:
        return OptimizationCheck(False, " | ".join(errors))

    return OptimizationCheck(
        True,
        f"Successfully scheduled {total} appointments ({inflexible} inflexible, {flexible} flexible).",
    )


def validate_route(stops: Sequence[VisitStop], grace_period: int = settings.grace_period_minutes) -> list[str]:
    """Re-walk a timed route and report arrival mismatches and missed commitments."""

    errors: list[str] = []
    if not stops:
        return errors

    first = stops[0].appointment
    if first.is_inflexible and first.start_time:
        current = time_to_minutes(first.start_time)
    else:
        current = time_to_minutes(settings.day_start_time)

    for position, stop in enumerate(stops, start=1):
        appointment = stop.appointment
        if position > 1:
            current += stop.travel_time_from_previous

        arrival = time_to_minutes(stop.arrival_time)
        if abs(current - arrival) > 1:
            errors.append(
                f"Stop {position} ({appointment.app_name}): Mismatched arrival time. "
                f"Expected {minutes_to_time(current)}, got {stop.arrival_time}"
            )

        if appointment.is_inflexible and appointment.start_time:
            if abs(arrival - time_to_minutes(appointment.start_time)) > grace_period:
                errors.append(
                    f"Stop {position} ({appointment.app_name}): Arrives at {stop.arrival_time} but appointment "
                    f"must start at {appointment.start_time} (±{grace_period} min)"
                )

        current += appointment.visit_duration_minutes
    return errors


def calculate_time_penalty(
    arrival_time: str,
    preferred_time: str | None,
    grace_period: int = settings.grace_period_minutes,
) -> float:
    if not preferred_time:
        return 0.0
    diff = abs(time_to_minutes(arrival_time) - time_to_minutes(preferred_time))
    if diff <= grace_period:
        return 0.0
    return (diff - grace_period) ** 2 / 100


def calculate_schedule_tightness(appointments: Sequence[Appointment]) -> float:
    """Average share of inflexible appointments per day, 0 (loose) to 1 (tight)."""

    by_date = group_by_date(appointments)
    if not by_date:
        return 0.0
    ratios = [
        sum(1 for apt in day if apt.is_inflexible) / max(len(day), 1)
        for day in by_date.values()
    ]
    return sum(ratios) / len(ratios)
