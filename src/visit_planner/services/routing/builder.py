"""Anchor-and-insert construction of a day's visiting order and its timing."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ...config import settings
from ...models.domain import Coordinate, GeocodedAppointment, OptimizedRoute, TravelCost, VisitStop
from ..conflicts.detector import group_by_date, sort_by_start_time
from ..conflicts.feasibility import can_optimize_route
from ..timeutils import get_arrival_status, minutes_to_time, time_to_minutes
from ..travel.provider import TravelCostProvider, lookup_travel_cost

LONG_SEGMENT_METERS = 50_000

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DayRoute:
    stops: list[VisitStop] = field(default_factory=list)
    total_distance: float = 0.0
    total_drive_time: float = 0.0
    total_visit_time: float = 0.0
    warnings: list[str] = field(default_factory=list)


def _coordinate(appointment: GeocodedAppointment) -> Coordinate:
    return Coordinate(lat=appointment.latitude, lng=appointment.longitude)


def _leg(
    provider: Optional[TravelCostProvider],
    origin: GeocodedAppointment,
    destination: GeocodedAppointment,
) -> TravelCost:
    return lookup_travel_cost(provider, _coordinate(origin), _coordinate(destination))


def calculate_route_cost(
    appointments: Sequence[GeocodedAppointment],
    provider: Optional[TravelCostProvider] = None,
) -> float:
    """Total travel distance in meters across consecutive appointments."""

    return sum(
        _leg(provider, origin, destination).distance_meters
        for origin, destination in zip(appointments, appointments[1:])
    )


def insert_flexible_appointment(
    appointment: GeocodedAppointment,
    ordered: list[GeocodedAppointment],
    provider: Optional[TravelCostProvider] = None,
) -> int:
    """Insert ``appointment`` where the whole route is cheapest; returns the chosen index.

    Ties keep the earliest position.
    """

    best_position = 0
    best_cost = float("inf")
    for position in range(len(ordered) + 1):
        trial = ordered[:position] + [appointment] + ordered[position:]
        cost = calculate_route_cost(trial, provider)
        if cost < best_cost:
            best_cost = cost
            best_position = position
    ordered.insert(best_position, appointment)
    return best_position


def optimize_anchor_positions(
    ordered: list[GeocodedAppointment],
    inflexible: Sequence[GeocodedAppointment],
) -> list[GeocodedAppointment]:
    # Inflexible anchors keep their chronological order for now.
    return ordered


def calculate_route(
    ordered: Sequence[GeocodedAppointment],
    provider: Optional[TravelCostProvider] = None,
) -> DayRoute:
    """Walk the final order and assign arrival times, travel legs and punctuality."""

    day = DayRoute()
    if not ordered:
        return day

    first = ordered[0]
    if first.is_inflexible and first.start_time:
        current = time_to_minutes(first.start_time)
    else:
        current = time_to_minutes(settings.day_start_time)

    previous: Optional[GeocodedAppointment] = None
    for order, appointment in enumerate(ordered, start=1):
        travel_minutes = 0.0
        distance = 0.0
        if previous is not None:
            leg = _leg(provider, previous, appointment)
            travel_minutes = leg.duration_minutes
            distance = leg.distance_meters
            current += previous.visit_duration_minutes + travel_minutes

        arrival = minutes_to_time(current)
        if appointment.start_time:
            status = get_arrival_status(arrival, appointment.start_time, settings.grace_period_minutes)
            minutes_from_preferred = abs(time_to_minutes(arrival) - time_to_minutes(appointment.start_time))
        else:
            status = "on_time"
            minutes_from_preferred = 0

        day.stops.append(
            VisitStop(
                appointment=appointment,
                order=order,
                arrival_time=arrival,
                travel_time_from_previous=travel_minutes,
                distance_from_previous=distance,
                status=status,
                minutes_from_preferred=minutes_from_preferred,
            )
        )
        day.total_distance += distance
        day.total_drive_time += travel_minutes
        day.total_visit_time += appointment.visit_duration_minutes
        previous = appointment
    return day


def optimize_day(
    appointments: Sequence[GeocodedAppointment],
    provider: Optional[TravelCostProvider] = None,
) -> DayRoute:
    inflexible = sort_by_start_time(apt for apt in appointments if apt.is_inflexible)
    flexible = [apt for apt in appointments if not apt.is_inflexible]

    ordered = list(inflexible)
    for appointment in flexible:
        insert_flexible_appointment(appointment, ordered, provider)

    ordered = optimize_anchor_positions(ordered, inflexible)
    day = calculate_route(ordered, provider)

    average_segment = day.total_distance / max(len(day.stops) - 1, 1)
    if average_segment > LONG_SEGMENT_METERS:
        day.warnings.append(
            "Route has long distances between stops. Consider breaking into multiple days "
            "or combining nearby appointments."
        )
    return day


def build_route(
    appointments: Sequence[GeocodedAppointment],
    provider: Optional[TravelCostProvider] = None,
) -> OptimizedRoute:
    """Build the visiting order and timed itinerary for every date in ``appointments``.

    Problems are reported on the returned route (``success=False``) rather than raised.
    """

    route_date = appointments[0].date if appointments else ""
    if not appointments:
        return _failed_route(route_date, "No appointments to optimize")

    check = can_optimize_route(appointments)
    if not check.can_optimize:
        logger.info(f"Route optimization skipped: {check.reason}")
        return _failed_route(route_date, check.reason)

    try:
        days = [optimize_day(day_appointments, provider) for day_appointments in group_by_date(appointments).values()]
    except ValueError as exc:
        logger.warning(f"Route optimization failed: {exc}")
        return _failed_route(route_date, str(exc))

    stops = [stop for day in days for stop in day.stops]
    warnings = [warning for day in days for warning in day.warnings]
    route = OptimizedRoute(
        stops=stops,
        total_distance=sum(day.total_distance for day in days),
        total_drive_time=sum(day.total_drive_time for day in days),
        total_visit_time=sum(day.total_visit_time for day in days),
        route_date=route_date,
        success=True,
        warnings=warnings or None,
    )
    logger.info(
        f"Built route with {len(stops)} stops over {len(days)} day(s): "
        f"{route.total_distance / 1000:.1f} km, {route.total_drive_time:.0f} min driving"
    )
    return route


def _failed_route(route_date: str, error: str) -> OptimizedRoute:
    return OptimizedRoute(
        stops=[],
        total_distance=0.0,
        total_drive_time=0.0,
        total_visit_time=0.0,
        route_date=route_date,
        success=False,
        error=error,
    )
