"""Pairwise, same-day conflict detection."""

from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from ...models.domain import Appointment, SchedulingConflict, Severity
from ..timeutils import time_to_minutes

A = TypeVar("A", bound=Appointment)


def _severity(shortfall: int) -> Severity:
    if shortfall > 30:
        return "critical"
    if shortfall > 15:
        return "major"
    return "minor"


def detect_conflict(first: Appointment, second: Appointment) -> Optional[SchedulingConflict]:
    """Return the conflict between two appointments, or ``None``.

    Only start times and the earlier visit's duration are considered: this is the
    minimum physically possible packing check, so travel and buffers are ignored.
    """

    if not first.start_time or not second.start_time:
        return None

    first_minutes = time_to_minutes(first.start_time)
    second_minutes = time_to_minutes(second.start_time)
    if first_minutes < second_minutes:
        earlier, later, earlier_minutes, later_minutes = first, second, first_minutes, second_minutes
    else:
        earlier, later, earlier_minutes, later_minutes = second, first, second_minutes, first_minutes

    gap_minutes = later_minutes - earlier_minutes
    required_minutes = earlier.visit_duration_minutes
    if gap_minutes >= required_minutes:
        return None

    return SchedulingConflict(
        appointments=(earlier, later),
        gap_minutes=gap_minutes,
        required_minutes=required_minutes,
        severity=_severity(required_minutes - gap_minutes),
    )


def appointment_pairs(appointments: Sequence[A]) -> List[Tuple[A, A]]:
    return [
        (appointments[i], appointments[j])
        for i in range(len(appointments))
        for j in range(i + 1, len(appointments))
    ]


def group_by_date(appointments: Iterable[A]) -> Dict[str, List[A]]:
    """Group appointments by calendar date, keeping first-seen date order."""

    by_date: Dict[str, List[A]] = {}
    for appointment in appointments:
        by_date.setdefault(appointment.date, []).append(appointment)
    return by_date


def find_all_conflicts(appointments: Sequence[Appointment]) -> List[SchedulingConflict]:
    conflicts: list[SchedulingConflict] = []
    for first, second in appointment_pairs(appointments):
        if first.date != second.date:
            continue
        conflict = detect_conflict(first, second)
        if conflict:
            conflicts.append(conflict)
    return conflicts


def sort_by_start_time(appointments: Iterable[A]) -> List[A]:
    """Sort by start time; appointments without one go last in their original order."""

    return sorted(
        appointments,
        key=lambda apt: (apt.start_time is None, time_to_minutes(apt.start_time) if apt.start_time else 0),
    )


def calculate_gap_minutes(first: Appointment, second: Appointment) -> float:
    """Minutes between the end of ``first`` and the start of ``second``."""

    if not first.start_time or not second.start_time:
        return math.inf
    end_first = time_to_minutes(first.start_time) + first.visit_duration_minutes
    return time_to_minutes(second.start_time) - end_first
