"""Rescheduling strategy: move the later appointment of a conflict elsewhere."""

from __future__ import annotations

import datetime as dt
from typing import Optional, Sequence

from ...config import settings
from ...models.domain import (
    Appointment,
    BufferConfiguration,
    SchedulingConflict,
    ScheduleChange,
    SimulationStats,
    Solution,
)
from ..conflicts.buffers import calculate_smart_buffer
from ..timeutils import minutes_to_time, time_to_minutes

FULL_DAY_MINUTES = 480
FREE_PLACEMENT_GAP_MINUTES = 60


def _next_day(date: str) -> Optional[str]:
    try:
        return (dt.date.fromisoformat(date) + dt.timedelta(days=1)).isoformat()
    except ValueError:
        return None


def _later_in_day(earlier: Appointment, later: Appointment, config: BufferConfiguration) -> Solution:
    smart_buffer = calculate_smart_buffer(earlier, later, config)
    proposed = time_to_minutes(earlier.start_time) + earlier.visit_duration_minutes + smart_buffer
    impact = max(0, proposed - time_to_minutes(later.start_time))
    return Solution(
        changes=[
            ScheduleChange(
                type="reschedule",
                appointment_id=later.id,
                appointment_name=later.app_name,
                original_time=later.start_time,
                proposed_time=minutes_to_time(proposed),
                reason=f"Reschedule to later in the day after {earlier.app_name}",
                impact_minutes=impact,
            )
        ],
        success_rate=0.8,
        impact_score=40,
        feasibility="feasible",
        reasoning=[
            f"Moving {later.app_name} to later time resolves conflict",
            "Maintains same day schedule",
        ],
        statistics=SimulationStats(
            total_scenarios_tested=1,
            feasible_scenarios=1,
            best_scenario_gap_minutes=smart_buffer,
            average_gap_minutes=smart_buffer / 2,
        ),
    )


def _different_day(later: Appointment) -> Solution:
    next_date = _next_day(later.date)
    target = f"{settings.day_start_time} on {next_date}" if next_date else "the next day"
    return Solution(
        changes=[
            ScheduleChange(
                type="reschedule",
                appointment_id=later.id,
                appointment_name=later.app_name,
                original_time=later.start_time,
                proposed_time=settings.day_start_time,
                reason=f"Reschedule {later.app_name} to {target} - same day schedule is too tight",
                impact_minutes=FULL_DAY_MINUTES,
            )
        ],
        success_rate=1.0,
        impact_score=60,
        feasibility="feasible",
        reasoning=[
            "Moving to different day completely eliminates conflict",
            "Provides fresh start for scheduling",
            "Minimal disruption to other appointments",
        ],
        statistics=SimulationStats(
            total_scenarios_tested=1,
            feasible_scenarios=1,
            best_scenario_gap_minutes=FREE_PLACEMENT_GAP_MINUTES,
            worst_scenario_gap_minutes=FREE_PLACEMENT_GAP_MINUTES,
            average_gap_minutes=FREE_PLACEMENT_GAP_MINUTES,
        ),
    )


def _free_placement() -> Solution:
    return Solution(
        changes=[],
        success_rate=1.0,
        impact_score=10,
        feasibility="feasible",
        reasoning=[
            "Both appointments are flexible and can be scheduled freely",
            "Let the optimizer find the best times",
        ],
        statistics=SimulationStats(
            total_scenarios_tested=1,
            feasible_scenarios=1,
            best_scenario_gap_minutes=FREE_PLACEMENT_GAP_MINUTES,
            worst_scenario_gap_minutes=FREE_PLACEMENT_GAP_MINUTES,
            average_gap_minutes=FREE_PLACEMENT_GAP_MINUTES,
        ),
    )


def simulate_rescheduling(
    conflict: SchedulingConflict,
    appointments: Sequence[Appointment] = (),
    config: BufferConfiguration | None = None,
) -> list[Solution]:
    """Candidate moves for the later appointment of ``conflict``.

    Same-day and next-day moves need both start times; a pair with no start times
    at all yields a single no-change solution instead.
    """

    config = config or BufferConfiguration()
    earlier, later = conflict.appointments
    solutions: list[Solution] = []

    if earlier.start_time and later.start_time:
        solutions.append(_later_in_day(earlier, later, config))
        solutions.append(_different_day(later))

    if not earlier.start_time and not later.start_time:
        solutions.append(_free_placement())
    return solutions
