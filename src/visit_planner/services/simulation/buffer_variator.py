"""Buffer-variation strategy: sweep candidate base buffers and see which clear the schedule."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional, Sequence

from ...config import settings
from ...models.domain import (
    BufferConfiguration,
    GeocodedAppointment,
    SchedulingConflict,
    ScheduleChange,
    SimulationStats,
    Solution,
)
from ..conflicts.buffers import calculate_smart_buffer
from ..conflicts.detector import detect_conflict, find_all_conflicts, group_by_date, sort_by_start_time
from ..timeutils import minutes_to_time, round_half_up, time_to_minutes

OPTIMAL_BUFFER_CANDIDATES = (30, 35, 40, 45, 50, 55, 60, 75, 90)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class OptimalBuffer:
    buffer_minutes: float
    feasibility: float
    solution: Optional[Solution]


def is_schedule_feasible(appointments: Sequence[GeocodedAppointment], config: BufferConfiguration) -> bool:
    """True when every conflicting consecutive pair still has at least its smart buffer between starts."""

    for day_appointments in group_by_date(appointments).values():
        ordered = sort_by_start_time(day_appointments)
        for current, following in zip(ordered, ordered[1:]):
            conflict = detect_conflict(current, following)
            if conflict and conflict.gap_minutes < calculate_smart_buffer(current, following, config):
                return False
    return True


def _start_minutes(appointment: GeocodedAppointment) -> int:
    if appointment.start_time:
        return time_to_minutes(appointment.start_time)
    return time_to_minutes(settings.day_start_time)


def _buffer_change(conflict: SchedulingConflict, config: BufferConfiguration) -> Optional[ScheduleChange]:
    earlier, later = conflict.appointments
    smart_buffer = calculate_smart_buffer(earlier, later, config)
    shortfall = earlier.visit_duration_minutes + smart_buffer - conflict.gap_minutes

    if not later.is_inflexible:
        proposed = _start_minutes(earlier) + earlier.visit_duration_minutes + smart_buffer
        return ScheduleChange(
            type="buffer-adjust",
            appointment_id=later.id,
            appointment_name=later.app_name,
            original_time=later.start_time or "flexible",
            proposed_time=minutes_to_time(proposed),
            reason=(
                f"Adjust buffer from {conflict.gap_minutes} to {smart_buffer} minutes "
                f"({shortfall} more minutes needed)"
            ),
            impact_minutes=shortfall,
        )
    if not earlier.is_inflexible:
        proposed = max(0, _start_minutes(later) - earlier.visit_duration_minutes - smart_buffer)
        return ScheduleChange(
            type="buffer-adjust",
            appointment_id=earlier.id,
            appointment_name=earlier.app_name,
            original_time=earlier.start_time or "flexible",
            proposed_time=minutes_to_time(proposed),
            reason=(
                f"Adjust buffer from {conflict.gap_minutes} to {smart_buffer} minutes "
                f"({shortfall} more minutes needed) - second appointment is inflexible"
            ),
            impact_minutes=shortfall,
        )
    return None


def calculate_buffer_impact_score(buffer_minutes: float, config: BufferConfiguration) -> float:
    """Deviation from the configured base buffer, scaled to 0-50 and capped at 100."""

    deviation = abs(buffer_minutes - config.base_buffer_minutes)
    if config.base_buffer_minutes <= 0:
        return 100 if deviation else 0
    return min(100, round_half_up(deviation / config.base_buffer_minutes * 50, 1))


def _buffer_solution(
    appointments: Sequence[GeocodedAppointment],
    buffer_minutes: float,
    base_config: BufferConfiguration,
    feasible: bool,
    buffers_tested: int,
) -> Solution:
    config = base_config.with_base(buffer_minutes)
    conflicts = find_all_conflicts(appointments)
    changes = [change for change in (_buffer_change(c, config) for c in conflicts) if change is not None]
    gaps = [conflict.gap_minutes for conflict in conflicts]

    if feasible:
        reasoning = [
            f"Buffer of {buffer_minutes} minutes resolves all conflicts",
            "All appointments can be scheduled with adequate gaps",
        ]
    else:
        reasoning = [
            f"Buffer of {buffer_minutes} minutes still has {len(conflicts)} conflicts",
            f"Appointments are too densely packed. Minimum {buffer_minutes + 15}-minute buffer needed.",
        ]

    feasible_count = 1 if feasible else 0
    return Solution(
        changes=changes,
        success_rate=feasible_count / buffers_tested if buffers_tested else 0.0,
        impact_score=calculate_buffer_impact_score(buffer_minutes, base_config),
        feasibility="feasible" if feasible else "infeasible",
        reasoning=reasoning,
        statistics=SimulationStats(
            total_scenarios_tested=buffers_tested,
            feasible_scenarios=feasible_count,
            best_scenario_gap_minutes=buffer_minutes,
            worst_scenario_gap_minutes=min(gaps) if gaps else 0,
            average_gap_minutes=sum(gaps) / len(gaps) if gaps else 0,
            reorderings_tested=0,
            buffers_tested=buffers_tested,
        ),
    )


def simulate_buffer_variation(
    appointments: Sequence[GeocodedAppointment],
    buffers_to_test: Sequence[float] = settings.test_buffer_sizes,
    config: BufferConfiguration | None = None,
    deadline: Optional[float] = None,
) -> list[Solution]:
    """One solution per candidate base buffer, closest to the configured base first."""

    config = config or BufferConfiguration()
    solutions: list[Solution] = []
    for buffer_minutes in buffers_to_test:
        if deadline is not None and time.monotonic() >= deadline:
            logger.debug(f"Buffer sweep stopped after {len(solutions)} of {len(buffers_to_test)} candidates")
            break
        feasible = is_schedule_feasible(appointments, config.with_base(buffer_minutes))
        solutions.append(_buffer_solution(appointments, buffer_minutes, config, feasible, len(buffers_to_test)))
    return sorted(solutions, key=lambda solution: solution.impact_score)


def find_optimal_buffer(
    appointments: Sequence[GeocodedAppointment],
    config: BufferConfiguration | None = None,
) -> OptimalBuffer:
    config = config or BufferConfiguration()
    solutions = simulate_buffer_variation(appointments, OPTIMAL_BUFFER_CANDIDATES, config)
    best = next((solution for solution in solutions if solution.is_feasible), None)
    if best is not None:
        return OptimalBuffer(
            buffer_minutes=best.statistics.best_scenario_gap_minutes,
            feasibility=best.success_rate,
            solution=best,
        )
    return OptimalBuffer(
        buffer_minutes=config.maximum_buffer_minutes,
        feasibility=0,
        solution=solutions[0] if solutions else None,
    )
