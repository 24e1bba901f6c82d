import math
import time

import pytest

from visit_planner.models.domain import (
    BufferConfiguration,
    Flexibility,
    GeocodedAppointment,
    SchedulingConflict,
)
from visit_planner.services.conflicts.detector import detect_conflict
from visit_planner.services.simulation.buffer_variator import (
    find_optimal_buffer,
    is_schedule_feasible,
    simulate_buffer_variation,
)
from visit_planner.services.simulation.reorderer import generate_reorderings, simulate_reordering
from visit_planner.services.simulation.rescheduler import simulate_rescheduling


def _appointment(
    aid: str,
    start: str | None = None,
    duration: int = 30,
    flexibility: str = "flexible",
    date: str = "2024-01-15",
    lat: float = 24.7,
    lng: float = 46.7,
) -> GeocodedAppointment:
    return GeocodedAppointment(
        id=aid,
        app_name=f"Client {aid}",
        address=f"{aid} Street",
        visit_duration_minutes=duration,
        start_time=start,
        date=date,
        flexibility=Flexibility(flexibility),
        row_number=0,
        latitude=lat,
        longitude=lng,
        formatted_address=f"{aid} Street",
    )


def _tight_pair(second_flexibility: str = "flexible", first_flexibility: str = "flexible"):
    return [
        _appointment("A", "09:00", 60, first_flexibility),
        _appointment("B", "09:40", 30, second_flexibility),
    ]


@pytest.mark.parametrize("flexible_count", [1, 2, 3, 4])
def test_reorderings_hold_inflexible_slots(flexible_count: int):
    appointments = [_appointment(f"F{i}") for i in range(flexible_count)]
    appointments.insert(1, _appointment("I", "10:00", flexibility="inflexible"))

    orderings = list(generate_reorderings(appointments))

    assert len(orderings) == math.factorial(flexible_count)
    assert len({tuple(apt.id for apt in ordering) for ordering in orderings}) == len(orderings)
    assert all(ordering[1].id == "I" for ordering in orderings)
    assert all(sorted(apt.id for apt in ordering) == sorted(apt.id for apt in appointments) for ordering in orderings)


def test_reorderings_without_mixed_flexibility_yield_original_order():
    flexible = [_appointment("F1"), _appointment("F2"), _appointment("F3")]
    inflexible = [_appointment("I1", "09:00", flexibility="inflexible"), _appointment("I2", "11:00", flexibility="inflexible")]

    assert list(generate_reorderings(flexible)) == [flexible]
    assert list(generate_reorderings(inflexible)) == [inflexible]


def test_reordering_scores_and_sorts_solutions():
    appointments = [
        _appointment("I", "09:00", 60, "inflexible"),
        _appointment("F1", "09:30"),
        _appointment("F2", "13:00"),
    ]

    solutions = simulate_reordering(appointments)

    assert len(solutions) == 2
    assert [solution.impact_score for solution in solutions] == [30.0, 32.52]
    assert solutions[0].changes == []
    moved = solutions[1].changes
    assert {change.appointment_id for change in moved} == {"F1", "F2"}
    assert all(change.type == "reorder" and change.impact_minutes == 30 for change in moved)
    assert {change.proposed_time for change in moved} == {"slot 2", "slot 3"}
    assert all(solution.success_rate == 0 for solution in solutions)
    assert all(solution.feasibility == "infeasible" for solution in solutions)
    assert solutions[0].statistics.total_scenarios_tested == 2
    assert solutions[0].statistics.worst_scenario_gap_minutes == 30


def test_reordering_stops_at_scenario_cap():
    appointments = [_appointment(f"F{i}", f"{9 + i:02d}:00") for i in range(4)]
    appointments.append(_appointment("I", "15:00", flexibility="inflexible"))

    solutions = simulate_reordering(appointments, max_scenarios=5)

    assert len(solutions) == 5
    assert all(solution.statistics.reorderings_tested == 5 for solution in solutions)
    assert all(solution.is_feasible and solution.success_rate == 1 for solution in solutions)


def test_reordering_honours_deadline_and_skips_fixed_days():
    appointments = [_appointment("I", "09:00", flexibility="inflexible"), _appointment("F")]
    fixed_day = [
        _appointment("I1", "09:00", flexibility="inflexible"),
        _appointment("I2", "09:10", flexibility="inflexible"),
    ]

    assert simulate_reordering(appointments, deadline=time.monotonic() - 1) == []
    assert simulate_reordering(fixed_day) == []
    assert simulate_reordering([_appointment("F")]) == []


def test_buffer_feasibility_depends_on_candidate_base():
    appointments = _tight_pair()

    assert is_schedule_feasible(appointments, BufferConfiguration(base_buffer_minutes=50))
    assert not is_schedule_feasible(appointments, BufferConfiguration(base_buffer_minutes=55))


def test_buffer_variation_ranks_candidates_by_distance_from_base():
    solutions = simulate_buffer_variation(_tight_pair(), config=BufferConfiguration(base_buffer_minutes=45))

    assert [s.statistics.best_scenario_gap_minutes for s in solutions] == [45, 40, 50, 35, 55, 30, 60]
    assert [s.impact_score for s in solutions[:3]] == [0, 5.6, 5.6]
    assert [s.feasibility for s in solutions] == [
        "feasible", "feasible", "feasible", "feasible", "infeasible", "feasible", "infeasible",
    ]
    assert solutions[0].success_rate == pytest.approx(1 / 7)
    assert solutions[4].success_rate == 0
    assert all(s.statistics.buffers_tested == 7 for s in solutions)


def test_buffer_change_moves_later_appointment():
    best = simulate_buffer_variation(_tight_pair(), [45])[0]

    (change,) = best.changes
    assert change.type == "buffer-adjust"
    assert change.appointment_id == "B"
    assert change.proposed_time == "10:36"
    assert change.impact_minutes == 56
    assert change.reason.startswith("Adjust buffer from 40 to 36 minutes")


def test_buffer_change_moves_earlier_when_later_is_inflexible():
    best = simulate_buffer_variation(_tight_pair(second_flexibility="inflexible"), [45])[0]

    (change,) = best.changes
    assert change.appointment_id == "A"
    assert change.proposed_time == "07:55"
    assert change.impact_minutes == 65
    assert "second appointment is inflexible" in change.reason


def test_buffer_variation_leaves_fixed_pairs_unchanged():
    appointments = _tight_pair(second_flexibility="inflexible", first_flexibility="inflexible")

    solutions = simulate_buffer_variation(appointments, [45])

    assert solutions[0].changes == []
    assert simulate_buffer_variation(appointments, deadline=time.monotonic() - 1) == []


def test_find_optimal_buffer():
    optimal = find_optimal_buffer(_tight_pair())
    too_tight = find_optimal_buffer(
        [_appointment("A", "09:00", 60), _appointment("B", "09:05", 30)],
    )

    assert optimal.buffer_minutes == 45
    assert optimal.solution is not None and optimal.solution.is_feasible
    assert too_tight.buffer_minutes == 120
    assert too_tight.feasibility == 0


def test_rescheduling_offers_later_slot_and_next_day():
    first, second = _tight_pair("inflexible", "inflexible")
    conflict = detect_conflict(first, second)

    later, next_day = simulate_rescheduling(conflict, [first, second])

    (later_change,) = later.changes
    assert later_change.type == "reschedule"
    assert later_change.appointment_id == "B"
    assert later_change.proposed_time == "10:45"
    assert later_change.impact_minutes == 65
    assert later.success_rate == 0.8
    assert later.impact_score == 40

    (next_day_change,) = next_day.changes
    assert next_day_change.proposed_time == "09:00"
    assert next_day_change.impact_minutes == 480
    assert "2024-01-16" in next_day_change.reason
    assert next_day.success_rate == 1.0
    assert next_day.impact_score == 60


def test_rescheduling_without_start_times():
    untimed = SchedulingConflict(
        appointments=(_appointment("A"), _appointment("B")),
        gap_minutes=0,
        required_minutes=30,
        severity="critical",
    )
    half_timed = SchedulingConflict(
        appointments=(_appointment("A", "09:00"), _appointment("B")),
        gap_minutes=0,
        required_minutes=30,
        severity="critical",
    )

    (free,) = simulate_rescheduling(untimed)

    assert free.changes == []
    assert free.impact_score == 10
    assert free.is_feasible
    assert simulate_rescheduling(half_timed) == []
