"""Reordering strategy: permute flexible appointments around fixed inflexible ones."""

from __future__ import annotations

import itertools
import time
from dataclasses import replace
from typing import Iterator, Optional, Sequence, TypeVar

from ...config import settings
from ...models.domain import (
    Appointment,
    BufferConfiguration,
    SchedulingConflict,
    ScheduleChange,
    SimulationStats,
    Solution,
)
from ..conflicts.detector import find_all_conflicts, group_by_date
from .scoring import calculate_impact_score

MINUTES_PER_POSITION = 30

A = TypeVar("A", bound=Appointment)


def generate_reorderings(appointments: Sequence[A]) -> Iterator[list[A]]:
    """Lazily yield every ordering with inflexible appointments held in their slots.

    Permutations of the flexible appointments fill the flexible slots in the order
    ``itertools.permutations`` produces them. With no flexible or no inflexible
    appointment only the original order is yielded.
    """

    flexible = [apt for apt in appointments if not apt.is_inflexible]
    if len(flexible) == len(appointments) or not flexible:
        yield list(appointments)
        return

    for permutation in itertools.permutations(flexible):
        fill = iter(permutation)
        yield [apt if apt.is_inflexible else next(fill) for apt in appointments]


def _deadline_passed(deadline: Optional[float]) -> bool:
    return deadline is not None and time.monotonic() >= deadline


def _reordering_solution(
    reordered: Sequence[Appointment],
    original: Sequence[Appointment],
    conflicts: Sequence[SchedulingConflict],
) -> Solution:
    original_index = {apt.id: index for index, apt in enumerate(original)}
    changes = [
        ScheduleChange(
            type="reorder",
            appointment_id=apt.id,
            appointment_name=apt.app_name,
            original_time=apt.start_time or "flexible",
            proposed_time=f"slot {index + 1}",
            reason="Reordered to resolve scheduling conflict",
            impact_minutes=abs(index - original_index[apt.id]) * MINUTES_PER_POSITION,
        )
        for index, apt in enumerate(reordered)
        if original_index[apt.id] != index
    ]

    feasible = not conflicts
    gaps = [conflict.gap_minutes for conflict in conflicts]
    if feasible:
        reasoning = f"Successfully reordered {len(reordered)} appointments with no conflicts"
    else:
        reasoning = f"Attempted reordering but {len(conflicts)} conflicts remain"

    return Solution(
        changes=changes,
        success_rate=0.0,
        impact_score=0.0,
        feasibility="feasible" if feasible else "infeasible",
        reasoning=[reasoning],
        statistics=SimulationStats(
            total_scenarios_tested=1,
            feasible_scenarios=1 if feasible else 0,
            worst_scenario_gap_minutes=min(gaps) if gaps else 0,
            average_gap_minutes=sum(gaps) / len(gaps) if gaps else 0,
            reorderings_tested=1,
        ),
    )


def _aggregate_stats(solutions: Sequence[Solution], tested: int, feasible: int) -> SimulationStats:
    best = [s.statistics.best_scenario_gap_minutes for s in solutions if s.statistics.best_scenario_gap_minutes > 0]
    worst = [s.statistics.worst_scenario_gap_minutes for s in solutions if s.statistics.worst_scenario_gap_minutes > 0]
    average = [s.statistics.average_gap_minutes for s in solutions if s.statistics.average_gap_minutes > 0]
    return SimulationStats(
        total_scenarios_tested=tested,
        feasible_scenarios=feasible,
        best_scenario_gap_minutes=max(best) if best else 0,
        worst_scenario_gap_minutes=min(worst) if worst else 0,
        average_gap_minutes=sum(average) / len(average) if average else 0,
        reorderings_tested=tested,
        buffers_tested=0,
    )


def simulate_reordering(
    appointments: Sequence[Appointment],
    max_scenarios: int = settings.max_reordering_scenarios,
    config: BufferConfiguration | None = None,
    deadline: Optional[float] = None,
) -> list[Solution]:
    """Test reorderings of each date until ``max_scenarios`` have been tried overall.

    Every returned solution carries the aggregate success rate and statistics of the
    whole run, and the list is sorted by impact score (best first).
    """

    solutions: list[Solution] = []
    tested = 0
    feasible = 0

    for day_appointments in group_by_date(appointments).values():
        if tested >= max_scenarios or _deadline_passed(deadline):
            break
        if len(day_appointments) < 2 or all(apt.is_inflexible for apt in day_appointments):
            continue

        for reordered in generate_reorderings(day_appointments):
            if tested >= max_scenarios or _deadline_passed(deadline):
                break
            conflicts = find_all_conflicts(reordered)
            tested += 1
            if not conflicts:
                feasible += 1
            solutions.append(_reordering_solution(reordered, day_appointments, conflicts))

    success_rate = feasible / tested if tested else 0.0
    stats = _aggregate_stats(solutions, tested, feasible)

    stamped = []
    for solution in solutions:
        solution = replace(solution, success_rate=success_rate, statistics=replace(stats))
        solution.impact_score = calculate_impact_score(solution, config)
        stamped.append(solution)
    return sorted(stamped, key=lambda solution: solution.impact_score)
