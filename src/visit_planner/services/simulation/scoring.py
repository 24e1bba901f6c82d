"""Weighted impact scoring and ranking of candidate solutions.

Every function here is a pure function of its arguments; lower scores are better.

    impact = 0.4 * disruption + 0.3 * (100 * (1 - success_rate)) + 0.3 * buffer_deviation
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, Sequence

from ...models.domain import BufferConfiguration, Solution
from ..timeutils import round_half_up

DISRUPTION_WEIGHT = 0.4
SUCCESS_WEIGHT = 0.3
BUFFER_WEIGHT = 0.3
WORKDAY_MINUTES = 480

ImpactCategory = Literal["low", "medium", "high"]
Grade = Literal["A", "B", "C", "D", "F"]


@dataclass(slots=True)
class Scorecard:
    total_impact: float
    disruption: float
    success_penalty: float
    buffer_deviation: float
    impact_category: ImpactCategory
    grade: Grade


def calculate_disruption_score(solution: Solution) -> float:
    """0 when nothing changes, 100 when every change moves a full working day."""

    if not solution.changes:
        return 0
    total_impact = sum(change.impact_minutes for change in solution.changes)
    max_possible = WORKDAY_MINUTES * len(solution.changes)
    return min(100, round_half_up(total_impact / max_possible * 100, 1))


def calculate_buffer_deviation_score(solution: Solution, config: BufferConfiguration | None = None) -> float:
    config = config or BufferConfiguration()
    best_gap = solution.statistics.best_scenario_gap_minutes if solution.statistics else 0
    if not best_gap:
        return 0
    if config.base_buffer_minutes <= 0:
        return 100

    ratio = best_gap / config.base_buffer_minutes
    if ratio <= 1.0:
        return 0
    if ratio <= 1.5:
        return 25
    if ratio <= 2.0:
        return 60
    return 100


def calculate_impact_score(solution: Solution, config: BufferConfiguration | None = None) -> float:
    disruption = calculate_disruption_score(solution)
    success_penalty = (1 - solution.success_rate) * 100
    buffer_deviation = calculate_buffer_deviation_score(solution, config)
    score = disruption * DISRUPTION_WEIGHT + success_penalty * SUCCESS_WEIGHT + buffer_deviation * BUFFER_WEIGHT
    return round_half_up(score, 2)


def rank_solutions(solutions: Sequence[Solution], config: BufferConfiguration | None = None) -> list[Solution]:
    """Sort ascending by computed impact score; equal scores keep their input order."""

    return sorted(solutions, key=lambda solution: calculate_impact_score(solution, config))


def select_best_solution(
    solutions: Sequence[Solution], config: BufferConfiguration | None = None
) -> Optional[Solution]:
    if not solutions:
        return None
    return rank_solutions(solutions, config)[0]


def categorize_impact(score: float) -> ImpactCategory:
    if score <= 30:
        return "low"
    if score <= 60:
        return "medium"
    return "high"


def grade_impact(score: float) -> Grade:
    if score <= 25:
        return "A"
    if score <= 40:
        return "B"
    if score <= 55:
        return "C"
    if score <= 70:
        return "D"
    return "F"


def generate_scorecard(solution: Solution, config: BufferConfiguration | None = None) -> Scorecard:
    total = calculate_impact_score(solution, config)
    return Scorecard(
        total_impact=total,
        disruption=calculate_disruption_score(solution),
        success_penalty=(1 - solution.success_rate) * 100,
        buffer_deviation=calculate_buffer_deviation_score(solution, config),
        impact_category=categorize_impact(total),
        grade=grade_impact(total),
    )


def calculate_solution_stats(solutions: Sequence[Solution]) -> dict:
    total = len(solutions)
    feasible = sum(1 for solution in solutions if solution.is_feasible)
    rates = [solution.success_rate for solution in solutions]
    return {
        "total_solutions": total,
        "feasible_solutions": feasible,
        "infeasible_solutions": total - feasible,
        "feasibility_rate": feasible / total * 100 if total else 0,
        "min_success_rate": min(rates) if rates else 0,
        "max_success_rate": max(rates) if rates else 0,
        "avg_success_rate": sum(rates) / total if total else 0,
    }
