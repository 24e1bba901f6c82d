"""Feasibility report combining rule checks with simulated remedies."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from ...models.domain import ConflictResolution, GeocodedAppointment
from ..conflicts.detector import find_all_conflicts
from ..conflicts.feasibility import check_schedule_feasibility
from .explanations import generate_detailed_recommendation, generate_recommendation
from .orchestrator import (
    SimulationOptions,
    SimulationSummary,
    get_best_overall_solution,
    get_simulation_summary,
    resolve_conflicts,
)
from .scoring import categorize_impact

logger = logging.getLogger(__name__)

TOP_REASONS = 3


@dataclass(slots=True)
class FeasibilityReport:
    errors: list[str]
    solutions: list[dict[str, Any]] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    best_solution: Optional[dict[str, Any]] = None
    summary: SimulationSummary = field(default_factory=lambda: get_simulation_summary([]))

    @property
    def is_feasible(self) -> bool:
        return not self.errors


def format_solution(resolution: ConflictResolution) -> Optional[dict[str, Any]]:
    """Plain-dict view of a resolution's recommended solution, or ``None`` without one."""

    solution = resolution.recommended_solution
    if solution is None:
        return None

    conflict = resolution.conflict
    first, second = conflict.appointments
    return {
        "summary": generate_recommendation(resolution),
        "conflict": {
            "appointments": {
                "first": {
                    "name": first.app_name,
                    "time": first.start_time,
                    "duration": first.visit_duration_minutes,
                },
                "second": {
                    "name": second.app_name,
                    "time": second.start_time,
                    "duration": second.visit_duration_minutes,
                },
            },
            "gap_minutes": conflict.gap_minutes,
            "required_minutes": conflict.required_minutes,
            "severity": conflict.severity,
        },
        "solution": {
            "feasibility": solution.feasibility,
            "success_rate": solution.success_rate,
            "impact_score": solution.impact_score,
            "impact_category": categorize_impact(solution.impact_score),
            "changes": [
                {
                    "type": change.type,
                    "appointment": change.appointment_name,
                    "action": change.reason,
                    "impact": f"{change.impact_minutes} minutes" if change.impact_minutes else "unknown",
                }
                for change in solution.changes
            ],
            "reasoning": solution.reasoning[:TOP_REASONS],
        },
    }


def check_schedule_feasibility_enhanced(
    appointments: Sequence[GeocodedAppointment],
    options: SimulationOptions | None = None,
) -> FeasibilityReport:
    errors = check_schedule_feasibility(appointments)
    if not errors:
        return FeasibilityReport(errors=[], recommendations=["Schedule is feasible with current constraints"])

    try:
        total_conflicts = len(find_all_conflicts(appointments))
        resolutions = resolve_conflicts(appointments, options)
    except Exception:
        logger.exception("Conflict simulation failed")
        return FeasibilityReport(
            errors=errors,
            recommendations=[
                "Could not run conflict resolution simulations",
                "Consider manual schedule adjustment",
            ],
            summary=SimulationSummary(
                total_conflicts=len(errors),
                total_solutions=0,
                feasible_solutions=0,
                infeasible_solutions=0,
                conflicts_with_solutions=0,
                conflicts_without_solutions=len(errors),
            ),
        )

    recommendations: list[str] = []
    solutions: list[dict[str, Any]] = []
    for resolution in resolutions:
        recommendations.append(generate_recommendation(resolution))
        recommendations.extend(generate_detailed_recommendation(resolution))
        formatted = format_solution(resolution)
        if formatted is not None:
            solutions.append(formatted)

    best_resolution, _ = get_best_overall_solution(resolutions)
    return FeasibilityReport(
        errors=errors,
        solutions=solutions,
        recommendations=recommendations,
        best_solution=format_solution(best_resolution) if best_resolution else None,
        summary=get_simulation_summary(resolutions, total_conflicts=total_conflicts),
    )
