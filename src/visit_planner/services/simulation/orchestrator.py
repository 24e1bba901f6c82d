"""Run every resolution strategy against each detected conflict and rank the results."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence

from ...config import settings
from ...models.domain import (
    BufferConfiguration,
    ConflictResolution,
    GeocodedAppointment,
    SchedulingConflict,
    Solution,
)
from ..conflicts.detector import find_all_conflicts
from .buffer_variator import simulate_buffer_variation
from .explanations import generate_explanation
from .reorderer import simulate_reordering
from .rescheduler import simulate_rescheduling
from .scoring import rank_solutions

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SimulationOptions:
    max_reordering_scenarios: int = settings.max_reordering_scenarios
    test_buffer_sizes: tuple[float, ...] = settings.test_buffer_sizes
    run_rescheduling: bool = True
    buffer_config: BufferConfiguration = field(default_factory=BufferConfiguration)
    time_budget_ms: float = settings.simulation_time_budget_ms


@dataclass(slots=True)
class SimulationSummary:
    total_conflicts: int
    total_solutions: int
    feasible_solutions: int
    infeasible_solutions: int
    conflicts_with_solutions: int
    conflicts_without_solutions: int
    conflicts_skipped: int = 0


def _resolve_conflict(
    conflict: SchedulingConflict,
    appointments: Sequence[GeocodedAppointment],
    options: SimulationOptions,
    deadline: float,
) -> ConflictResolution:
    solutions: list[Solution] = []

    try:
        solutions.extend(
            simulate_reordering(appointments, options.max_reordering_scenarios, options.buffer_config, deadline)
        )
    except Exception:
        logger.exception("Reordering simulation failed")

    try:
        solutions.extend(
            simulate_buffer_variation(appointments, options.test_buffer_sizes, options.buffer_config, deadline)
        )
    except Exception:
        logger.exception("Buffer variation simulation failed")

    if options.run_rescheduling:
        try:
            solutions.extend(simulate_rescheduling(conflict, appointments, options.buffer_config))
        except Exception:
            logger.exception("Rescheduling simulation failed")

    explained = [
        replace(solution, reasoning=[*solution.reasoning, *generate_explanation(solution)])
        for solution in solutions
    ]
    ranked = rank_solutions(explained, options.buffer_config)
    return ConflictResolution(
        conflict=conflict,
        solutions=ranked,
        recommended_solution=ranked[0] if ranked else None,
    )


def resolve_conflicts(
    appointments: Sequence[GeocodedAppointment],
    options: SimulationOptions | None = None,
) -> list[ConflictResolution]:
    """Resolve each detected conflict in detection order within the time budget.

    Conflicts reached after the budget is spent are left out of the result.
    """

    options = options or SimulationOptions()
    conflicts = find_all_conflicts(appointments)
    if not conflicts:
        return []

    started = time.monotonic()
    deadline = started + options.time_budget_ms / 1000
    resolutions: list[ConflictResolution] = []
    for conflict in conflicts:
        if time.monotonic() >= deadline:
            logger.warning(
                f"Simulation time budget of {options.time_budget_ms} ms exceeded; "
                f"{len(conflicts) - len(resolutions)} of {len(conflicts)} conflicts left unresolved"
            )
            break
        resolutions.append(_resolve_conflict(conflict, appointments, options, deadline))

    logger.info(
        f"Resolved {len(resolutions)} of {len(conflicts)} conflicts in "
        f"{(time.monotonic() - started) * 1000:.0f} ms"
    )
    return resolutions


run_conflict_simulations = resolve_conflicts


def get_simulation_summary(
    resolutions: Sequence[ConflictResolution],
    total_conflicts: Optional[int] = None,
) -> SimulationSummary:
    total_solutions = sum(len(resolution.solutions) for resolution in resolutions)
    feasible = sum(
        1 for resolution in resolutions for solution in resolution.solutions if solution.is_feasible
    )
    with_solutions = sum(1 for resolution in resolutions if resolution.recommended_solution is not None)
    total = len(resolutions) if total_conflicts is None else total_conflicts
    return SimulationSummary(
        total_conflicts=total,
        total_solutions=total_solutions,
        feasible_solutions=feasible,
        infeasible_solutions=total_solutions - feasible,
        conflicts_with_solutions=with_solutions,
        conflicts_without_solutions=len(resolutions) - with_solutions,
        conflicts_skipped=max(0, total - len(resolutions)),
    )


def get_best_overall_solution(
    resolutions: Sequence[ConflictResolution],
) -> tuple[Optional[ConflictResolution], Optional[Solution]]:
    for resolution in resolutions:
        if resolution.recommended_solution is not None:
            return resolution, resolution.recommended_solution
    return None, None
