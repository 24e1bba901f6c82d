"""Scheduling orchestration service."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from ...schemas.scheduling import (
    ConflictRequest,
    ConflictResolutionModel,
    ConflictResponse,
    FeasibilityResponse,
    GeocodeErrorModel,
    GeocodeRequest,
    GeocodedAppointmentModel,
    GeocodeResponse,
    OptimizedRouteModel,
    ScheduleRequest,
    SimulationOptionsModel,
    SimulationSummaryModel,
)
from ..conflicts.detector import find_all_conflicts
from ..routing.builder import build_route
from ..simulation.orchestrator import SimulationOptions, get_simulation_summary, resolve_conflicts
from ..simulation.report import check_schedule_feasibility_enhanced
from ..travel.google_client import GoogleMapsClient
from ..travel.provider import TravelCostProvider

logger = logging.getLogger(__name__)


def _build_options(payload: SimulationOptionsModel | None) -> SimulationOptions:
    base = SimulationOptions()
    if payload is None:
        return base

    config = base.buffer_config
    if payload.buffer_config is not None:
        overrides = payload.buffer_config.model_dump(exclude_none=True)
        config = replace(config, **overrides)
    if config.minimum_buffer_minutes > config.maximum_buffer_minutes:
        raise ValueError(
            f"Minimum buffer ({config.minimum_buffer_minutes} min) exceeds maximum buffer "
            f"({config.maximum_buffer_minutes} min)."
        )

    if payload.test_buffer_sizes is not None and not payload.test_buffer_sizes:
        raise ValueError("test_buffer_sizes must contain at least one buffer size.")

    return SimulationOptions(
        max_reordering_scenarios=payload.max_reordering_scenarios
        if payload.max_reordering_scenarios is not None
        else base.max_reordering_scenarios,
        test_buffer_sizes=tuple(payload.test_buffer_sizes)
        if payload.test_buffer_sizes is not None
        else base.test_buffer_sizes,
        run_rescheduling=payload.run_rescheduling,
        buffer_config=config,
        time_budget_ms=payload.time_budget_ms if payload.time_budget_ms is not None else base.time_budget_ms,
    )


def _travel_provider(payload: ScheduleRequest, client: GoogleMapsClient) -> Optional[TravelCostProvider]:
    if not payload.use_travel_lookups:
        return None
    if not client.api_key:
        logger.info("Google Maps key not configured; using great-circle travel estimates")
        return None
    return client


def optimize_schedule(payload: ScheduleRequest, client: GoogleMapsClient) -> OptimizedRouteModel:
    appointments = [item.to_domain() for item in payload.appointments]
    route = build_route(appointments, _travel_provider(payload, client))
    return OptimizedRouteModel.from_domain(route)


def check_feasibility(payload: ConflictRequest) -> FeasibilityResponse:
    appointments = [item.to_domain() for item in payload.appointments]
    report = check_schedule_feasibility_enhanced(appointments, _build_options(payload.options))
    return FeasibilityResponse(
        feasible=report.is_feasible,
        errors=report.errors,
        solutions=report.solutions,
        recommendations=report.recommendations,
        best_solution=report.best_solution,
        summary=SimulationSummaryModel.model_validate(report.summary, from_attributes=True),
    )


def resolve_schedule_conflicts(payload: ConflictRequest) -> ConflictResponse:
    appointments = [item.to_domain() for item in payload.appointments]
    options = _build_options(payload.options)
    total_conflicts = len(find_all_conflicts(appointments))
    resolutions = resolve_conflicts(appointments, options)
    summary = get_simulation_summary(resolutions, total_conflicts=total_conflicts)
    return ConflictResponse(
        resolutions=[ConflictResolutionModel.from_domain(resolution) for resolution in resolutions],
        summary=SimulationSummaryModel.model_validate(summary, from_attributes=True),
    )


def geocode_appointments(payload: GeocodeRequest, client: GoogleMapsClient) -> GeocodeResponse:
    appointments = [item.to_domain() for item in payload.appointments]
    result = client.batch_geocode(appointments)
    return GeocodeResponse(
        success=result.success,
        geocoded=[GeocodedAppointmentModel.from_domain(item) for item in result.geocoded],
        errors=[
            GeocodeErrorModel(
                index=failure.index,
                message=failure.message,
                error_type=failure.error_type.value if failure.error_type else None,
            )
            for failure in result.errors
        ],
    )
