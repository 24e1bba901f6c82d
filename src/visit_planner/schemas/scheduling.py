"""Scheduling request/response schemas."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from ..models.domain import (
    Appointment,
    ConflictResolution,
    Flexibility,
    GeocodedAppointment,
    OptimizedRoute,
    SchedulingConflict,
    Solution,
)

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class AppointmentModel(BaseModel):
    id: str
    app_name: str
    address: str
    visit_duration_minutes: int = Field(..., gt=0)
    start_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN, description="Preferred start, HH:MM.")
    date: str = Field(..., pattern=DATE_PATTERN)
    flexibility: Flexibility = Flexibility.FLEXIBLE
    row_number: int = Field(default=0, ge=0)

    def to_domain(self) -> Appointment:
        return Appointment(
            id=self.id,
            app_name=self.app_name,
            address=self.address,
            visit_duration_minutes=self.visit_duration_minutes,
            start_time=self.start_time,
            date=self.date,
            flexibility=self.flexibility,
            row_number=self.row_number,
        )


class GeocodedAppointmentModel(AppointmentModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    formatted_address: str = ""

    def to_domain(self) -> GeocodedAppointment:
        return GeocodedAppointment(
            id=self.id,
            app_name=self.app_name,
            address=self.address,
            visit_duration_minutes=self.visit_duration_minutes,
            start_time=self.start_time,
            date=self.date,
            flexibility=self.flexibility,
            row_number=self.row_number,
            latitude=self.latitude,
            longitude=self.longitude,
            formatted_address=self.formatted_address or self.address,
        )

    @classmethod
    def from_domain(cls, appointment: GeocodedAppointment) -> "GeocodedAppointmentModel":
        return cls(**asdict(appointment))


class ScheduleRequest(BaseModel):
    appointments: List[GeocodedAppointmentModel] = Field(..., min_length=1)
    use_travel_lookups: bool = Field(
        default=True,
        description="If False, travel legs use the great-circle estimate instead of Google lookups.",
    )


class GeocodeRequest(BaseModel):
    appointments: List[AppointmentModel] = Field(..., min_length=1)


class BufferConfigurationModel(BaseModel):
    base_buffer_minutes: Optional[float] = Field(None, gt=0)
    minimum_buffer_minutes: Optional[float] = Field(None, ge=0)
    maximum_buffer_minutes: Optional[float] = Field(None, ge=0)
    flexible_factor: Optional[float] = Field(None, gt=0)

    @model_validator(mode="after")
    def _check_bounds(self) -> "BufferConfigurationModel":
        if (
            self.minimum_buffer_minutes is not None
            and self.maximum_buffer_minutes is not None
            and self.minimum_buffer_minutes > self.maximum_buffer_minutes
        ):
            raise ValueError("minimum_buffer_minutes cannot exceed maximum_buffer_minutes.")
        return self


class SimulationOptionsModel(BaseModel):
    max_reordering_scenarios: Optional[int] = Field(None, ge=1)
    test_buffer_sizes: Optional[List[float]] = None
    run_rescheduling: bool = True
    buffer_config: Optional[BufferConfigurationModel] = None
    time_budget_ms: Optional[float] = Field(None, ge=0)


class ConflictRequest(BaseModel):
    appointments: List[GeocodedAppointmentModel] = Field(..., min_length=1)
    options: Optional[SimulationOptionsModel] = None


class VisitStopModel(BaseModel):
    appointment_id: str
    app_name: str
    order: int
    arrival_time: str
    travel_time_from_previous: float
    distance_from_previous: float
    status: Literal["on_time", "early", "late"]
    minutes_from_preferred: int


class OptimizedRouteModel(BaseModel):
    route_date: str
    success: bool
    total_distance: float
    total_drive_time: float
    total_visit_time: float
    stops: List[VisitStopModel]
    error: Optional[str] = None
    warnings: Optional[List[str]] = None

    @classmethod
    def from_domain(cls, route: OptimizedRoute) -> "OptimizedRouteModel":
        return cls(
            route_date=route.route_date,
            success=route.success,
            total_distance=route.total_distance,
            total_drive_time=route.total_drive_time,
            total_visit_time=route.total_visit_time,
            stops=[
                VisitStopModel(
                    appointment_id=stop.appointment.id,
                    app_name=stop.appointment.app_name,
                    order=stop.order,
                    arrival_time=stop.arrival_time,
                    travel_time_from_previous=stop.travel_time_from_previous,
                    distance_from_previous=stop.distance_from_previous,
                    status=stop.status,
                    minutes_from_preferred=stop.minutes_from_preferred,
                )
                for stop in route.stops
            ],
            error=route.error,
            warnings=route.warnings,
        )


class ScheduleChangeModel(BaseModel):
    type: Literal["reorder", "reschedule", "buffer-adjust", "duration-adjust"]
    appointment_id: str
    appointment_name: str
    original_time: str
    proposed_time: str
    reason: str
    impact_minutes: float


class SimulationStatsModel(BaseModel):
    total_scenarios_tested: int
    feasible_scenarios: int
    best_scenario_gap_minutes: float
    worst_scenario_gap_minutes: float
    average_gap_minutes: float
    reorderings_tested: int
    buffers_tested: int


class SolutionModel(BaseModel):
    changes: List[ScheduleChangeModel]
    success_rate: float
    impact_score: float
    feasibility: Literal["feasible", "infeasible"]
    reasoning: List[str]
    statistics: SimulationStatsModel

    @classmethod
    def from_domain(cls, solution: Solution) -> "SolutionModel":
        return cls(
            changes=[ScheduleChangeModel(**asdict(change)) for change in solution.changes],
            success_rate=solution.success_rate,
            impact_score=solution.impact_score,
            feasibility=solution.feasibility,
            reasoning=list(solution.reasoning),
            statistics=SimulationStatsModel(**asdict(solution.statistics)),
        )


class ConflictModel(BaseModel):
    appointment_ids: List[str]
    gap_minutes: int
    required_minutes: int
    severity: Literal["critical", "major", "minor"]

    @classmethod
    def from_domain(cls, conflict: SchedulingConflict) -> "ConflictModel":
        return cls(
            appointment_ids=[apt.id for apt in conflict.appointments],
            gap_minutes=conflict.gap_minutes,
            required_minutes=conflict.required_minutes,
            severity=conflict.severity,
        )


class ConflictResolutionModel(BaseModel):
    conflict: ConflictModel
    solutions: List[SolutionModel]
    recommended_solution: Optional[SolutionModel] = None

    @classmethod
    def from_domain(cls, resolution: ConflictResolution) -> "ConflictResolutionModel":
        recommended = resolution.recommended_solution
        return cls(
            conflict=ConflictModel.from_domain(resolution.conflict),
            solutions=[SolutionModel.from_domain(solution) for solution in resolution.solutions],
            recommended_solution=SolutionModel.from_domain(recommended) if recommended else None,
        )


class SimulationSummaryModel(BaseModel):
    total_conflicts: int
    total_solutions: int
    feasible_solutions: int
    infeasible_solutions: int
    conflicts_with_solutions: int
    conflicts_without_solutions: int
    conflicts_skipped: int = 0


class ConflictResponse(BaseModel):
    resolutions: List[ConflictResolutionModel]
    summary: SimulationSummaryModel


class FeasibilityResponse(BaseModel):
    feasible: bool
    errors: List[str]
    solutions: List[Dict[str, Any]]
    recommendations: List[str]
    best_solution: Optional[Dict[str, Any]] = None
    summary: SimulationSummaryModel


class GeocodeErrorModel(BaseModel):
    index: int
    message: str
    error_type: Optional[str] = None


class GeocodeResponse(BaseModel):
    success: bool
    geocoded: List[GeocodedAppointmentModel]
    errors: List[GeocodeErrorModel]
