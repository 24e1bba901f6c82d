"""Domain models for appointments, conflicts, candidate fixes and itineraries."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Literal, Optional, Tuple

from ..config import settings

Severity = Literal["critical", "major", "minor"]
Feasibility = Literal["feasible", "infeasible"]
ChangeType = Literal["reorder", "reschedule", "buffer-adjust", "duration-adjust"]
ArrivalStatus = Literal["on_time", "early", "late"]


class Flexibility(str, Enum):
    FLEXIBLE = "flexible"
    INFLEXIBLE = "inflexible"


@dataclass(frozen=True, slots=True)
class Appointment:
    """A parsed appointment row. ``start_time`` is ``None`` when no time was requested."""

    id: str
    app_name: str
    address: str
    visit_duration_minutes: int
    start_time: Optional[str]
    date: str
    flexibility: Flexibility
    row_number: int

    @property
    def is_inflexible(self) -> bool:
        return self.flexibility == Flexibility.INFLEXIBLE

    @property
    def is_flexible(self) -> bool:
        return self.flexibility == Flexibility.FLEXIBLE


@dataclass(frozen=True, slots=True)
class GeocodedAppointment(Appointment):
    """Appointment enriched with coordinates from the geocoding collaborator."""

    latitude: float
    longitude: float
    formatted_address: str


@dataclass(frozen=True, slots=True)
class BufferConfiguration:
    base_buffer_minutes: float = settings.base_buffer_minutes
    minimum_buffer_minutes: float = settings.minimum_buffer_minutes
    maximum_buffer_minutes: float = settings.maximum_buffer_minutes
    flexible_factor: float = settings.flexible_buffer_factor
    location_factor: float = 1.0
    duration_factor: float = 1.0

    def with_base(self, base_buffer_minutes: float) -> "BufferConfiguration":
        return replace(self, base_buffer_minutes=base_buffer_minutes)


@dataclass(slots=True)
class SchedulingConflict:
    appointments: Tuple[Appointment, Appointment]
    gap_minutes: int
    required_minutes: int
    severity: Severity

    @property
    def shortfall_minutes(self) -> int:
        return self.required_minutes - self.gap_minutes


@dataclass(slots=True)
class ScheduleChange:
    type: ChangeType
    appointment_id: str
    appointment_name: str
    original_time: str
    proposed_time: str
    reason: str
    impact_minutes: float


@dataclass(slots=True)
class SimulationStats:
    total_scenarios_tested: int = 0
    feasible_scenarios: int = 0
    best_scenario_gap_minutes: float = 0
    worst_scenario_gap_minutes: float = 0
    average_gap_minutes: float = 0
    reorderings_tested: int = 0
    buffers_tested: int = 0


@dataclass(slots=True)
class Solution:
    changes: List[ScheduleChange]
    success_rate: float
    impact_score: float
    feasibility: Feasibility
    reasoning: List[str]
    statistics: SimulationStats = field(default_factory=SimulationStats)

    @property
    def is_feasible(self) -> bool:
        return self.feasibility == "feasible"


@dataclass(slots=True)
class ConflictResolution:
    conflict: SchedulingConflict
    solutions: List[Solution]
    recommended_solution: Optional[Solution]


@dataclass(slots=True)
class VisitStop:
    appointment: GeocodedAppointment
    order: int
    arrival_time: str
    travel_time_from_previous: float
    distance_from_previous: float
    status: ArrivalStatus
    minutes_from_preferred: int


@dataclass(slots=True)
class OptimizedRoute:
    stops: List[VisitStop]
    total_distance: float
    total_drive_time: float
    total_visit_time: float
    route_date: str
    success: bool
    error: Optional[str] = None
    warnings: Optional[List[str]] = None


@dataclass(frozen=True, slots=True)
class Coordinate:
    lat: float
    lng: float


@dataclass(slots=True)
class TravelCost:
    distance_meters: float
    duration_minutes: float
    origin: Coordinate
    destination: Coordinate


class GeocodingErrorType(str, Enum):
    API_KEY_MISSING = "API_KEY_MISSING"
    API_KEY_INVALID = "API_KEY_INVALID"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    NETWORK_ERROR = "NETWORK_ERROR"
    INVALID_ADDRESS = "INVALID_ADDRESS"
    ZERO_RESULTS = "ZERO_RESULTS"
    SERVER_ERROR = "SERVER_ERROR"


@dataclass(slots=True)
class GeocodingResult:
    success: bool
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    formatted_address: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[GeocodingErrorType] = None
