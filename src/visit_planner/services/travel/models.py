"""Result containers for the geocoding collaborator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ...models.domain import GeocodedAppointment, GeocodingErrorType


@dataclass(slots=True)
class GeocodeFailure:
    index: int
    message: str
    error_type: Optional[GeocodingErrorType] = None


@dataclass(slots=True)
class BatchGeocodeResult:
    success: bool
    geocoded: List[GeocodedAppointment] = field(default_factory=list)
    errors: List[GeocodeFailure] = field(default_factory=list)
