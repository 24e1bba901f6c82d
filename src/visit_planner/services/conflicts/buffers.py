"""Adaptive minimum gap between two appointments."""

from __future__ import annotations

from ...models.domain import BufferConfiguration, GeocodedAppointment
from ..geospatial import haversine_km
from ..timeutils import round_half_up

LONG_VISIT_MINUTES = 60
SHORT_VISIT_MINUTES = 30
NEARBY_LIMIT_KM = 10.0
DISTANT_LIMIT_KM = 50.0


def calculate_smart_buffer(
    first: GeocodedAppointment,
    second: GeocodedAppointment,
    config: BufferConfiguration | None = None,
) -> int:
    config = config or BufferConfiguration()
    buffer = float(config.base_buffer_minutes)

    if first.is_flexible and second.is_flexible:
        buffer *= config.flexible_factor

    average_duration = (first.visit_duration_minutes + second.visit_duration_minutes) / 2
    if average_duration > LONG_VISIT_MINUTES:
        buffer *= 1.2
    elif average_duration < SHORT_VISIT_MINUTES:
        buffer *= 0.9

    distance_km = haversine_km(first.latitude, first.longitude, second.latitude, second.longitude)
    # Anything past 50 km already matched the 10 km branch, so it only gets +15.
    if distance_km > NEARBY_LIMIT_KM:
        buffer += 15
    elif distance_km > DISTANT_LIMIT_KM:
        buffer += 30

    buffer = max(config.minimum_buffer_minutes, min(config.maximum_buffer_minutes, buffer))
    return int(round_half_up(buffer))
