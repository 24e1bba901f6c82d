"""Travel cost lookup contract and the geodesic estimate used when lookups fail."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional, Protocol, Sequence

from ...config import settings
from ...models.domain import Coordinate, TravelCost
from ..geospatial import haversine_km
from ..timeutils import round_half_up

logger = logging.getLogger(__name__)


class TravelLookupError(ConnectionError):
    """Raised when the travel cost service cannot be reached after retries."""


class TravelCostProvider(Protocol):
    def travel_cost(
        self, origin: Coordinate, destinations: Sequence[Coordinate]
    ) -> list[Optional[TravelCost]]:
        """Return one entry per destination, ``None`` where no route was found."""
        ...


def geodesic_travel_cost(origin: Coordinate, destination: Coordinate) -> TravelCost:
    distance_km = haversine_km(origin.lat, origin.lng, destination.lat, destination.lng)
    return TravelCost(
        distance_meters=distance_km * 1000.0,
        duration_minutes=round_half_up(distance_km * settings.fallback_minutes_per_km),
        origin=origin,
        destination=destination,
    )


def lookup_travel_cost(
    provider: Optional[TravelCostProvider],
    origin: Coordinate,
    destination: Coordinate,
) -> TravelCost:
    """Single point-to-point lookup that never raises; falls back to a geodesic estimate."""

    if provider is None:
        return geodesic_travel_cost(origin, destination)
    try:
        results = provider.travel_cost(origin, [destination])
    except Exception as exc:
        logger.debug(f"Travel lookup failed ({exc}); using geodesic estimate.")
        return geodesic_travel_cost(origin, destination)
    if results and results[0] is not None:
        # Route timings run on whole minutes.
        return replace(results[0], duration_minutes=round_half_up(results[0].duration_minutes))
    logger.debug("Travel lookup returned no route; using geodesic estimate.")
    return geodesic_travel_cost(origin, destination)
