"""Travel lookup services."""

from .cache import LookupCache
from .google_client import GoogleMapsClient
from .provider import TravelCostProvider, TravelLookupError, geodesic_travel_cost, lookup_travel_cost

__all__ = [
    "GoogleMapsClient",
    "LookupCache",
    "TravelCostProvider",
    "TravelLookupError",
    "geodesic_travel_cost",
    "lookup_travel_cost",
]
