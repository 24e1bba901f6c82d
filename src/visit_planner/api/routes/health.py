"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ..dependencies import get_maps_client
from ...services.travel.google_client import GoogleMapsClient

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/maps", status_code=status.HTTP_200_OK)
def health_maps(client: GoogleMapsClient = Depends(get_maps_client)) -> dict:
    """Report whether the Google Maps key is usable and how full the lookup caches are."""
    problem = client.validate_api_key()
    return {
        "service": "google_maps",
        "configured": problem is None,
        "error": problem.error if problem else None,
        "caches": client.cache_stats(),
    }
