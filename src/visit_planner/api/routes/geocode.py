"""Geocoding endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ..dependencies import get_maps_client
from ...schemas.scheduling import GeocodeRequest, GeocodeResponse
from ...services.scheduling.service import geocode_appointments
from ...services.travel.google_client import GoogleMapsClient

router = APIRouter(prefix="/geocode", tags=["geocode"])


@router.post("", response_model=GeocodeResponse, status_code=status.HTTP_200_OK)
def geocode(
    payload: GeocodeRequest,
    client: GoogleMapsClient = Depends(get_maps_client),
) -> GeocodeResponse:
    """Geocode appointment addresses; per-address failures are reported by input index."""
    try:
        return geocode_appointments(payload, client)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error geocoding appointments: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to geocode appointments: {str(exc)}"
        ) from exc
