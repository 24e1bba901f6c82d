"""Scheduling endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ..dependencies import get_maps_client
from ...schemas.scheduling import (
    ConflictRequest,
    ConflictResponse,
    FeasibilityResponse,
    OptimizedRouteModel,
    ScheduleRequest,
)
from ...services.scheduling.service import check_feasibility, optimize_schedule, resolve_schedule_conflicts
from ...services.travel.google_client import GoogleMapsClient

router = APIRouter(prefix="/schedule", tags=["schedule"])


@router.post("/optimize", response_model=OptimizedRouteModel, status_code=status.HTTP_200_OK)
def optimize(
    payload: ScheduleRequest,
    client: GoogleMapsClient = Depends(get_maps_client),
) -> OptimizedRouteModel:
    try:
        route = optimize_schedule(payload, client)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error optimizing schedule: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to optimize schedule: {str(exc)}"
        ) from exc

    if not route.success:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=route.error)
    return route


@router.post("/feasibility", response_model=FeasibilityResponse, status_code=status.HTTP_200_OK)
def feasibility(payload: ConflictRequest) -> FeasibilityResponse:
    try:
        return check_feasibility(payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error checking schedule feasibility: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to check schedule feasibility: {str(exc)}"
        ) from exc


@router.post("/conflicts", response_model=ConflictResponse, status_code=status.HTTP_200_OK)
def conflicts(payload: ConflictRequest) -> ConflictResponse:
    try:
        return resolve_schedule_conflicts(payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error resolving schedule conflicts: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to resolve schedule conflicts: {str(exc)}"
        ) from exc
