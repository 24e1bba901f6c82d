"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import Request

from ..services.travel.google_client import GoogleMapsClient


def get_maps_client(request: Request) -> GoogleMapsClient:
    return request.app.state.maps_client
