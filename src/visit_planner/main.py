"""FastAPI application entry point."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import geocode, health, schedule
from .config import settings
from .services.travel.google_client import GoogleMapsClient


def create_app(maps_client: GoogleMapsClient | None = None) -> FastAPI:
    app = FastAPI(title=settings.app_name)
    app.state.maps_client = maps_client or GoogleMapsClient()
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "api_prefix": settings.api_prefix,
            "health": f"{settings.api_prefix}/health",
            "docs": "/docs",
        }

    if not app.state.maps_client.api_key:
        logging.getLogger(__name__).warning(
            "VP_GOOGLE_MAPS_API_KEY is not set; geocoding is unavailable and travel uses great-circle estimates"
        )

    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(schedule.router, prefix=settings.api_prefix)
    app.include_router(geocode.router, prefix=settings.api_prefix)
    return app


app = create_app()
