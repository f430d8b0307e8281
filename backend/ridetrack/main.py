"""
RideTrack - FastAPI Backend

Main application entry point and configuration.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ridetrack.api.account import router as account_router
from ridetrack.api.navigation import router as navigation_router
from ridetrack.api.rides import location_router, recording_router, router as rides_router
from ridetrack.api.schemas import ErrorResponse
from ridetrack.core.errors import (
    APIError,
    AuthError,
    NoRouteAvailableError,
    RecordingError,
    RideNotFoundError,
    RideTrackError,
)
from ridetrack.services.container import AppServices, build_services
from ridetrack.services.providers import ProviderError


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


VERSION = "0.1.0"

ERROR_STATUS = {
    RideNotFoundError: 404,
    RecordingError: 409,
    NoRouteAvailableError: 409,
    AuthError: 401,
    APIError: 502,
    ProviderError: 502,
}


async def handle_domain_error(request: Request, exc: RideTrackError) -> JSONResponse:
    status = next(
        (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)),
        400,
    )
    if status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=status,
        content=ErrorResponse(detail=str(exc), code=exc.code).model_dump(),
    )


def create_app(services: Optional[AppServices] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        services: Pre-built services (tests). When None they are built from
            Settings at startup and closed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        # Startup
        logger.info("Starting RideTrack Backend")
        owned = services is None
        if owned:
            app.state.services = build_services()

        yield

        # Shutdown
        if owned:
            app.state.services.close()
        logger.info("Shutting down RideTrack Backend")

    app = FastAPI(
        title="RideTrack",
        description="""
        Backend API for motorcycle ride tracking.

        ## Features
        - Record rides from a stream of GPS fixes
        - Ride statistics: distance, speed, elevation
        - Place search and route calculation
        - Turn-by-turn navigation progress

        ## Data Flow
        1. Start recording via POST /recording/start
        2. Push fixes via POST /location/fixes
        3. Stop via POST /recording/stop; the ride is saved
        4. Browse rides via GET /rides
        """,
        version=VERSION,
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    # CORS middleware (allow all origins for development)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, restrict this
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RideTrackError, handle_domain_error)

    # Include routers
    app.include_router(rides_router)
    app.include_router(recording_router)
    app.include_router(location_router)
    app.include_router(navigation_router)
    app.include_router(account_router)

    @app.get("/")
    async def root():
        """Root endpoint - basic health check."""
        return {
            "name": "RideTrack",
            "version": VERSION,
            "status": "running",
        }

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint."""
        current = request.app.state.services
        return {
            "status": "healthy",
            "data_folder": str(current.repository.data_folder) if current.repository.data_folder else None,
            "ride_count": len(current.repository),
            "recording": current.recorder.is_recording,
            "navigating": current.tracker.is_active,
            "remote": current.remote is not None,
        }

    return app


app = create_app()
