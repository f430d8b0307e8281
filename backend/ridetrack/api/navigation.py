"""
API routes for place search and turn-by-turn navigation.
"""

from fastapi import APIRouter, Depends, HTTPException

from ridetrack.api.deps import format_navigation, get_services
from ridetrack.api.schemas import (
    NavigationStateResponse,
    PlaceResponse,
    PlaceSearchRequest,
    RouteRequest,
    RouteResponse,
    SelectRouteRequest,
)
from ridetrack.services.container import AppServices
from ridetrack.services.navigation import PlanningError, PlanningErrorKind


router = APIRouter(prefix="/navigation", tags=["navigation"])


PLANNING_STATUS = {
    PlanningErrorKind.LOCATION_UNAVAILABLE: 409,
    PlanningErrorKind.NO_ROUTE_FOUND: 404,
    PlanningErrorKind.NO_RESULTS: 404,
    PlanningErrorKind.PROVIDER_FAILURE: 502,
}


def _raise_planning_error(error: PlanningError) -> None:
    raise HTTPException(
        status_code=PLANNING_STATUS[error.kind],
        detail=error.message,
        headers={"X-Error-Code": error.kind.value},
    )


def _state_response(services: AppServices) -> NavigationStateResponse:
    state = services.tracker.state
    return NavigationStateResponse.from_state(
        state, format_navigation(state, services.settings.unit_system)
    )


@router.post("/search", response_model=list[PlaceResponse])
async def search_places(request: PlaceSearchRequest, services: AppServices = Depends(get_services)):
    """
    Search places, biased around `near` or the last known location.
    """
    result = services.planner.search_places(
        request.query,
        near=request.near.to_coordinate() if request.near else None,
    )
    if result.error is not None:
        _raise_planning_error(result.error)
    return [PlaceResponse.from_place(place) for place in result.places]


@router.post("/routes", response_model=list[RouteResponse])
async def calculate_routes(request: RouteRequest, services: AppServices = Depends(get_services)):
    """
    Compute routes to a destination and select the first one.

    Navigation is not started; use POST /navigation/start.
    """
    result = services.planner.calculate_route(
        request.destination.to_coordinate(),
        origin=request.origin.to_coordinate() if request.origin else None,
        options=request.to_options(),
    )
    if result.error is not None:
        _raise_planning_error(result.error)

    services.tracker.prepare(result.routes, request.destination_name)
    return [RouteResponse.from_route(route) for route in result.routes]


@router.post("/routes/select", response_model=NavigationStateResponse)
async def select_route(request: SelectRouteRequest, services: AppServices = Depends(get_services)):
    """Switch to an alternative route before starting."""
    if not services.tracker.select_alternative(request.index):
        raise HTTPException(status_code=409, detail=f"Cannot select route {request.index}")
    return _state_response(services)


@router.post("/start", response_model=NavigationStateResponse)
async def start_navigation(services: AppServices = Depends(get_services)):
    services.tracker.start()
    return _state_response(services)


@router.post("/stop", response_model=NavigationStateResponse)
async def stop_navigation(services: AppServices = Depends(get_services)):
    services.tracker.stop()
    return _state_response(services)


@router.get("", response_model=NavigationStateResponse)
async def get_navigation_state(services: AppServices = Depends(get_services)):
    """Current step, next step and remaining distances."""
    return _state_response(services)
