"""
API routes for rides, recording and the location feed.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ridetrack.api.deps import format_history, format_statistics, get_services
from ridetrack.api.schemas import (
    FixBatchRequest,
    FixBatchResponse,
    RecordingStatusResponse,
    RegionResponse,
    RenameRideRequest,
    RideDetailResponse,
    RideHistoryResponse,
    RideStatisticsResponse,
    RideSummaryResponse,
    StartRecordingRequest,
    StepAdvancedResponse,
    SyncResponse,
    fix_to_schema,
)
from ridetrack.core.errors import AuthError
from ridetrack.models.navigation import Arrived, StepAdvanced
from ridetrack.models.ride import Ride
from ridetrack.services import telemetry
from ridetrack.services.container import AppServices


router = APIRouter(prefix="/rides", tags=["rides"])


def _statistics_response(
    services: AppServices,
    ride: Ride,
    now: Optional[datetime] = None,
) -> RideStatisticsResponse:
    stats = telemetry.ride_statistics(ride, now=now)
    return RideStatisticsResponse.from_stats(
        stats, format_statistics(stats, services.settings.unit_system)
    )


def _build_summary(services: AppServices, ride: Ride) -> RideSummaryResponse:
    return RideSummaryResponse(
        id=ride.id,
        name=ride.name,
        start_time=ride.start_time,
        end_time=ride.end_time,
        statistics=_statistics_response(services, ride),
    )


def _build_detail(services: AppServices, ride: Ride) -> RideDetailResponse:
    region = telemetry.bounding_region(ride.trace)
    return RideDetailResponse(
        **_build_summary(services, ride).model_dump(),
        region=RegionResponse.from_region(region) if region else None,
        trace=[fix_to_schema(fix) for fix in ride.trace],
    )


@router.get("", response_model=list[RideSummaryResponse])
async def list_rides(services: AppServices = Depends(get_services)):
    """
    List all saved rides, newest first.
    """
    return [_build_summary(services, ride) for ride in services.repository.list_rides()]


@router.get("/summary", response_model=RideHistoryResponse)
async def get_history_summary(services: AppServices = Depends(get_services)):
    """Totals across all saved rides."""
    summary = services.repository.history_summary()
    return RideHistoryResponse.from_summary(
        summary, format_history(summary, services.settings.unit_system)
    )


@router.get("/{ride_id}", response_model=RideDetailResponse)
async def get_ride(ride_id: str, services: AppServices = Depends(get_services)):
    """
    Get a ride with its full trace, statistics and map region.
    """
    ride = services.repository.get_ride(ride_id)
    if ride is None:
        raise HTTPException(status_code=404, detail=f"Ride not found: {ride_id}")
    return _build_detail(services, ride)


@router.patch("/{ride_id}", response_model=RideSummaryResponse)
async def rename_ride(
    ride_id: str,
    request: RenameRideRequest,
    services: AppServices = Depends(get_services),
):
    ride = services.repository.rename_ride(ride_id, request.name)
    return _build_summary(services, ride)


@router.delete("/{ride_id}", status_code=204)
async def delete_ride(ride_id: str, services: AppServices = Depends(get_services)):
    if not services.repository.delete_ride(ride_id):
        raise HTTPException(status_code=404, detail=f"Ride not found: {ride_id}")


@router.post("/{ride_id}/sync", response_model=SyncResponse)
async def sync_ride(ride_id: str, services: AppServices = Depends(get_services)):
    """
    Push a saved ride to the remote backend.
    """
    if services.remote is None:
        raise HTTPException(status_code=503, detail="Remote backend is not configured")
    ride = services.repository.require_ride(ride_id)
    if not services.remote.is_signed_in:
        raise AuthError(AuthError.NOT_AUTHENTICATED)
    remote_id = services.remote.save_ride(ride)
    return SyncResponse(ride_id=ride.id, remote_id=remote_id)


# ============================================================================
# Recording Routes
# ============================================================================

recording_router = APIRouter(prefix="/recording", tags=["recording"])


def _recording_status(services: AppServices) -> RecordingStatusResponse:
    ride = services.recorder.active_ride
    if ride is None:
        return RecordingStatusResponse(recording=False)
    return RecordingStatusResponse(
        recording=True,
        ride_id=ride.id,
        name=ride.name,
        start_time=ride.start_time,
        statistics=_statistics_response(services, ride, now=services.recorder.clock()),
    )


@recording_router.get("", response_model=RecordingStatusResponse)
async def get_recording_status(services: AppServices = Depends(get_services)):
    """Live statistics of the ride being recorded."""
    return _recording_status(services)


@recording_router.post("/start", response_model=RecordingStatusResponse)
async def start_recording(
    request: Optional[StartRecordingRequest] = None,
    services: AppServices = Depends(get_services),
):
    name = request.name if request and request.name else None
    if name:
        services.recorder.start_ride(name)
    else:
        services.recorder.start_ride()
    return _recording_status(services)


@recording_router.post("/stop", response_model=RideDetailResponse)
async def stop_recording(services: AppServices = Depends(get_services)):
    """Finish the ride in progress and save it."""
    ride = services.recorder.stop_ride()
    if ride is None:
        raise HTTPException(status_code=409, detail="No ride is being recorded")
    return _build_detail(services, ride)


@recording_router.post("/discard", response_model=RecordingStatusResponse)
async def discard_recording(services: AppServices = Depends(get_services)):
    if not services.recorder.discard_ride():
        raise HTTPException(status_code=409, detail="No ride is being recorded")
    return _recording_status(services)


# ============================================================================
# Location Feed
# ============================================================================

location_router = APIRouter(prefix="/location", tags=["location"])


@location_router.post("/fixes", response_model=FixBatchResponse)
async def post_fixes(request: FixBatchRequest, services: AppServices = Depends(get_services)):
    """
    Deliver a batch of fixes, in timestamp order.

    Accepted fixes go to both the recorder (if recording) and the navigation
    tracker (if navigating).
    """
    events = []
    unsubscribe = services.tracker.subscribe(events.append)
    accepted = 0
    try:
        for item in request.fixes:
            if services.feed.publish(item.to_fix()):
                accepted += 1
    finally:
        unsubscribe()

    ride = services.recorder.active_ride
    return FixBatchResponse(
        received=len(request.fixes),
        accepted=accepted,
        recording=ride is not None,
        recorded_fix_count=len(ride.trace) if ride is not None else 0,
        steps_advanced=[
            StepAdvancedResponse(step_index=e.step_index, instructions=e.instructions)
            for e in events if isinstance(e, StepAdvanced)
        ],
        arrived=any(isinstance(e, Arrived) for e in events),
    )
