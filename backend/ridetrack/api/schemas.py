"""
API schemas (Pydantic models) for request/response validation.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ridetrack.models.navigation import NavigationState
from ridetrack.models.ride import LocationFix, RideHistorySummary, RideStatistics
from ridetrack.models.route import PlaceResult, Route, RouteOptions, RouteStep, TransportType
from ridetrack.utils.geo import BoundingRegion, Coordinate


# ============================================================================
# Shared
# ============================================================================

class CoordinateSchema(BaseModel):
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)

    @classmethod
    def from_coordinate(cls, coordinate: Coordinate) -> "CoordinateSchema":
        return cls(latitude=coordinate.latitude, longitude=coordinate.longitude)

    def to_coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)


class RegionResponse(BaseModel):
    center: CoordinateSchema
    latitude_span: float
    longitude_span: float

    @classmethod
    def from_region(cls, region: BoundingRegion) -> "RegionResponse":
        return cls(
            center=CoordinateSchema.from_coordinate(region.center),
            latitude_span=region.latitude_span,
            longitude_span=region.longitude_span,
        )


# ============================================================================
# Location Fixes
# ============================================================================

class LocationFixSchema(BaseModel):
    """A GPS fix as sent by the client. Negative speed means unknown."""
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    timestamp: datetime
    speed: float = 0.0
    altitude: float = 0.0
    course: Optional[float] = None
    horizontal_accuracy: float = 0.0
    vertical_accuracy: float = 0.0

    def to_fix(self) -> LocationFix:
        return LocationFix(**self.model_dump())


class FixBatchRequest(BaseModel):
    fixes: list[LocationFixSchema]


class StepAdvancedResponse(BaseModel):
    step_index: int
    instructions: str


class FixBatchResponse(BaseModel):
    received: int
    accepted: int
    recording: bool
    recorded_fix_count: int
    steps_advanced: list[StepAdvancedResponse] = []
    arrived: bool = False


# ============================================================================
# Ride Schemas
# ============================================================================

class RideStatisticsResponse(BaseModel):
    distance_m: float
    duration_s: float
    average_speed_mps: float
    max_speed_mps: float
    min_altitude_m: float
    max_altitude_m: float
    total_ascent_m: float
    total_descent_m: float
    fix_count: int
    # Display strings in the configured unit system
    formatted: dict[str, str] = {}

    @classmethod
    def from_stats(cls, stats: RideStatistics, formatted: dict[str, str]) -> "RideStatisticsResponse":
        return cls(
            distance_m=stats.distance_m,
            duration_s=stats.duration_s,
            average_speed_mps=stats.average_speed_mps,
            max_speed_mps=stats.max_speed_mps,
            min_altitude_m=stats.min_altitude_m,
            max_altitude_m=stats.max_altitude_m,
            total_ascent_m=stats.total_ascent_m,
            total_descent_m=stats.total_descent_m,
            fix_count=stats.fix_count,
            formatted=formatted,
        )


class RideSummaryResponse(BaseModel):
    """Ride for listing (no trace)."""
    id: str
    name: str
    start_time: datetime
    end_time: Optional[datetime] = None
    statistics: RideStatisticsResponse


class RideDetailResponse(RideSummaryResponse):
    region: Optional[RegionResponse] = None
    trace: list[LocationFixSchema]


class RenameRideRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)


class RideHistoryResponse(BaseModel):
    ride_count: int
    total_distance_m: float
    total_duration_s: float
    average_speed_mps: float
    longest_ride_id: Optional[str] = None
    fastest_ride_id: Optional[str] = None
    formatted: dict[str, str] = {}

    @classmethod
    def from_summary(cls, summary: RideHistorySummary, formatted: dict[str, str]) -> "RideHistoryResponse":
        return cls(
            ride_count=summary.ride_count,
            total_distance_m=summary.total_distance_m,
            total_duration_s=summary.total_duration_s,
            average_speed_mps=summary.average_speed_mps,
            longest_ride_id=summary.longest_ride_id,
            fastest_ride_id=summary.fastest_ride_id,
            formatted=formatted,
        )


def fix_to_schema(fix: LocationFix) -> LocationFixSchema:
    return LocationFixSchema(
        latitude=fix.latitude,
        longitude=fix.longitude,
        timestamp=fix.timestamp,
        speed=fix.speed,
        altitude=fix.altitude,
        course=fix.course,
        horizontal_accuracy=fix.horizontal_accuracy,
        vertical_accuracy=fix.vertical_accuracy,
    )


# ============================================================================
# Recording Schemas
# ============================================================================

class StartRecordingRequest(BaseModel):
    name: Optional[str] = None


class RecordingStatusResponse(BaseModel):
    recording: bool
    ride_id: Optional[str] = None
    name: Optional[str] = None
    start_time: Optional[datetime] = None
    statistics: Optional[RideStatisticsResponse] = None


# ============================================================================
# Navigation Schemas
# ============================================================================

class PlaceSearchRequest(BaseModel):
    query: str = Field(min_length=1)
    near: Optional[CoordinateSchema] = None


class PlaceResponse(BaseModel):
    name: str
    coordinate: CoordinateSchema
    address: Optional[str] = None
    category: Optional[str] = None

    @classmethod
    def from_place(cls, place: PlaceResult) -> "PlaceResponse":
        return cls(
            name=place.name,
            coordinate=CoordinateSchema.from_coordinate(place.coordinate),
            address=place.address,
            category=place.category,
        )


class RouteRequest(BaseModel):
    destination: CoordinateSchema
    destination_name: Optional[str] = None
    origin: Optional[CoordinateSchema] = None
    transport_type: TransportType = TransportType.AUTOMOBILE
    avoid_highways: bool = False
    avoid_tolls: bool = False

    def to_options(self) -> RouteOptions:
        return RouteOptions(
            transport_type=self.transport_type,
            avoid_highways=self.avoid_highways,
            avoid_tolls=self.avoid_tolls,
        )


class RouteStepResponse(BaseModel):
    instructions: str
    distance_m: float
    maneuver: str
    anchor: CoordinateSchema

    @classmethod
    def from_step(cls, step: RouteStep) -> "RouteStepResponse":
        return cls(
            instructions=step.instructions,
            distance_m=step.distance_m,
            maneuver=step.maneuver.value,
            anchor=CoordinateSchema.from_coordinate(step.anchor),
        )


class RouteResponse(BaseModel):
    name: str
    distance_m: float
    expected_travel_time_s: float
    transport_type: str
    destination: CoordinateSchema
    first_instruction: Optional[str] = None
    advisory_notices: list[str] = []
    steps: list[RouteStepResponse]

    @classmethod
    def from_route(cls, route: Route) -> "RouteResponse":
        return cls(
            name=route.name,
            distance_m=route.distance_m,
            expected_travel_time_s=route.expected_travel_time_s,
            transport_type=route.transport_type.label or route.transport_type.value,
            destination=CoordinateSchema.from_coordinate(route.destination),
            first_instruction=route.first_instruction,
            advisory_notices=list(route.advisory_notices),
            steps=[RouteStepResponse.from_step(step) for step in route.steps],
        )


class SelectRouteRequest(BaseModel):
    index: int = Field(ge=0)


class NavigationStateResponse(BaseModel):
    status: str
    destination_name: Optional[str] = None
    step_index: int
    current_step: Optional[RouteStepResponse] = None
    next_step: Optional[RouteStepResponse] = None
    remaining_distance_m: float
    remaining_time_s: float
    step_remaining_distance_m: float
    step_progress: float
    alternative_count: int
    route: Optional[RouteResponse] = None
    formatted: dict[str, str] = {}

    @classmethod
    def from_state(cls, state: NavigationState, formatted: dict[str, str]) -> "NavigationStateResponse":
        return cls(
            status=state.status.value,
            destination_name=state.destination_name,
            step_index=state.step_index,
            current_step=RouteStepResponse.from_step(state.current_step) if state.current_step else None,
            next_step=RouteStepResponse.from_step(state.next_step) if state.next_step else None,
            remaining_distance_m=state.remaining_distance_m,
            remaining_time_s=state.remaining_time_s,
            step_remaining_distance_m=state.step_remaining_distance_m,
            step_progress=state.step_progress,
            alternative_count=state.alternative_count,
            route=RouteResponse.from_route(state.route) if state.route else None,
            formatted=formatted,
        )


# ============================================================================
# Account Schemas
# ============================================================================

class SignInRequest(BaseModel):
    email: str
    password: str


class SignUpRequest(SignInRequest):
    username: Optional[str] = None


class PasswordResetRequest(BaseModel):
    email: str


class UserResponse(BaseModel):
    id: str
    email: str
    username: str


class RemoteRideResponse(BaseModel):
    """Ride summary stored on the remote backend (no trace)."""
    id: str
    name: str
    start_time: datetime
    end_time: Optional[datetime] = None


class SyncResponse(BaseModel):
    ride_id: str
    remote_id: str


# ============================================================================
# Error Schemas
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    detail: str
    code: Optional[str] = None
