"""
Ride data model.

A ride is an ordered trace of GPS fixes plus identity and timing. All
statistics are derived from the trace on demand by
ridetrack.services.telemetry and are never stored on the model.

Units:
- positions in WGS84 degrees
- speed in m/s
- altitude and accuracy in meters
- course in degrees, 0=N, 90=E
"""

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from ridetrack.utils.geo import Coordinate


DEFAULT_RIDE_NAME = "My Ride"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LocationFix:
    """
    A single GPS sample as delivered by the location service.

    Negative speeds (the platform's "unknown") are floored to 0. A negative
    or NaN course means the heading is unknown and is stored as None.
    """

    latitude: float
    longitude: float
    timestamp: datetime
    speed: float = 0.0
    altitude: float = 0.0
    course: Optional[float] = None
    horizontal_accuracy: float = 0.0
    vertical_accuracy: float = 0.0

    def __post_init__(self):
        if not self.speed > 0:
            object.__setattr__(self, "speed", 0.0)
        if self.course is not None and (math.isnan(self.course) or self.course < 0):
            object.__setattr__(self, "course", None)

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)


@dataclass
class Ride:
    """A recorded (or in-progress) ride."""

    name: str = DEFAULT_RIDE_NAME
    start_time: datetime = field(default_factory=utc_now)
    end_time: Optional[datetime] = None
    trace: list[LocationFix] = field(default_factory=list)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def is_open(self) -> bool:
        """True while the ride is still being recorded."""
        return self.end_time is None

    def duration_s(self, now: Optional[datetime] = None) -> float:
        """Seconds from start to end (or to now while still open)."""
        end = self.end_time or now or utc_now()
        return (end - self.start_time).total_seconds()


@dataclass(frozen=True)
class RideStatistics:
    """Derived statistics for a trace. Recomputed, never persisted."""

    distance_m: float
    duration_s: float
    average_speed_mps: float
    max_speed_mps: float
    min_altitude_m: float
    max_altitude_m: float
    total_ascent_m: float
    total_descent_m: float
    fix_count: int


@dataclass(frozen=True)
class RideHistorySummary:
    """Aggregate over a list of rides."""

    ride_count: int
    total_distance_m: float
    total_duration_s: float
    average_speed_mps: float
    longest_ride_id: Optional[str] = None
    fastest_ride_id: Optional[str] = None
