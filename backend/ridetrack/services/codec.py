"""
Ride encoding for persistence.

Rides are stored as JSON through pydantic records. Encoding then decoding a
ride yields a Ride equal to the original in every field.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, TypeAdapter

from ridetrack.models.ride import LocationFix, Ride


class LocationFixRecord(BaseModel):
    latitude: float
    longitude: float
    timestamp: datetime
    speed: float = 0.0
    altitude: float = 0.0
    course: Optional[float] = None
    horizontal_accuracy: float = 0.0
    vertical_accuracy: float = 0.0

    @classmethod
    def from_fix(cls, fix: LocationFix) -> "LocationFixRecord":
        return cls(
            latitude=fix.latitude,
            longitude=fix.longitude,
            timestamp=fix.timestamp,
            speed=fix.speed,
            altitude=fix.altitude,
            course=fix.course,
            horizontal_accuracy=fix.horizontal_accuracy,
            vertical_accuracy=fix.vertical_accuracy,
        )

    def to_fix(self) -> LocationFix:
        return LocationFix(
            latitude=self.latitude,
            longitude=self.longitude,
            timestamp=self.timestamp,
            speed=self.speed,
            altitude=self.altitude,
            course=self.course,
            horizontal_accuracy=self.horizontal_accuracy,
            vertical_accuracy=self.vertical_accuracy,
        )


class RideRecord(BaseModel):
    id: str
    name: str
    start_time: datetime
    end_time: Optional[datetime] = None
    location_points: list[LocationFixRecord] = []

    @classmethod
    def from_ride(cls, ride: Ride) -> "RideRecord":
        return cls(
            id=ride.id,
            name=ride.name,
            start_time=ride.start_time,
            end_time=ride.end_time,
            location_points=[LocationFixRecord.from_fix(fix) for fix in ride.trace],
        )

    def to_ride(self) -> Ride:
        return Ride(
            id=self.id,
            name=self.name,
            start_time=self.start_time,
            end_time=self.end_time,
            trace=[point.to_fix() for point in self.location_points],
        )


_RIDE_LIST = TypeAdapter(list[RideRecord])


def encode_ride(ride: Ride) -> str:
    return RideRecord.from_ride(ride).model_dump_json()


def decode_ride(data: str | bytes) -> Ride:
    return RideRecord.model_validate_json(data).to_ride()


def encode_rides(rides: list[Ride]) -> bytes:
    return _RIDE_LIST.dump_json([RideRecord.from_ride(ride) for ride in rides])


def decode_rides(data: str | bytes) -> list[Ride]:
    return [record.to_ride() for record in _RIDE_LIST.validate_json(data)]
