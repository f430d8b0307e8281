"""
Shared fixtures.
"""

from datetime import datetime, timedelta, timezone

import pytest

from ridetrack.models.ride import LocationFix


BASE_TIME = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)


def fix_at(
    lat: float,
    lon: float,
    t: float = 0.0,
    alt: float = 0.0,
    speed: float = 0.0,
    **kwargs,
) -> LocationFix:
    """Fix at BASE_TIME + t seconds."""
    kwargs.setdefault("horizontal_accuracy", 5.0)
    return LocationFix(
        latitude=lat,
        longitude=lon,
        timestamp=BASE_TIME + timedelta(seconds=t),
        altitude=alt,
        speed=speed,
        **kwargs,
    )


@pytest.fixture
def make_fix():
    return fix_at


@pytest.fixture
def equator_trace():
    """Three fixes 0.001 deg of longitude apart on the equator."""
    return [
        fix_at(0.0, 0.0, t=0, alt=100.0, speed=10.0),
        fix_at(0.0, 0.001, t=60, alt=120.0, speed=12.0),
        fix_at(0.0, 0.002, t=120, alt=110.0, speed=20.0),
    ]


class FakeDirections:
    """DirectionsProvider returning canned routes."""

    def __init__(self, routes=None, error=None):
        self.routes = routes or []
        self.error = error
        self.calls = []

    def compute_routes(self, origin, destination, options):
        self.calls.append((origin, destination, options))
        if self.error:
            raise self.error
        return self.routes


class FakePlaces:
    """PlacesSearch returning canned places."""

    def __init__(self, places=None, error=None):
        self.places = places or []
        self.error = error
        self.regions = []

    def search(self, query, bias_region):
        self.regions.append(bias_region)
        if self.error:
            raise self.error
        return self.places
