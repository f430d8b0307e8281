"""
Sample data generator for demos and testing.

Generates realistic-looking ride traces (loop and hill climb) as
LocationFix lists, and routes that follow them.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import numpy as np

from ridetrack.models.ride import LocationFix, Ride
from ridetrack.models.route import Route, RouteStep
from ridetrack.utils.geo import Coordinate, METERS_PER_DEG_LAT


DEFAULT_START = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)


def _local_to_gps(
    x_local: np.ndarray,
    y_local: np.ndarray,
    center_lat: float,
    center_lon: float,
) -> tuple[np.ndarray, np.ndarray]:
    # Approximate conversion at this latitude
    meters_per_deg_lon = METERS_PER_DEG_LAT * np.cos(np.radians(center_lat))
    lat = center_lat + y_local / METERS_PER_DEG_LAT
    lon = center_lon + x_local / meters_per_deg_lon
    return lat, lon


def _build_fixes(
    lat: np.ndarray,
    lon: np.ndarray,
    alt: np.ndarray,
    speed_ms: np.ndarray,
    heading: np.ndarray,
    timestamps: np.ndarray,
    start: datetime,
) -> list[LocationFix]:
    return [
        LocationFix(
            latitude=float(lat[i]),
            longitude=float(lon[i]),
            timestamp=start + timedelta(seconds=float(timestamps[i])),
            speed=float(speed_ms[i]),
            altitude=float(alt[i]),
            course=float(heading[i]),
            horizontal_accuracy=5.0,
            vertical_accuracy=8.0,
        )
        for i in range(len(timestamps))
    ]


def generate_loop_trace(
    duration_s: float = 600.0,
    sample_rate_hz: float = 1.0,
    center_lat: float = 46.5197,
    center_lon: float = 6.6323,
    radius_m: float = 1500.0,
    base_altitude_m: float = 400.0,
    altitude_swing_m: float = 40.0,
    start: datetime = DEFAULT_START,
    seed: Optional[int] = None,
) -> list[LocationFix]:
    """
    Generate a closed-loop ride with rolling elevation.
    """
    rng = np.random.default_rng(seed)
    n_samples = max(int(duration_s * sample_rate_hz), 2)
    timestamps = np.linspace(0, duration_s, n_samples)

    t_param = timestamps / duration_s * 2 * np.pi
    x_local = radius_m * np.sin(t_param)
    y_local = radius_m * (1 - np.cos(t_param))

    # Add some noise to make it realistic
    x_local += rng.normal(0, 2.0, n_samples)
    y_local += rng.normal(0, 2.0, n_samples)

    lat, lon = _local_to_gps(x_local, y_local, center_lat, center_lon)
    alt = base_altitude_m + altitude_swing_m * np.sin(2 * t_param)

    # Speed and heading from position changes
    dx = np.diff(x_local, prepend=x_local[0])
    dy = np.diff(y_local, prepend=y_local[0])
    dt = timestamps[1] - timestamps[0]
    speed_ms = np.sqrt(dx**2 + dy**2) / dt
    speed_ms[0] = 0.0
    heading = np.degrees(np.arctan2(dx, dy)) % 360

    return _build_fixes(lat, lon, alt, speed_ms, heading, timestamps, start)


def generate_climb_trace(
    distance_m: float = 5000.0,
    climb_m: float = 300.0,
    speed_ms: float = 15.0,
    sample_interval_s: float = 2.0,
    start_lat: float = 46.0,
    start_lon: float = 7.0,
    start_altitude_m: float = 600.0,
    start: datetime = DEFAULT_START,
) -> list[LocationFix]:
    """
    Generate a straight northbound climb at constant speed. Deterministic.
    """
    duration_s = distance_m / speed_ms
    n_samples = max(int(duration_s / sample_interval_s) + 1, 2)
    timestamps = np.linspace(0, duration_s, n_samples)

    y_local = timestamps * speed_ms
    x_local = np.zeros(n_samples)
    lat, lon = _local_to_gps(x_local, y_local, start_lat, start_lon)
    alt = start_altitude_m + climb_m * (y_local / distance_m)
    speeds = np.full(n_samples, speed_ms)
    heading = np.zeros(n_samples)

    return _build_fixes(lat, lon, alt, speeds, heading, timestamps, start)


def generate_sample_ride(name: str = "Lake Loop", seed: Optional[int] = None) -> Ride:
    """A finished loop ride."""
    trace = generate_loop_trace(seed=seed)
    return Ride(
        name=name,
        start_time=trace[0].timestamp,
        end_time=trace[-1].timestamp,
        trace=trace,
    )


def route_along(
    waypoints: list[Coordinate],
    instructions: Optional[list[str]] = None,
    speed_ms: float = 15.0,
) -> Route:
    """
    Build a route through the waypoints, one step per waypoint.

    Step i is anchored at waypoint i and spans the leg to waypoint i+1; the
    last step ("Arrive at your destination") has zero length.
    """
    if len(waypoints) < 2:
        raise ValueError("A route needs at least two waypoints")

    legs = [a.distance_to(b) for a, b in zip(waypoints, waypoints[1:])] + [0.0]
    if instructions is None:
        instructions = ["Head out"] + ["Continue straight"] * (len(waypoints) - 2)
        instructions.append("Arrive at your destination")

    steps = tuple(
        RouteStep(
            instructions=text,
            distance_m=leg,
            anchor=point,
            geometry=(point,),
        )
        for point, leg, text in zip(waypoints, legs, instructions)
    )
    total = float(sum(legs))
    return Route(
        distance_m=total,
        expected_travel_time_s=total / speed_ms,
        destination=waypoints[-1],
        steps=steps,
    )


if __name__ == "__main__":
    ride = generate_sample_ride(seed=1)
    print(f"Generated {ride.name!r}: {len(ride.trace)} fixes")
