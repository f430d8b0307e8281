"""
Ride telemetry aggregation.

Pure functions over a trace (an ordered sequence of LocationFix). Nothing
here caches or mutates: callers may recompute as often as they like and get
identical output for identical input.

Degenerate traces never raise. With fewer than two fixes distance, ascent
and descent are 0; with no fixes speeds and altitudes are 0 and duration
is 0.0.
"""

from datetime import datetime
from typing import Iterable, Optional, Sequence

import numpy as np
from numpy.typing import NDArray

from ridetrack.models.ride import (
    LocationFix,
    Ride,
    RideHistorySummary,
    RideStatistics,
    utc_now,
)
from ridetrack.utils.geo import BoundingRegion, Coordinate, path_distance


# Padding factor applied to the trace extent for map regions
REGION_PADDING = 1.5
# Smallest span (degrees) so single-point or straight-line traces still show
MIN_REGION_SPAN_DEG = 0.01


Trace = Sequence[LocationFix]


def _column(trace: Trace, name: str) -> NDArray[np.float64]:
    return np.fromiter((getattr(fix, name) for fix in trace), dtype=np.float64, count=len(trace))


def _altitude_deltas(trace: Trace) -> NDArray[np.float64]:
    if len(trace) < 2:
        return np.zeros(0, dtype=np.float64)
    return np.diff(_column(trace, "altitude"))


def distance(trace: Trace) -> float:
    """Sum of consecutive haversine segment lengths in meters."""
    if len(trace) < 2:
        return 0.0
    return path_distance(_column(trace, "latitude"), _column(trace, "longitude"))


def duration(
    trace: Trace,
    end: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> float:
    """
    Seconds from the first fix to `end` (or to `now` for an open trace).

    An empty trace has duration 0.0.
    """
    if len(trace) == 0:
        return 0.0
    stop = end or now or utc_now()
    return (stop - trace[0].timestamp).total_seconds()


def average_speed(trace: Trace) -> float:
    """
    Arithmetic mean of the per-fix speed samples (m/s).

    Not distance / duration: densely sampled stretches weigh more than
    sparse ones.
    """
    if len(trace) == 0:
        return 0.0
    return float(np.mean(_column(trace, "speed")))


def max_speed(trace: Trace) -> float:
    if len(trace) == 0:
        return 0.0
    return float(np.max(_column(trace, "speed")))


def total_ascent(trace: Trace) -> float:
    """Sum of positive altitude deltas between consecutive fixes."""
    deltas = _altitude_deltas(trace)
    return float(np.sum(deltas[deltas > 0]))


def total_descent(trace: Trace) -> float:
    """Sum of the magnitudes of negative altitude deltas."""
    deltas = _altitude_deltas(trace)
    return float(-np.sum(deltas[deltas < 0]))


def min_altitude(trace: Trace) -> float:
    if len(trace) == 0:
        return 0.0
    return float(np.min(_column(trace, "altitude")))


def max_altitude(trace: Trace) -> float:
    if len(trace) == 0:
        return 0.0
    return float(np.max(_column(trace, "altitude")))


def bounding_region(trace: Trace) -> Optional[BoundingRegion]:
    """
    Map region covering the trace.

    Center is the midpoint of the latitude/longitude extents; spans are the
    extents padded by 1.5x and floored at 0.01 degrees. Returns None for an
    empty trace.
    """
    if len(trace) == 0:
        return None

    lat = _column(trace, "latitude")
    lon = _column(trace, "longitude")
    min_lat, max_lat = float(np.min(lat)), float(np.max(lat))
    min_lon, max_lon = float(np.min(lon)), float(np.max(lon))

    center = Coordinate(
        latitude=(min_lat + max_lat) / 2,
        longitude=(min_lon + max_lon) / 2,
    )
    return BoundingRegion(
        center=center,
        latitude_span=max((max_lat - min_lat) * REGION_PADDING, MIN_REGION_SPAN_DEG),
        longitude_span=max((max_lon - min_lon) * REGION_PADDING, MIN_REGION_SPAN_DEG),
    )


def compute_statistics(
    trace: Trace,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> RideStatistics:
    """
    All statistics for a trace in one pass.

    Args:
        trace: Ordered fixes
        start: Ride start time. When given, duration is measured from it
            instead of from the first fix.
        end: Ride end time (None while recording)
        now: Clock override for open rides

    Returns:
        RideStatistics
    """
    if start is not None:
        stop = end or now or utc_now()
        elapsed = (stop - start).total_seconds()
    else:
        elapsed = duration(trace, end=end, now=now)

    return RideStatistics(
        distance_m=distance(trace),
        duration_s=elapsed,
        average_speed_mps=average_speed(trace),
        max_speed_mps=max_speed(trace),
        min_altitude_m=min_altitude(trace),
        max_altitude_m=max_altitude(trace),
        total_ascent_m=total_ascent(trace),
        total_descent_m=total_descent(trace),
        fix_count=len(trace),
    )


def ride_statistics(ride: Ride, now: Optional[datetime] = None) -> RideStatistics:
    """Statistics for a ride, timed from its start time."""
    return compute_statistics(ride.trace, start=ride.start_time, end=ride.end_time, now=now)


def summarize_rides(
    rides: Iterable[Ride],
    now: Optional[datetime] = None,
) -> RideHistorySummary:
    """
    Aggregate a ride history.

    The history average speed is the mean of per-ride average speeds.
    Longest ride is by distance, fastest by average speed; ties keep the
    earliest ride in iteration order.
    """
    rides = list(rides)
    if not rides:
        return RideHistorySummary(
            ride_count=0,
            total_distance_m=0.0,
            total_duration_s=0.0,
            average_speed_mps=0.0,
        )

    distances = [distance(ride.trace) for ride in rides]
    speeds = [average_speed(ride.trace) for ride in rides]
    durations = [ride.duration_s(now=now) for ride in rides]

    return RideHistorySummary(
        ride_count=len(rides),
        total_distance_m=float(sum(distances)),
        total_duration_s=float(sum(durations)),
        average_speed_mps=float(np.mean(speeds)),
        longest_ride_id=rides[int(np.argmax(distances))].id,
        fastest_ride_id=rides[int(np.argmax(speeds))].id,
    )
