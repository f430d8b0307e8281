"""
Display unit conversion and formatting.

Internal values are always SI (meters, seconds, m/s). Conversion happens
only at the display edge.
"""

from enum import Enum


METERS_PER_KM = 1000.0
METERS_PER_MILE = 1609.344
FEET_PER_METER = 3.28084
KMH_PER_MPS = 3.6
MPH_PER_MPS = 2.236936


class UnitSystem(Enum):
    """Measurement system chosen by the rider."""

    METRIC = "metric"
    IMPERIAL = "imperial"

    @property
    def distance_unit(self) -> str:
        return "km" if self is UnitSystem.METRIC else "mi"

    @property
    def speed_unit(self) -> str:
        return "km/h" if self is UnitSystem.METRIC else "mph"

    @property
    def altitude_unit(self) -> str:
        return "m" if self is UnitSystem.METRIC else "ft"

    def convert_distance(self, meters: float) -> float:
        if self is UnitSystem.METRIC:
            return meters / METERS_PER_KM
        return meters / METERS_PER_MILE

    def convert_speed(self, mps: float) -> float:
        if self is UnitSystem.METRIC:
            return mps * KMH_PER_MPS
        return mps * MPH_PER_MPS

    def convert_altitude(self, meters: float) -> float:
        if self is UnitSystem.METRIC:
            return meters
        return meters * FEET_PER_METER


def format_distance(meters: float, units: UnitSystem = UnitSystem.METRIC) -> str:
    """Format a distance, e.g. '12.34 km'."""
    return f"{units.convert_distance(meters):.2f} {units.distance_unit}"


def format_speed(mps: float, units: UnitSystem = UnitSystem.METRIC) -> str:
    """Format a speed, e.g. '54.0 km/h'."""
    return f"{units.convert_speed(mps):.1f} {units.speed_unit}"


def format_altitude(meters: float, units: UnitSystem = UnitSystem.METRIC) -> str:
    """Format an altitude or elevation delta, e.g. '120 m'."""
    return f"{units.convert_altitude(meters):.0f} {units.altitude_unit}"


def format_duration(seconds: float, include_seconds: bool = True) -> str:
    """
    Abbreviated duration, e.g. '1h 5m 3s'.

    Negative durations clamp to zero.
    """
    total = max(int(seconds), 0)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)

    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes or (hours and not include_seconds):
        parts.append(f"{minutes}m")
    if include_seconds and (secs or not parts):
        parts.append(f"{secs}s")
    if not parts:
        parts.append("0m")
    return " ".join(parts)
