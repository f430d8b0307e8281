"""
Request-scoped access to the application services and display helpers.
"""

from fastapi import Request

from ridetrack.models.navigation import NavigationState
from ridetrack.models.ride import RideHistorySummary, RideStatistics
from ridetrack.services.container import AppServices
from ridetrack.utils.units import (
    UnitSystem,
    format_altitude,
    format_distance,
    format_duration,
    format_speed,
)


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def format_statistics(stats: RideStatistics, units: UnitSystem) -> dict[str, str]:
    return {
        "distance": format_distance(stats.distance_m, units),
        "duration": format_duration(stats.duration_s),
        "average_speed": format_speed(stats.average_speed_mps, units),
        "max_speed": format_speed(stats.max_speed_mps, units),
        "total_ascent": format_altitude(stats.total_ascent_m, units),
        "total_descent": format_altitude(stats.total_descent_m, units),
    }


def format_history(summary: RideHistorySummary, units: UnitSystem) -> dict[str, str]:
    return {
        "total_distance": format_distance(summary.total_distance_m, units),
        "total_duration": format_duration(summary.total_duration_s, include_seconds=False),
        "average_speed": format_speed(summary.average_speed_mps, units),
    }


def format_navigation(state: NavigationState, units: UnitSystem) -> dict[str, str]:
    if not state.is_active:
        return {}
    return {
        "remaining_distance": format_distance(state.remaining_distance_m, units),
        "remaining_time": format_duration(state.remaining_time_s, include_seconds=False),
        "step_remaining_distance": format_distance(state.step_remaining_distance_m, units),
    }
