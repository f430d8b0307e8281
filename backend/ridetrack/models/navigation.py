"""
Navigation session snapshot and events.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from ridetrack.models.route import Route, RouteStep


class NavigationStatus(Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"
    ARRIVED = "arrived"


@dataclass(frozen=True)
class NavigationState:
    """Read-only view of the tracker for display."""

    status: NavigationStatus
    route: Optional[Route]
    destination_name: Optional[str]
    step_index: int
    current_step: Optional[RouteStep]
    next_step: Optional[RouteStep]
    remaining_distance_m: float
    remaining_time_s: float
    step_remaining_distance_m: float
    step_progress: float
    alternative_count: int

    @property
    def is_active(self) -> bool:
        return self.status is NavigationStatus.ACTIVE


@dataclass(frozen=True)
class NavigationStarted:
    route: Route
    destination_name: Optional[str]


@dataclass(frozen=True)
class StepAdvanced:
    step_index: int
    instructions: str


@dataclass(frozen=True)
class Arrived:
    destination_name: Optional[str]


@dataclass(frozen=True)
class NavigationStopped:
    arrived: bool = False


NavigationEvent = Union[NavigationStarted, StepAdvanced, Arrived, NavigationStopped]
