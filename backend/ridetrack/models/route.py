"""
Route and place model returned by the directions / search collaborators.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ridetrack.utils.geo import Coordinate


class TransportType(Enum):
    AUTOMOBILE = "automobile"
    WALKING = "walking"
    TRANSIT = "transit"
    ANY = "any"

    @property
    def label(self) -> Optional[str]:
        return {
            TransportType.AUTOMOBILE: "Driving",
            TransportType.WALKING: "Walking",
            TransportType.TRANSIT: "Transit",
            TransportType.ANY: "Travel",
        }.get(self)


class Maneuver(Enum):
    """Turn hint derived from instruction text, used for icons."""

    U_TURN = "u_turn"
    LEFT = "left"
    RIGHT = "right"
    STRAIGHT = "straight"
    ARRIVE = "arrive"


# Checked in order, first match wins ("make a u-turn left" is a u-turn)
_MANEUVER_KEYWORDS: list[tuple[Maneuver, tuple[str, ...]]] = [
    (Maneuver.U_TURN, ("u-turn",)),
    (Maneuver.LEFT, ("left",)),
    (Maneuver.RIGHT, ("right",)),
    (Maneuver.STRAIGHT, ("continue", "head", "straight")),
    (Maneuver.ARRIVE, ("arrive", "destination")),
]


def maneuver_from_instructions(instructions: str) -> Maneuver:
    text = instructions.lower()
    for maneuver, keywords in _MANEUVER_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return maneuver
    return Maneuver.STRAIGHT


@dataclass(frozen=True)
class RouteStep:
    """
    One instruction-bearing segment of a route.

    The anchor is the first coordinate of the step geometry: the point at
    which the instruction applies.
    """

    instructions: str
    distance_m: float
    anchor: Coordinate
    geometry: tuple[Coordinate, ...] = ()

    @property
    def maneuver(self) -> Maneuver:
        return maneuver_from_instructions(self.instructions)


@dataclass(frozen=True)
class Route:
    """A precomputed route from the directions provider."""

    distance_m: float
    expected_travel_time_s: float
    destination: Coordinate
    steps: tuple[RouteStep, ...] = ()
    name: str = ""
    transport_type: TransportType = TransportType.AUTOMOBILE
    advisory_notices: tuple[str, ...] = ()

    @property
    def first_instruction(self) -> Optional[str]:
        """First non-empty instruction, for route previews."""
        for step in self.steps:
            if step.instructions:
                return step.instructions
        return None


@dataclass(frozen=True)
class RouteOptions:
    """
    Request options passed through unmodified to the directions provider.
    """

    transport_type: TransportType = TransportType.AUTOMOBILE
    avoid_highways: bool = False
    avoid_tolls: bool = False
    alternatives: bool = True


@dataclass(frozen=True)
class PlaceResult:
    """A place search hit."""

    name: str
    coordinate: Coordinate
    address: Optional[str] = None
    category: Optional[str] = None
