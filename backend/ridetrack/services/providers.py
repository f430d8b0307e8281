"""
External map collaborators: directions and place search.

The core only depends on the two protocols. OSRM and Nominatim adapters are
provided for running against public OpenStreetMap services; any other
provider can be plugged in by implementing the protocol.
"""

import logging
from typing import Optional, Protocol

import requests

from ridetrack.core.errors import RideTrackError
from ridetrack.models.route import (
    PlaceResult,
    Route,
    RouteOptions,
    RouteStep,
    TransportType,
)
from ridetrack.utils.geo import BoundingRegion, Coordinate


logger = logging.getLogger(__name__)


class ProviderError(RideTrackError):
    """Transport or protocol failure talking to a map service."""

    code = "provider_error"


class DirectionsProvider(Protocol):
    """Computes routes between two points."""

    def compute_routes(
        self,
        origin: Coordinate,
        destination: Coordinate,
        options: RouteOptions,
    ) -> list[Route]:
        """Return candidate routes, best first. Empty list means no route."""
        ...


class PlacesSearch(Protocol):
    """Free-text place search."""

    def search(self, query: str, bias_region: Optional[BoundingRegion]) -> list[PlaceResult]:
        ...


# ============================================================================
# OSRM
# ============================================================================

OSRM_PROFILES = {
    TransportType.AUTOMOBILE: "driving",
    TransportType.ANY: "driving",
    TransportType.WALKING: "foot",
}

_ORDINALS = ["first", "second", "third", "fourth", "fifth", "sixth", "seventh", "eighth"]


def _onto(name: str) -> str:
    return f" onto {name}" if name else ""


def osrm_instruction(step: dict) -> str:
    """
    Build a human instruction from an OSRM step.

    OSRM returns maneuver type/modifier codes rather than text. The wording
    keeps the keywords ("left", "right", "u-turn", "continue", "arrive") the
    maneuver hints rely on.
    """
    maneuver = step.get("maneuver", {})
    kind = maneuver.get("type", "")
    modifier = maneuver.get("modifier", "")
    name = step.get("name", "")

    if kind == "depart":
        return f"Head out{_onto(name)}" if name else "Head out"
    if kind == "arrive":
        return "Arrive at your destination"
    if modifier == "uturn":
        return "Make a U-turn"
    if kind in ("roundabout", "rotary"):
        exit_number = maneuver.get("exit")
        if exit_number and 0 < exit_number <= len(_ORDINALS):
            return f"At the roundabout, take the {_ORDINALS[exit_number - 1]} exit{_onto(name)}"
        return f"Enter the roundabout{_onto(name)}"
    if kind in ("continue", "new name") or modifier == "straight":
        return f"Continue straight{_onto(name)}"
    if kind == "merge":
        return f"Merge {modifier}{_onto(name)}".strip()
    if kind in ("on ramp", "off ramp"):
        return f"Take the ramp on the {modifier}{_onto(name)}"
    if kind == "fork":
        return f"Keep {modifier} at the fork{_onto(name)}"
    if kind == "end of road":
        return f"Turn {modifier} at the end of the road{_onto(name)}"
    if modifier:
        return f"Turn {modifier}{_onto(name)}"
    return f"Continue{_onto(name)}"


def _coordinate(lon_lat: list) -> Coordinate:
    return Coordinate(latitude=float(lon_lat[1]), longitude=float(lon_lat[0]))


class OSRMDirectionsProvider:
    """Directions from an OSRM HTTP server."""

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout_s: float = 10.0,
        user_agent: str = "RideTrack/0.1",
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout_s = timeout_s
        self.user_agent = user_agent

    def compute_routes(
        self,
        origin: Coordinate,
        destination: Coordinate,
        options: RouteOptions,
    ) -> list[Route]:
        profile = OSRM_PROFILES.get(options.transport_type)
        if profile is None:
            logger.warning(f"OSRM has no profile for {options.transport_type.value}, using driving")
            profile = "driving"

        coords = f"{origin.longitude},{origin.latitude};{destination.longitude},{destination.latitude}"
        url = f"{self.base_url}/route/v1/{profile}/{coords}"
        params = {
            "alternatives": "true" if options.alternatives else "false",
            "steps": "true",
            "overview": "false",
            "geometries": "geojson",
        }
        exclude = []
        if options.avoid_highways:
            exclude.append("motorway")
        if options.avoid_tolls:
            exclude.append("toll")
        if exclude:
            params["exclude"] = ",".join(exclude)

        try:
            response = self.session.get(
                url,
                params=params,
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout_s,
            )
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise ProviderError(f"Directions request failed: {e}") from e

        code = data.get("code")
        if code in ("NoRoute", "NoSegment"):
            return []
        if response.status_code != 200 or code != "Ok":
            raise ProviderError(data.get("message") or f"Directions service returned {code}")

        return [
            self._parse_route(raw, destination, options.transport_type)
            for raw in data.get("routes", [])
        ]

    def _parse_route(
        self,
        raw: dict,
        destination: Coordinate,
        transport_type: TransportType,
    ) -> Route:
        steps = []
        names = []
        for leg in raw.get("legs", []):
            if leg.get("summary"):
                names.append(leg["summary"])
            for step in leg.get("steps", []):
                geometry = tuple(
                    _coordinate(c) for c in step.get("geometry", {}).get("coordinates", [])
                )
                if geometry:
                    anchor = geometry[0]
                else:
                    anchor = _coordinate(step["maneuver"]["location"])
                steps.append(RouteStep(
                    instructions=osrm_instruction(step),
                    distance_m=float(step.get("distance", 0.0)),
                    anchor=anchor,
                    geometry=geometry,
                ))

        return Route(
            distance_m=float(raw.get("distance", 0.0)),
            expected_travel_time_s=float(raw.get("duration", 0.0)),
            destination=destination,
            steps=tuple(steps),
            name=", ".join(names),
            transport_type=transport_type,
        )


# ============================================================================
# Nominatim
# ============================================================================

class NominatimPlacesSearch:
    """Place search against a Nominatim server."""

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout_s: float = 10.0,
        user_agent: str = "RideTrack/0.1",
        limit: int = 10,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout_s = timeout_s
        self.user_agent = user_agent
        self.limit = limit

    def search(self, query: str, bias_region: Optional[BoundingRegion]) -> list[PlaceResult]:
        params = {
            "q": query,
            "format": "jsonv2",
            "limit": self.limit,
            "addressdetails": 0,
        }
        if bias_region is not None:
            # viewbox=<left>,<top>,<right>,<bottom>; bounded=0 only biases
            params["viewbox"] = (
                f"{bias_region.min_longitude},{bias_region.max_latitude},"
                f"{bias_region.max_longitude},{bias_region.min_latitude}"
            )
            params["bounded"] = 0

        try:
            response = self.session.get(
                f"{self.base_url}/search",
                params=params,
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout_s,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise ProviderError(f"Place search failed: {e}") from e

        results = []
        for item in data:
            try:
                coordinate = Coordinate(float(item["lat"]), float(item["lon"]))
            except (KeyError, TypeError, ValueError):
                logger.debug(f"Skipping place without coordinates: {item!r}")
                continue
            display_name = item.get("display_name") or ""
            name = item.get("name") or display_name.split(",")[0].strip() or query
            results.append(PlaceResult(
                name=name,
                coordinate=coordinate,
                address=display_name or None,
                category=item.get("category") or item.get("type"),
            ))
        return results
