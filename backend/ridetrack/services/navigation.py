"""
Turn-by-turn navigation progress tracking.

NavigationTracker follows a precomputed route using live location fixes:

    Inactive --start()--> Active --(within arrival threshold)--> Arrived --> Inactive
                            |
                            +--stop()--> Inactive

Progress is purely threshold based. The current step advances when the rider
comes within STEP_ADVANCE_THRESHOLD_M of the step anchor and never moves
backwards, even if the rider does. Distances use the same haversine function
as the telemetry aggregator.

NavigationPlanner wraps the external directions and place-search services
and returns tagged results instead of raising.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Protocol, Sequence

from ridetrack.core.errors import NoRouteAvailableError
from ridetrack.models.navigation import (
    Arrived,
    NavigationEvent,
    NavigationStarted,
    NavigationState,
    NavigationStatus,
    NavigationStopped,
    StepAdvanced,
)
from ridetrack.models.ride import LocationFix
from ridetrack.models.route import PlaceResult, Route, RouteOptions, RouteStep
from ridetrack.services.events import EventEmitter
from ridetrack.services.providers import DirectionsProvider, PlacesSearch
from ridetrack.utils.geo import BoundingRegion, Coordinate, haversine_distance, region_around


logger = logging.getLogger(__name__)


STEP_ADVANCE_THRESHOLD_M = 20.0
ARRIVAL_THRESHOLD_M = 20.0

ARRIVAL_ANNOUNCEMENT = "You have arrived at your destination"


class Announcer(Protocol):
    """Voice guidance sink. Fire-and-forget."""

    def announce(self, text: str) -> None:
        ...


class NavigationTracker:
    """
    Navigation session for a single rider.

    Not thread-safe: all calls are expected from one logical thread, with
    fixes delivered in timestamp order.
    """

    def __init__(self, announcer: Optional[Announcer] = None):
        self.announcer = announcer
        self._events: EventEmitter[NavigationEvent] = EventEmitter()
        self._reset()

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def subscribe(self, callback: Callable[[NavigationEvent], None]) -> Callable[[], None]:
        return self._events.subscribe(callback)

    # ------------------------------------------------------------------
    # Route selection
    # ------------------------------------------------------------------

    def prepare(self, routes: Sequence[Route], destination_name: Optional[str] = None) -> Route:
        """
        Store the alternatives for a destination and select the first one.

        Does not activate navigation.

        Raises:
            NoRouteAvailableError: routes is empty
        """
        if not routes:
            raise NoRouteAvailableError("No routes found")
        if self._status is NavigationStatus.ACTIVE:
            logger.info("Replacing route of an active session; stopping it first")
            self.stop()

        self._all_routes = list(routes)
        self._destination_name = destination_name
        self._route = self._all_routes[0]
        self._prepare_route()
        return self._route

    def select_alternative(self, index: int) -> bool:
        """
        Switch the working route to all_routes[index].

        Remaining distance/time and step fields are reset as in start(); the
        active flag is untouched. Refused while navigation is active so the
        step index never moves backwards mid-session.

        Returns:
            True if the route was switched
        """
        if self._status is NavigationStatus.ACTIVE:
            logger.warning("Cannot switch routes while navigation is active")
            return False
        if not 0 <= index < len(self._all_routes):
            logger.warning(f"Route index {index} out of range ({len(self._all_routes)} routes)")
            return False

        self._route = self._all_routes[index]
        self._prepare_route()
        return True

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def start(self, route: Optional[Route] = None, destination_name: Optional[str] = None) -> None:
        """
        Begin active navigation.

        Calling it again while Active without a route leaves the running
        session untouched.

        Args:
            route: Route to follow. Defaults to the route selected by
                prepare() / select_alternative().
            destination_name: Used in announcements when a route is given

        Raises:
            NoRouteAvailableError: no route given and none prepared
        """
        if route is None and self._status is NavigationStatus.ACTIVE:
            logger.warning("Navigation already active; ignoring start without a new route")
            return
        if route is not None:
            self.prepare([route], destination_name)
        if self._route is None:
            raise NoRouteAvailableError("No route available")

        self._prepare_route()
        self._status = NavigationStatus.ACTIVE

        logger.info(
            f"Navigation started: {len(self._route.steps)} steps, "
            f"{self._route.distance_m:.0f} m"
        )
        if self._destination_name:
            self._announce(f"Starting navigation to {self._destination_name}")
        else:
            self._announce("Starting navigation")
        self._events.emit(NavigationStarted(route=self._route, destination_name=self._destination_name))

    def stop(self) -> None:
        """Reset to Inactive, clearing all route and progress state. Idempotent."""
        was_running = self._status is not NavigationStatus.INACTIVE or self._route is not None
        arrived = self._status is NavigationStatus.ARRIVED
        self._reset()
        if was_running:
            logger.info("Navigation stopped")
            self._events.emit(NavigationStopped(arrived=arrived))

    def on_fix(self, fix: LocationFix) -> list[NavigationEvent]:
        """
        Update progress with a new location fix.

        Only processed while Active; otherwise a no-op.

        Returns:
            Events emitted by this fix (step advances, arrival)
        """
        if self._status is not NavigationStatus.ACTIVE or self._route is None:
            return []

        route = self._route
        emitted: list[NavigationEvent] = []

        self._remaining_distance = haversine_distance(
            fix.latitude, fix.longitude,
            route.destination.latitude, route.destination.longitude,
        )

        if self._step_index < len(route.steps):
            step = route.steps[self._step_index]
            self._step_remaining = haversine_distance(
                fix.latitude, fix.longitude,
                step.anchor.latitude, step.anchor.longitude,
            )
            if self._step_remaining < STEP_ADVANCE_THRESHOLD_M:
                advanced = self._advance_step()
                if advanced is not None:
                    emitted.append(advanced)

        # A subscriber may have stopped the session on StepAdvanced
        if self._status is NavigationStatus.ACTIVE and self._remaining_distance < ARRIVAL_THRESHOLD_M:
            emitted.append(self._arrive())

        return emitted

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def status(self) -> NavigationStatus:
        return self._status

    @property
    def is_active(self) -> bool:
        return self._status is NavigationStatus.ACTIVE

    @property
    def all_routes(self) -> list[Route]:
        return list(self._all_routes)

    @property
    def route(self) -> Optional[Route]:
        return self._route

    @property
    def step_index(self) -> int:
        return self._step_index

    @property
    def current_step(self) -> Optional[RouteStep]:
        if self._route is None or self._step_index >= len(self._route.steps):
            return None
        return self._route.steps[self._step_index]

    @property
    def next_step(self) -> Optional[RouteStep]:
        if self._route is None or self._step_index + 1 >= len(self._route.steps):
            return None
        return self._route.steps[self._step_index + 1]

    @property
    def step_progress(self) -> float:
        """Fraction of the current step already covered, 0..1."""
        step = self.current_step
        if step is None or step.distance_m <= 0:
            return 0.0
        done = (step.distance_m - self._step_remaining) / step.distance_m
        return min(max(done, 0.0), 1.0)

    @property
    def state(self) -> NavigationState:
        return NavigationState(
            status=self._status,
            route=self._route,
            destination_name=self._destination_name,
            step_index=self._step_index,
            current_step=self.current_step,
            next_step=self.next_step,
            remaining_distance_m=self._remaining_distance,
            remaining_time_s=self._remaining_time,
            step_remaining_distance_m=self._step_remaining,
            step_progress=self.step_progress,
            alternative_count=len(self._all_routes),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reset(self) -> None:
        self._status = NavigationStatus.INACTIVE
        self._all_routes: list[Route] = []
        self._route: Optional[Route] = None
        self._destination_name: Optional[str] = None
        self._step_index = 0
        self._remaining_distance = 0.0
        self._remaining_time = 0.0
        self._step_remaining = 0.0

    def _prepare_route(self) -> None:
        route = self._route
        self._step_index = 0
        self._remaining_distance = route.distance_m
        # Expected travel time from the provider; not re-estimated per fix
        self._remaining_time = route.expected_travel_time_s
        self._step_remaining = route.steps[0].distance_m if route.steps else 0.0

    def _advance_step(self) -> Optional[StepAdvanced]:
        route = self._route
        if self._step_index >= len(route.steps) - 1:
            return None

        self._step_index += 1
        step = route.steps[self._step_index]
        self._step_remaining = step.distance_m

        logger.debug(f"Advanced to step {self._step_index}: {step.instructions}")
        if step.instructions:
            self._announce(step.instructions)

        event = StepAdvanced(step_index=self._step_index, instructions=step.instructions)
        self._events.emit(event)
        return event

    def _arrive(self) -> Arrived:
        event = Arrived(destination_name=self._destination_name)
        self._status = NavigationStatus.ARRIVED
        logger.info("Arrived at destination")
        self._announce(ARRIVAL_ANNOUNCEMENT)
        self._events.emit(event)
        self.stop()
        return event

    def _announce(self, text: str) -> None:
        if self.announcer is None:
            return
        try:
            self.announcer.announce(text)
        except Exception:
            logger.exception("Voice announcement failed")


# ============================================================================
# Planning (search and directions)
# ============================================================================

class PlanningErrorKind(Enum):
    LOCATION_UNAVAILABLE = "location_unavailable"
    NO_ROUTE_FOUND = "no_route_found"
    NO_RESULTS = "no_results"
    PROVIDER_FAILURE = "provider_failure"


@dataclass(frozen=True)
class PlanningError:
    kind: PlanningErrorKind
    message: str


@dataclass(frozen=True)
class PlaceSearchResult:
    places: list[PlaceResult] = field(default_factory=list)
    error: Optional[PlanningError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class RouteCalculationResult:
    routes: list[Route] = field(default_factory=list)
    error: Optional[PlanningError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class NavigationPlanner:
    """
    Front for the directions and place-search collaborators.

    Collaborator failures come back as tagged results; nothing is retried.
    """

    def __init__(
        self,
        directions: DirectionsProvider,
        places: PlacesSearch,
        location_source: Optional[Callable[[], Optional[LocationFix]]] = None,
        search_radius_m: float = 5000.0,
    ):
        self.directions = directions
        self.places = places
        self.location_source = location_source
        self.search_radius_m = search_radius_m

    def _current_coordinate(self) -> Optional[Coordinate]:
        if self.location_source is None:
            return None
        fix = self.location_source()
        return fix.coordinate if fix is not None else None

    def search_places(
        self,
        query: str,
        near: Optional[Coordinate] = None,
        region: Optional[BoundingRegion] = None,
    ) -> PlaceSearchResult:
        """
        Search places matching free text.

        The search is biased to `region` if given, else to a square of
        search_radius_m around `near` (or the current location).
        """
        query = query.strip()
        if not query:
            return PlaceSearchResult(error=PlanningError(PlanningErrorKind.NO_RESULTS, "Empty query"))

        if region is None:
            center = near or self._current_coordinate()
            if center is not None:
                region = region_around(center, self.search_radius_m)

        try:
            places = self.places.search(query, region)
        except Exception as e:
            logger.error(f"Place search for {query!r} failed: {e}")
            return PlaceSearchResult(error=PlanningError(PlanningErrorKind.PROVIDER_FAILURE, str(e)))

        if not places:
            return PlaceSearchResult(error=PlanningError(PlanningErrorKind.NO_RESULTS, "No results found"))

        logger.info(f"Place search for {query!r}: {len(places)} results")
        return PlaceSearchResult(places=list(places))

    def calculate_route(
        self,
        destination: Coordinate,
        origin: Optional[Coordinate] = None,
        options: Optional[RouteOptions] = None,
    ) -> RouteCalculationResult:
        """
        Compute routes from origin (default: current location) to destination.
        """
        origin = origin or self._current_coordinate()
        if origin is None:
            return RouteCalculationResult(error=PlanningError(
                PlanningErrorKind.LOCATION_UNAVAILABLE,
                "Current location is not available",
            ))

        options = options or RouteOptions()
        try:
            routes = self.directions.compute_routes(origin, destination, options)
        except Exception as e:
            logger.error(f"Route calculation failed: {e}")
            return RouteCalculationResult(error=PlanningError(PlanningErrorKind.PROVIDER_FAILURE, str(e)))

        if not routes:
            return RouteCalculationResult(error=PlanningError(PlanningErrorKind.NO_ROUTE_FOUND, "No routes found"))

        logger.info(f"Calculated {len(routes)} route(s), best {routes[0].distance_m:.0f} m")
        return RouteCalculationResult(routes=list(routes))
