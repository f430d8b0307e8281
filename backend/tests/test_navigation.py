"""
Tests for navigation progress tracking and planning.
"""

import pytest
from numpy.testing import assert_allclose

from conftest import FakeDirections, FakePlaces, fix_at
from ridetrack.core.errors import NoRouteAvailableError
from ridetrack.models.navigation import (
    Arrived,
    NavigationStarted,
    NavigationStatus,
    NavigationStopped,
    StepAdvanced,
)
from ridetrack.models.route import PlaceResult, Route, RouteOptions, RouteStep
from ridetrack.services.navigation import (
    ARRIVAL_THRESHOLD_M,
    STEP_ADVANCE_THRESHOLD_M,
    NavigationPlanner,
    NavigationTracker,
    PlanningErrorKind,
)
from ridetrack.utils.geo import Coordinate
from ridetrack.utils.sample_data import route_along


# 1e-5 deg of latitude is ~1.11 m
DEG_PER_M = 1 / 111195.0


class RecordingAnnouncer:
    def __init__(self):
        self.spoken = []

    def announce(self, text: str) -> None:
        self.spoken.append(text)


@pytest.fixture
def announcer():
    return RecordingAnnouncer()


@pytest.fixture
def tracker(announcer):
    return NavigationTracker(announcer=announcer)


@pytest.fixture
def two_step_route():
    """Head north 500 m to a turn at (0, 0), then on to (0.01, 0)."""
    return Route(
        distance_m=1600.0,
        expected_travel_time_s=120.0,
        destination=Coordinate(0.01, 0.0),
        steps=(
            RouteStep("Turn right onto Main St", 500.0, anchor=Coordinate(0.0, 0.0)),
            RouteStep("Arrive at your destination", 1100.0, anchor=Coordinate(0.01, 0.0)),
        ),
    )


@pytest.fixture
def city_route():
    waypoints = [
        Coordinate(0.0, 0.0),
        Coordinate(0.005, 0.0),
        Coordinate(0.005, 0.005),
        Coordinate(0.01, 0.005),
    ]
    return route_along(
        waypoints,
        ["Head north", "Turn right onto Oak Ave", "Turn left onto Pine St", "Arrive at your destination"],
    )


def events_of(tracker):
    events = []
    tracker.subscribe(events.append)
    return events


class TestStartAndStop:
    def test_start_initializes_from_route(self, tracker, two_step_route):
        tracker.start(two_step_route)

        state = tracker.state
        assert state.status is NavigationStatus.ACTIVE
        assert state.step_index == 0
        assert state.remaining_distance_m == 1600.0
        assert state.remaining_time_s == 120.0
        assert state.step_remaining_distance_m == 500.0
        assert state.current_step == two_step_route.steps[0]
        assert state.next_step == two_step_route.steps[1]

    def test_start_without_route_raises(self, tracker):
        with pytest.raises(NoRouteAvailableError):
            tracker.start()

    def test_start_announces_destination(self, tracker, announcer, two_step_route):
        tracker.prepare([two_step_route], "Harbor Cafe")
        tracker.start()

        assert announcer.spoken == ["Starting navigation to Harbor Cafe"]

    def test_start_emits_event(self, tracker, two_step_route):
        events = events_of(tracker)

        tracker.start(two_step_route)

        assert events == [NavigationStarted(route=two_step_route, destination_name=None)]

    def test_stop_twice_is_idempotent(self, tracker, two_step_route):
        tracker.start(two_step_route)

        tracker.stop()
        first = tracker.state
        tracker.stop()
        second = tracker.state

        assert first == second
        assert second.status is NavigationStatus.INACTIVE
        assert second.route is None
        assert second.remaining_distance_m == 0.0
        assert second.alternative_count == 0

    def test_stop_while_inactive_emits_nothing(self, tracker):
        events = events_of(tracker)

        tracker.stop()

        assert events == []

    def test_zero_step_route(self, tracker):
        route = Route(distance_m=300.0, expected_travel_time_s=30.0, destination=Coordinate(0.01, 0.0))

        tracker.start(route)
        emitted = tracker.on_fix(fix_at(0.0, 0.0))

        assert emitted == []
        assert tracker.is_active
        assert tracker.state.step_remaining_distance_m == 0.0
        assert tracker.current_step is None
        assert_allclose(tracker.state.remaining_distance_m, 1111.95, rtol=1e-3)


class TestProgress:
    def test_fixes_ignored_while_inactive(self, tracker, two_step_route):
        tracker.prepare([two_step_route])

        assert tracker.on_fix(fix_at(0.0, 0.0)) == []
        assert tracker.state.remaining_distance_m == 1600.0

    def test_remaining_distances_follow_fix(self, tracker, two_step_route):
        tracker.start(two_step_route)

        tracker.on_fix(fix_at(-0.001, 0.0))

        state = tracker.state
        assert_allclose(state.step_remaining_distance_m, 111.2, atol=0.1)
        assert_allclose(state.remaining_distance_m, 1223.1, atol=0.2)
        assert_allclose(state.step_progress, (500.0 - 111.195) / 500.0, atol=1e-3)

    def test_single_advance_on_approach(self, tracker, announcer, two_step_route):
        """Approaching the anchor below the threshold advances exactly once."""
        events = events_of(tracker)
        tracker.start(two_step_route)

        for meters in (100.0, 50.0, 10.0, 5.0, 0.0):
            tracker.on_fix(fix_at(-meters * DEG_PER_M, 0.0))

        advances = [e for e in events if isinstance(e, StepAdvanced)]
        assert advances == [StepAdvanced(step_index=1, instructions="Arrive at your destination")]
        assert tracker.step_index == 1
        assert announcer.spoken[-1] == "Arrive at your destination"

    def test_step_remaining_reset_on_advance(self, tracker, two_step_route):
        tracker.start(two_step_route)

        tracker.on_fix(fix_at(-10 * DEG_PER_M, 0.0))

        assert tracker.state.step_remaining_distance_m == 1100.0

    def test_threshold_is_strict(self, tracker, two_step_route):
        tracker.start(two_step_route)

        tracker.on_fix(fix_at(-(STEP_ADVANCE_THRESHOLD_M + 1) * DEG_PER_M, 0.0))

        assert tracker.step_index == 0

    def test_never_goes_back(self, tracker, city_route):
        tracker.start(city_route)
        tracker.on_fix(fix_at(0.0, 0.0))
        tracker.on_fix(fix_at(0.005, 0.0))
        assert tracker.step_index == 2

        # Ride back to the start
        tracker.on_fix(fix_at(0.0025, 0.0))
        tracker.on_fix(fix_at(0.0, 0.0))

        assert tracker.step_index == 2

    def test_full_route(self, tracker, announcer, city_route):
        events = events_of(tracker)
        tracker.prepare([city_route], "Pine St 12")
        tracker.start()

        for lat, lon in [(0.0, 0.0), (0.0025, 0.0), (0.005, 0.0), (0.005, 0.0025), (0.005, 0.005), (0.0075, 0.005), (0.01, 0.005)]:
            tracker.on_fix(fix_at(lat, lon))

        kinds = [type(e) for e in events]
        assert kinds == [
            NavigationStarted,
            StepAdvanced,
            StepAdvanced,
            StepAdvanced,
            Arrived,
            NavigationStopped,
        ]
        assert events[-1] == NavigationStopped(arrived=True)
        assert announcer.spoken == [
            "Starting navigation to Pine St 12",
            "Turn right onto Oak Ave",
            "Turn left onto Pine St",
            "Arrive at your destination",
            "You have arrived at your destination",
        ]

    def test_start_again_while_active_keeps_progress(self, tracker, two_step_route):
        events = events_of(tracker)
        tracker.start(two_step_route)
        tracker.on_fix(fix_at(-5 * DEG_PER_M, 0.0))
        assert tracker.step_index == 1

        tracker.start()

        assert tracker.status is NavigationStatus.ACTIVE
        assert tracker.step_index == 1
        assert tracker.state.step_remaining_distance_m == 1100.0
        assert [type(e) for e in events] == [NavigationStarted, StepAdvanced]

    def test_stop_during_step_callback_skips_arrival(self, tracker):
        route = Route(
            distance_m=500.0,
            expected_travel_time_s=40.0,
            destination=Coordinate(0.0, 0.0),
            steps=(
                RouteStep("Turn left", 480.0, anchor=Coordinate(0.0, 0.0)),
                RouteStep("Arrive at your destination", 20.0, anchor=Coordinate(0.0, 0.0)),
            ),
        )
        events = events_of(tracker)

        def stop_on_advance(event):
            if isinstance(event, StepAdvanced):
                tracker.stop()

        tracker.subscribe(stop_on_advance)
        tracker.start(route)

        emitted = tracker.on_fix(fix_at(0.0, 0.0))

        assert emitted == [StepAdvanced(step_index=1, instructions="Arrive at your destination")]
        assert not any(isinstance(e, Arrived) for e in events)
        assert [e for e in events if isinstance(e, NavigationStopped)] == [NavigationStopped(arrived=False)]
        assert tracker.status is NavigationStatus.INACTIVE


class TestArrival:
    @pytest.fixture
    def route_to_origin(self):
        return Route(
            distance_m=1000.0,
            expected_travel_time_s=90.0,
            destination=Coordinate(0.0, 0.0),
            steps=(RouteStep("Head south", 1000.0, anchor=Coordinate(0.009, 0.0)),),
        )

    def test_arrives_within_threshold(self, tracker, route_to_origin):
        events = events_of(tracker)
        tracker.start(route_to_origin)

        tracker.on_fix(fix_at(0.001, 0.0))
        assert tracker.is_active
        emitted = tracker.on_fix(fix_at(15 * DEG_PER_M, 0.0))

        assert any(isinstance(e, Arrived) for e in emitted)
        assert Arrived(destination_name=None) in events
        assert tracker.status is NavigationStatus.INACTIVE
        assert tracker.route is None

    def test_fix_after_arrival_is_noop(self, tracker, route_to_origin):
        tracker.start(route_to_origin)
        tracker.on_fix(fix_at(15 * DEG_PER_M, 0.0))
        before = tracker.state

        emitted = tracker.on_fix(fix_at(0.0, 0.0))

        assert emitted == []
        assert tracker.state == before

    def test_not_arrived_outside_threshold(self, tracker, route_to_origin):
        tracker.start(route_to_origin)

        tracker.on_fix(fix_at((ARRIVAL_THRESHOLD_M + 2) * DEG_PER_M, 0.0))

        assert tracker.is_active

    def test_failing_announcer_does_not_break_arrival(self, route_to_origin):
        class BrokenAnnouncer:
            def announce(self, text):
                raise RuntimeError("audio device busy")

        tracker = NavigationTracker(announcer=BrokenAnnouncer())
        tracker.start(route_to_origin)

        tracker.on_fix(fix_at(0.0, 0.0))

        assert tracker.status is NavigationStatus.INACTIVE


class TestAlternatives:
    @pytest.fixture
    def alternatives(self, two_step_route):
        other = Route(
            distance_m=2100.0,
            expected_travel_time_s=150.0,
            destination=two_step_route.destination,
            steps=(RouteStep("Turn left onto Shore Rd", 800.0, anchor=Coordinate(0.0, 0.001)),),
        )
        return [two_step_route, other]

    def test_prepare_selects_first(self, tracker, alternatives):
        route = tracker.prepare(alternatives)

        assert route is alternatives[0]
        assert tracker.status is NavigationStatus.INACTIVE
        assert tracker.state.alternative_count == 2

    def test_prepare_requires_routes(self, tracker):
        with pytest.raises(NoRouteAvailableError):
            tracker.prepare([])

    def test_select_resets_fields(self, tracker, alternatives):
        tracker.prepare(alternatives)

        assert tracker.select_alternative(1)

        state = tracker.state
        assert state.route is alternatives[1]
        assert state.remaining_distance_m == 2100.0
        assert state.remaining_time_s == 150.0
        assert state.step_remaining_distance_m == 800.0
        assert state.status is NavigationStatus.INACTIVE

    def test_select_out_of_range(self, tracker, alternatives):
        tracker.prepare(alternatives)

        assert not tracker.select_alternative(5)
        assert tracker.route is alternatives[0]

    def test_select_refused_while_active(self, tracker, alternatives):
        tracker.prepare(alternatives)
        tracker.start()

        assert not tracker.select_alternative(1)
        assert tracker.route is alternatives[0]


# ============================================================================
# Planner
# ============================================================================

class TestPlanner:
    def test_route_without_location(self, two_step_route):
        planner = NavigationPlanner(FakeDirections([two_step_route]), FakePlaces())

        result = planner.calculate_route(Coordinate(1.0, 1.0))

        assert not result.ok
        assert result.error.kind is PlanningErrorKind.LOCATION_UNAVAILABLE

    def test_route_uses_current_location(self, two_step_route):
        directions = FakeDirections([two_step_route])
        current = fix_at(0.5, 0.5)
        planner = NavigationPlanner(directions, FakePlaces(), location_source=lambda: current)

        result = planner.calculate_route(Coordinate(1.0, 1.0))

        assert result.ok
        assert result.routes == [two_step_route]
        origin, destination, options = directions.calls[0]
        assert origin == Coordinate(0.5, 0.5)
        assert options == RouteOptions()

    def test_options_passed_through(self, two_step_route):
        directions = FakeDirections([two_step_route])
        planner = NavigationPlanner(directions, FakePlaces())
        options = RouteOptions(avoid_highways=True, avoid_tolls=True)

        planner.calculate_route(Coordinate(1.0, 1.0), origin=Coordinate(0.0, 0.0), options=options)

        assert directions.calls[0][2] is options

    def test_no_route_found(self):
        planner = NavigationPlanner(FakeDirections([]), FakePlaces())

        result = planner.calculate_route(Coordinate(1.0, 1.0), origin=Coordinate(0.0, 0.0))

        assert result.error.kind is PlanningErrorKind.NO_ROUTE_FOUND

    def test_provider_failure_is_tagged(self):
        planner = NavigationPlanner(FakeDirections(error=RuntimeError("timeout")), FakePlaces())

        result = planner.calculate_route(Coordinate(1.0, 1.0), origin=Coordinate(0.0, 0.0))

        assert result.error.kind is PlanningErrorKind.PROVIDER_FAILURE
        assert "timeout" in result.error.message

    def test_search_biased_near_location(self):
        places = FakePlaces([PlaceResult("Cafe", Coordinate(0.01, 0.01))])
        planner = NavigationPlanner(
            FakeDirections(), places, location_source=lambda: fix_at(0.0, 0.0), search_radius_m=5000.0,
        )

        result = planner.search_places("cafe")

        assert result.ok
        assert result.places[0].name == "Cafe"
        region = places.regions[0]
        assert region.center == Coordinate(0.0, 0.0)
        assert_allclose(region.latitude_span * 111320.0, 10000.0, rtol=1e-6)

    def test_search_without_location_is_unbiased(self):
        places = FakePlaces([PlaceResult("Cafe", Coordinate(0.01, 0.01))])
        planner = NavigationPlanner(FakeDirections(), places)

        planner.search_places("cafe")

        assert places.regions == [None]

    def test_search_no_results(self):
        planner = NavigationPlanner(FakeDirections(), FakePlaces([]))

        result = planner.search_places("nowhere")

        assert result.error.kind is PlanningErrorKind.NO_RESULTS

    def test_blank_query(self):
        places = FakePlaces()
        planner = NavigationPlanner(FakeDirections(), places)

        result = planner.search_places("   ")

        assert result.error.kind is PlanningErrorKind.NO_RESULTS
        assert places.regions == []

    def test_search_failure(self):
        planner = NavigationPlanner(FakeDirections(), FakePlaces(error=ConnectionError("offline")))

        result = planner.search_places("cafe")

        assert result.error.kind is PlanningErrorKind.PROVIDER_FAILURE
