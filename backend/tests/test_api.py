"""
Tests for API endpoints.
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from conftest import BASE_TIME, FakeDirections, FakePlaces
from ridetrack.core.config import Settings
from ridetrack.main import create_app
from ridetrack.models.route import PlaceResult
from ridetrack.services.backend import RemoteRideStore
from ridetrack.services.container import build_services
from ridetrack.utils.geo import Coordinate
from ridetrack.utils.sample_data import generate_sample_ride, route_along


def fix_json(lat, lon, t=0.0, **kwargs):
    payload = {
        "latitude": lat,
        "longitude": lon,
        "timestamp": (BASE_TIME + timedelta(seconds=t)).isoformat(),
        "horizontal_accuracy": 5.0,
    }
    payload.update(kwargs)
    return payload


@pytest.fixture
def route():
    return route_along(
        [Coordinate(0.0, 0.0), Coordinate(0.005, 0.0), Coordinate(0.01, 0.0)],
        ["Head north", "Continue straight", "Arrive at your destination"],
    )


@pytest.fixture
def services(tmp_path, route):
    services = build_services(
        settings=Settings(data_folder=tmp_path),
        directions=FakeDirections([route]),
        places=FakePlaces([PlaceResult("Fuel Stop", Coordinate(0.01, 0.0), address="Route 9")]),
    )
    yield services
    services.close()


@pytest.fixture
def client(services):
    return TestClient(create_app(services))


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_root_endpoint(self, client):
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "RideTrack"
        assert data["status"] == "running"

    def test_health_endpoint(self, client, tmp_path):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["data_folder"] == str(tmp_path)
        assert data["ride_count"] == 0
        assert data["recording"] is False
        assert data["remote"] is False


class TestRideEndpoints:
    """Tests for the saved ride list."""

    @pytest.fixture
    def saved_ride(self, services):
        return services.repository.add_ride(generate_sample_ride("Lake Loop", seed=7))

    def test_list_rides(self, client, saved_ride):
        response = client.get("/rides")

        assert response.status_code == 200
        rides = response.json()
        assert len(rides) == 1
        assert rides[0]["id"] == saved_ride.id
        assert rides[0]["statistics"]["fix_count"] == len(saved_ride.trace)
        assert rides[0]["statistics"]["formatted"]["distance"].endswith(" km")
        assert "trace" not in rides[0]

    def test_get_ride(self, client, saved_ride):
        response = client.get(f"/rides/{saved_ride.id}")

        assert response.status_code == 200
        data = response.json()
        assert len(data["trace"]) == len(saved_ride.trace)
        assert data["region"]["latitude_span"] > 0

    def test_get_missing_ride(self, client):
        response = client.get("/rides/does-not-exist")

        assert response.status_code == 404

    def test_rename(self, client, saved_ride, services):
        response = client.patch(f"/rides/{saved_ride.id}", json={"name": "Evening Loop"})

        assert response.status_code == 200
        assert response.json()["name"] == "Evening Loop"
        assert services.repository.get_ride(saved_ride.id).name == "Evening Loop"

    def test_rename_missing_uses_error_code(self, client):
        response = client.patch("/rides/missing", json={"name": "x"})

        assert response.status_code == 404
        assert response.json()["code"] == "ride_not_found"

    def test_delete(self, client, saved_ride):
        assert client.delete(f"/rides/{saved_ride.id}").status_code == 204
        assert client.delete(f"/rides/{saved_ride.id}").status_code == 404

    def test_summary(self, client, saved_ride):
        response = client.get("/rides/summary")

        assert response.status_code == 200
        data = response.json()
        assert data["ride_count"] == 1
        assert data["longest_ride_id"] == saved_ride.id

    def test_sync_without_remote(self, client, saved_ride):
        response = client.post(f"/rides/{saved_ride.id}/sync")

        assert response.status_code == 503


class TestRecordingEndpoints:
    def test_record_a_ride(self, client, services):
        response = client.post("/recording/start", json={"name": "Pass ride"})
        assert response.status_code == 200
        assert response.json()["recording"] is True

        response = client.post("/location/fixes", json={"fixes": [
            fix_json(46.0, 7.0, t=0, altitude=500.0, speed=10.0),
            fix_json(46.001, 7.0, t=10, altitude=520.0, speed=12.0),
            fix_json(46.002, 7.0, t=20, horizontal_accuracy=80.0),
        ]})
        batch = response.json()
        assert batch["received"] == 3
        assert batch["accepted"] == 2
        assert batch["recorded_fix_count"] == 2

        status = client.get("/recording").json()
        assert status["statistics"]["total_ascent_m"] == 20.0

        response = client.post("/recording/stop")
        assert response.status_code == 200
        ride = response.json()
        assert ride["name"] == "Pass ride"
        assert len(ride["trace"]) == 2
        assert ride["end_time"] is not None

        assert len(services.repository) == 1
        assert client.get("/recording").json()["recording"] is False

    def test_fixes_without_recording(self, client):
        response = client.post("/location/fixes", json={"fixes": [fix_json(46.0, 7.0)]})

        assert response.status_code == 200
        assert response.json()["accepted"] == 1
        assert response.json()["recording"] is False

    def test_start_twice_conflicts(self, client):
        client.post("/recording/start")

        response = client.post("/recording/start")

        assert response.status_code == 409
        assert response.json()["code"] == "recording_error"

    def test_stop_without_ride(self, client):
        assert client.post("/recording/stop").status_code == 409

    def test_discard(self, client, services):
        client.post("/recording/start")

        response = client.post("/recording/discard")

        assert response.status_code == 200
        assert response.json()["recording"] is False
        assert len(services.repository) == 0

    def test_invalid_fix_rejected(self, client):
        response = client.post("/location/fixes", json={"fixes": [fix_json(120.0, 7.0)]})

        assert response.status_code == 422


class TestNavigationEndpoints:
    def test_search(self, client):
        response = client.post("/navigation/search", json={
            "query": "fuel",
            "near": {"latitude": 0.0, "longitude": 0.0},
        })

        assert response.status_code == 200
        places = response.json()
        assert places[0]["name"] == "Fuel Stop"
        assert places[0]["address"] == "Route 9"

    def test_search_no_results(self, client, services):
        services.planner.places = FakePlaces([])

        response = client.post("/navigation/search", json={"query": "nothing"})

        assert response.status_code == 404
        assert response.headers["X-Error-Code"] == "no_results"

    def test_routes_need_location(self, client):
        response = client.post("/navigation/routes", json={
            "destination": {"latitude": 0.01, "longitude": 0.0},
        })

        assert response.status_code == 409
        assert response.headers["X-Error-Code"] == "location_unavailable"

    def test_routes_use_last_fix(self, client, services):
        client.post("/location/fixes", json={"fixes": [fix_json(0.0, 0.0)]})

        response = client.post("/navigation/routes", json={
            "destination": {"latitude": 0.01, "longitude": 0.0},
            "destination_name": "Fuel Stop",
            "avoid_tolls": True,
        })

        assert response.status_code == 200
        routes = response.json()
        assert routes[0]["first_instruction"] == "Head north"
        assert [s["maneuver"] for s in routes[0]["steps"]] == ["straight", "straight", "arrive"]
        origin, _, options = services.planner.directions.calls[0]
        assert origin == Coordinate(0.0, 0.0)
        assert options.avoid_tolls

    def test_provider_failure(self, client, services):
        services.planner.directions = FakeDirections(error=RuntimeError("upstream down"))

        response = client.post("/navigation/routes", json={
            "destination": {"latitude": 0.01, "longitude": 0.0},
            "origin": {"latitude": 0.0, "longitude": 0.0},
        })

        assert response.status_code == 502

    def test_start_without_route(self, client):
        response = client.post("/navigation/start")

        assert response.status_code == 409
        assert response.json()["code"] == "no_route_available"

    def test_select_out_of_range(self, client):
        client.post("/navigation/routes", json={
            "destination": {"latitude": 0.01, "longitude": 0.0},
            "origin": {"latitude": 0.0, "longitude": 0.0},
        })

        response = client.post("/navigation/routes/select", json={"index": 3})

        assert response.status_code == 409

    def test_navigate_to_arrival(self, client):
        client.post("/navigation/routes", json={
            "destination": {"latitude": 0.01, "longitude": 0.0},
            "destination_name": "Fuel Stop",
            "origin": {"latitude": 0.0, "longitude": 0.0},
        })

        state = client.post("/navigation/start").json()
        assert state["status"] == "active"
        assert state["current_step"]["instructions"] == "Head north"
        assert state["next_step"]["instructions"] == "Continue straight"
        assert "remaining_distance" in state["formatted"]

        batch = client.post("/location/fixes", json={"fixes": [
            fix_json(0.0, 0.0, t=0),
            fix_json(0.005, 0.0, t=60),
        ]}).json()
        assert [s["step_index"] for s in batch["steps_advanced"]] == [1, 2]
        assert batch["arrived"] is False

        batch = client.post("/location/fixes", json={"fixes": [fix_json(0.01, 0.0, t=120)]}).json()
        assert batch["arrived"] is True

        state = client.get("/navigation").json()
        assert state["status"] == "inactive"
        assert state["route"] is None
        assert state["formatted"] == {}

    def test_stop_is_idempotent(self, client):
        first = client.post("/navigation/stop")
        second = client.post("/navigation/stop")

        assert first.status_code == second.status_code == 200
        assert first.json() == second.json()


class TestAccountEndpoints:
    def test_requires_remote(self, client):
        response = client.post("/auth/sign-in", json={"email": "a@b.c", "password": "x"})

        assert response.status_code == 503

    def test_remote_rides_require_remote(self, client):
        response = client.get("/auth/rides")

        assert response.status_code == 503

    def test_remote_rides(self, tmp_path):
        session = MagicMock()
        remote = RemoteRideStore("https://backend.test", "anon-key", session=session)
        services = build_services(
            settings=Settings(data_folder=tmp_path),
            directions=FakeDirections([]),
            places=FakePlaces([]),
            remote=remote,
        )
        client = TestClient(create_app(services))

        assert client.get("/auth/rides").status_code == 401

        signed_in = MagicMock(status_code=200)
        signed_in.json.return_value = {
            "access_token": "token-123",
            "user": {"id": "user-1", "email": "rider@example.com", "user_metadata": {"username": "rider"}},
        }
        session.request.return_value = signed_in
        client.post("/auth/sign-in", json={"email": "rider@example.com", "password": "secret"})

        rows = MagicMock(status_code=200)
        rows.json.return_value = [
            {"id": "b", "name": "Later", "start_time": "2024-06-02T09:00:00+00:00",
             "end_time": "2024-06-02T10:00:00+00:00"},
        ]
        session.request.return_value = rows
        response = client.get("/auth/rides")
        services.close()

        assert response.status_code == 200
        assert response.json()[0]["id"] == "b"
        assert response.json()[0]["name"] == "Later"
