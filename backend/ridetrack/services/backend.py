"""
Remote ride backend client.

Talks to a Supabase-style REST backend (GoTrue auth + PostgREST tables).
One instance is created by the application at startup and injected where
needed; it holds the signed-in session.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

import requests

from ridetrack.core.errors import APIError, AuthError
from ridetrack.models.ride import Ride
from ridetrack.services import telemetry
from ridetrack.utils.units import KMH_PER_MPS


logger = logging.getLogger(__name__)


RIDES_TABLE = "rides"


@dataclass(frozen=True)
class User:
    id: str
    email: str
    username: str = ""
    profile_image_url: Optional[str] = None


def _user_from_payload(payload: dict) -> User:
    metadata = payload.get("user_metadata") or {}
    return User(
        id=str(payload["id"]),
        email=payload.get("email") or "",
        username=metadata.get("username") or "",
        profile_image_url=metadata.get("avatar_url"),
    )


def ride_to_row(ride: Ride, user_id: str) -> dict[str, Any]:
    """Summary row pushed to the backend. Speeds are stored in km/h."""
    return {
        "user_id": user_id,
        "name": ride.name,
        "start_time": ride.start_time.isoformat(),
        "end_time": ride.end_time.isoformat() if ride.end_time else None,
        "distance": telemetry.distance(ride.trace),
        "max_speed": telemetry.max_speed(ride.trace) * KMH_PER_MPS,
        "avg_speed": telemetry.average_speed(ride.trace) * KMH_PER_MPS,
        "elevation_gain": telemetry.total_ascent(ride.trace),
        "elevation_loss": telemetry.total_descent(ride.trace),
    }


def ride_from_row(row: dict) -> Ride:
    """
    Rebuild a Ride from a backend row.

    Only the summary is stored remotely, so the trace is empty.
    """
    try:
        start_time = datetime.fromisoformat(row["start_time"])
        end_time = datetime.fromisoformat(row["end_time"]) if row.get("end_time") else None
        return Ride(
            id=str(row["id"]),
            name=row.get("name") or "",
            start_time=start_time,
            end_time=end_time,
        )
    except (KeyError, TypeError, ValueError) as e:
        raise APIError(f"{APIError.INVALID_RESPONSE} ({e})") from e


class RemoteRideStore:
    """Authentication and ride storage against the remote backend."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        session: Optional[requests.Session] = None,
        timeout_s: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.session = session or requests.Session()
        self.timeout_s = timeout_s
        self.current_user: Optional[User] = None
        self._access_token: Optional[str] = None

    @property
    def is_signed_in(self) -> bool:
        return self.current_user is not None and self._access_token is not None

    def _headers(self, authenticated: bool = False) -> dict[str, str]:
        token = self._access_token if authenticated and self._access_token else self.api_key
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

    def _request(
        self,
        method: str,
        path: str,
        authenticated: bool = False,
        **kwargs,
    ) -> requests.Response:
        headers = self._headers(authenticated)
        headers.update(kwargs.pop("headers", {}))
        return self.session.request(
            method,
            f"{self.base_url}{path}",
            headers=headers,
            timeout=self.timeout_s,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def sign_in(self, email: str, password: str) -> User:
        """
        Raises:
            AuthError: wrong credentials or unreachable backend
        """
        try:
            response = self._request(
                "POST",
                "/auth/v1/token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
            )
            response.raise_for_status()
            data = response.json()
            user = _user_from_payload(data["user"])
            token = data["access_token"]
        except (requests.RequestException, ValueError, KeyError, TypeError) as e:
            logger.error(f"Sign in failed for {email}: {e}")
            raise AuthError(AuthError.LOGIN_FAILED) from e

        self.current_user = user
        self._access_token = token
        logger.info(f"Signed in as {user.email}")
        return user

    def sign_up(self, email: str, password: str, username: Optional[str] = None) -> User:
        """
        Create an account. Signs the user in when the backend returns a
        session right away (no e-mail confirmation required).

        Raises:
            AuthError: the backend did not create a user
        """
        body: dict[str, Any] = {"email": email, "password": password}
        if username:
            body["data"] = {"username": username}

        try:
            response = self._request("POST", "/auth/v1/signup", json=body)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Sign up failed for {email}: {e}")
            raise AuthError(AuthError.SIGN_UP_FAILED) from e

        # With confirmation enabled the user object is returned bare
        payload = data.get("user") or (data if "id" in data else None)
        if not payload:
            raise AuthError(AuthError.SIGN_UP_FAILED)

        user = _user_from_payload(payload)
        if not user.username and username:
            user = User(id=user.id, email=user.email, username=username)

        if data.get("access_token"):
            self.current_user = user
            self._access_token = data["access_token"]
        logger.info(f"Signed up {user.email}")
        return user

    def sign_out(self) -> None:
        """Drop the local session; the remote logout is best effort."""
        if self._access_token is not None:
            try:
                self._request("POST", "/auth/v1/logout", authenticated=True).raise_for_status()
            except requests.RequestException as e:
                logger.warning(f"Remote sign out failed: {e}")
        self.current_user = None
        self._access_token = None

    def reset_password(self, email: str) -> None:
        try:
            self._request("POST", "/auth/v1/recover", json={"email": email}).raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Password reset failed for {email}: {e}")
            raise APIError(APIError.INVALID_RESPONSE) from e

    # ------------------------------------------------------------------
    # Rides
    # ------------------------------------------------------------------

    def _require_user(self) -> User:
        if not self.is_signed_in:
            raise AuthError(AuthError.NOT_AUTHENTICATED)
        return self.current_user

    def _check_session(self, response: requests.Response) -> None:
        """Drop the local session when the backend rejects the access token."""
        if response.status_code == 401:
            logger.warning("Access token rejected; signing out locally")
            self.current_user = None
            self._access_token = None
            raise AuthError(AuthError.SESSION_EXPIRED)

    def save_ride(self, ride: Ride) -> str:
        """
        Push a ride summary.

        Returns:
            The id assigned by the backend

        Raises:
            AuthError: not signed in or the session expired
            APIError: the backend rejected the row or returned no id
        """
        user = self._require_user()
        try:
            response = self._request(
                "POST",
                f"/rest/v1/{RIDES_TABLE}",
                authenticated=True,
                headers={"Prefer": "return=representation"},
                json=ride_to_row(ride, user.id),
            )
            self._check_session(response)
            response.raise_for_status()
            rows = response.json()
            remote_id = str(rows[0]["id"])
        except (requests.RequestException, ValueError, KeyError, IndexError, TypeError) as e:
            logger.error(f"Error saving ride {ride.id}: {e}")
            raise APIError(APIError.INVALID_RESPONSE) from e

        logger.info(f"Ride {ride.id} saved remotely as {remote_id}")
        return remote_id

    def fetch_user_rides(self) -> list[Ride]:
        """Rides of the signed-in user, newest first."""
        user = self._require_user()
        try:
            response = self._request(
                "GET",
                f"/rest/v1/{RIDES_TABLE}",
                authenticated=True,
                params={
                    "select": "*",
                    "user_id": f"eq.{user.id}",
                    "order": "start_time.desc",
                },
            )
            self._check_session(response)
            response.raise_for_status()
            rows = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Error fetching rides: {e}")
            raise APIError(APIError.DATA_FETCH_FAILED) from e

        if not rows:
            return []
        return [ride_from_row(row) for row in rows]
