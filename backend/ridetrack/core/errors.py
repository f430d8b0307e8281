"""
Exception hierarchy.

Services raise these; the API layer maps them to HTTP responses. The
telemetry aggregator never raises for degenerate input.
"""


class RideTrackError(Exception):
    """Base class for all domain errors."""

    code = "ridetrack_error"


class RecordingError(RideTrackError):
    code = "recording_error"


class RideNotFoundError(RideTrackError):
    code = "ride_not_found"


class NoRouteAvailableError(RideTrackError):
    code = "no_route_available"


class AuthError(RideTrackError):
    """Authentication with the remote backend failed or is missing."""

    code = "auth_error"

    SIGN_UP_FAILED = "Failed to create account. Please try again."
    LOGIN_FAILED = "Login failed. Please check your credentials."
    SESSION_EXPIRED = "Your session has expired. Please sign in again."
    NOT_AUTHENTICATED = "You must be logged in to perform this action."


class APIError(RideTrackError):
    """The remote backend answered with something unusable."""

    code = "api_error"

    INVALID_RESPONSE = "Invalid response from the server."
    DATA_FETCH_FAILED = "Failed to fetch data."
