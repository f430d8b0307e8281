"""
API routes for remote backend sign-in.
"""

from fastapi import APIRouter, Depends, HTTPException

from ridetrack.api.deps import get_services
from ridetrack.api.schemas import (
    PasswordResetRequest,
    RemoteRideResponse,
    SignInRequest,
    SignUpRequest,
    UserResponse,
)
from ridetrack.services.backend import RemoteRideStore, User
from ridetrack.services.container import AppServices


router = APIRouter(prefix="/auth", tags=["auth"])


def _remote(services: AppServices) -> RemoteRideStore:
    if services.remote is None:
        raise HTTPException(status_code=503, detail="Remote backend is not configured")
    return services.remote


def _user_response(user: User) -> UserResponse:
    return UserResponse(id=user.id, email=user.email, username=user.username)


@router.get("/me", response_model=UserResponse)
async def current_user(services: AppServices = Depends(get_services)):
    remote = _remote(services)
    if not remote.is_signed_in:
        raise HTTPException(status_code=401, detail="Not signed in")
    return _user_response(remote.current_user)


@router.post("/sign-in", response_model=UserResponse)
async def sign_in(request: SignInRequest, services: AppServices = Depends(get_services)):
    return _user_response(_remote(services).sign_in(request.email, request.password))


@router.post("/sign-up", response_model=UserResponse)
async def sign_up(request: SignUpRequest, services: AppServices = Depends(get_services)):
    user = _remote(services).sign_up(request.email, request.password, request.username)
    return _user_response(user)


@router.post("/sign-out", status_code=204)
async def sign_out(services: AppServices = Depends(get_services)):
    _remote(services).sign_out()


@router.post("/reset-password", status_code=202)
async def reset_password(request: PasswordResetRequest, services: AppServices = Depends(get_services)):
    _remote(services).reset_password(request.email)
    return {"status": "sent"}


@router.get("/rides", response_model=list[RemoteRideResponse])
async def remote_rides(services: AppServices = Depends(get_services)):
    """Rides of the signed-in user stored on the remote backend, newest first."""
    rides = _remote(services).fetch_user_rides()
    return [
        RemoteRideResponse(id=ride.id, name=ride.name, start_time=ride.start_time, end_time=ride.end_time)
        for ride in rides
    ]
