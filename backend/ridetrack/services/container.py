"""
Service composition.

Everything the application needs is built once at startup from Settings,
wired together here, and closed at shutdown. There are no module-level
singletons: tests build their own AppServices.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

import requests

from ridetrack.core.config import Settings
from ridetrack.core.errors import RideTrackError
from ridetrack.services.backend import RemoteRideStore
from ridetrack.services.location import LocationFeed
from ridetrack.services.navigation import Announcer, NavigationPlanner, NavigationTracker
from ridetrack.services.providers import (
    DirectionsProvider,
    NominatimPlacesSearch,
    OSRMDirectionsProvider,
    PlacesSearch,
)
from ridetrack.services.recording import RecordingEvent, RecordingStopped, RideRecorder
from ridetrack.services.repository import RideRepository


logger = logging.getLogger(__name__)


class RemoteSyncHandler:
    """
    Pushes finished rides to the remote backend when signed in.

    Failures are logged; the local copy is already saved.
    """

    def __init__(self, remote: RemoteRideStore):
        self.remote = remote
        self.synced: dict[str, str] = {}  # local ride id -> remote id

    def __call__(self, event: RecordingEvent) -> None:
        if not isinstance(event, RecordingStopped):
            return
        if not self.remote.is_signed_in:
            logger.debug(f"Not signed in, ride {event.ride.id} kept local only")
            return
        try:
            self.synced[event.ride.id] = self.remote.save_ride(event.ride)
        except RideTrackError as e:
            logger.error(f"Remote sync of ride {event.ride.id} failed: {e}")


@dataclass
class AppServices:
    settings: Settings
    repository: RideRepository
    feed: LocationFeed
    recorder: RideRecorder
    tracker: NavigationTracker
    planner: NavigationPlanner
    remote: Optional[RemoteRideStore] = None
    sync_handler: Optional[RemoteSyncHandler] = None
    _unsubscribers: list[Callable[[], None]] = field(default_factory=list, repr=False)

    def close(self) -> None:
        """Stop sessions and detach subscriptions."""
        self.tracker.stop()
        if self.recorder.is_recording:
            logger.info("Shutting down with a ride in progress; saving it")
            self.recorder.stop_ride()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()


def build_services(
    settings: Optional[Settings] = None,
    directions: Optional[DirectionsProvider] = None,
    places: Optional[PlacesSearch] = None,
    remote: Optional[RemoteRideStore] = None,
    announcer: Optional[Announcer] = None,
    memory_only: bool = False,
) -> AppServices:
    """
    Build and wire the application services.

    Collaborators default to the OSRM/Nominatim adapters and, when a backend
    URL is configured, a RemoteRideStore.
    """
    settings = settings or Settings()

    repository = RideRepository(None if memory_only else settings.data_folder)
    feed = LocationFeed(settings.max_horizontal_accuracy_m)
    recorder = RideRecorder(repository)
    tracker = NavigationTracker(announcer=announcer)

    session = None
    if directions is None or places is None or (remote is None and settings.backend_url):
        session = requests.Session()

    if directions is None:
        directions = OSRMDirectionsProvider(
            settings.osrm_base_url,
            session=session,
            timeout_s=settings.http_timeout_s,
            user_agent=settings.user_agent,
        )
    if places is None:
        places = NominatimPlacesSearch(
            settings.nominatim_base_url,
            session=session,
            timeout_s=settings.http_timeout_s,
            user_agent=settings.user_agent,
        )
    if remote is None and settings.backend_url and settings.backend_key:
        remote = RemoteRideStore(
            settings.backend_url,
            settings.backend_key,
            session=session,
            timeout_s=settings.http_timeout_s,
        )

    planner = NavigationPlanner(
        directions,
        places,
        location_source=lambda: feed.last_fix,
        search_radius_m=settings.search_radius_m,
    )

    services = AppServices(
        settings=settings,
        repository=repository,
        feed=feed,
        recorder=recorder,
        tracker=tracker,
        planner=planner,
        remote=remote,
    )

    services._unsubscribers.append(feed.subscribe(recorder.record_fix))
    services._unsubscribers.append(feed.subscribe(tracker.on_fix))
    if remote is not None:
        services.sync_handler = RemoteSyncHandler(remote)
        services._unsubscribers.append(recorder.subscribe(services.sync_handler))

    logger.info(
        f"Services ready (store: {repository.store_path}, "
        f"remote: {'on' if remote else 'off'})"
    )
    return services
