"""
Ride recording session.

RideRecorder owns the in-progress ride: it appends fixes while recording,
finalizes the ride on stop and hands it to the repository. Other
collaborators (remote sync, UI) react to the typed events it emits.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Union

from ridetrack.core.errors import RecordingError
from ridetrack.models.ride import DEFAULT_RIDE_NAME, LocationFix, Ride, RideStatistics, utc_now
from ridetrack.services.events import EventEmitter
from ridetrack.services.repository import RideRepository
from ridetrack.services.telemetry import ride_statistics


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordingStarted:
    ride_id: str
    name: str


@dataclass(frozen=True)
class FixRecorded:
    ride_id: str
    fix: LocationFix
    fix_count: int


@dataclass(frozen=True)
class RecordingStopped:
    ride: Ride


@dataclass(frozen=True)
class RecordingDiscarded:
    ride_id: str


RecordingEvent = Union[RecordingStarted, FixRecorded, RecordingStopped, RecordingDiscarded]


class RideRecorder:
    """
    Single recording session at a time.

    Not thread-safe; fixes must arrive in timestamp order.
    """

    def __init__(
        self,
        repository: RideRepository,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.clock = clock
        self._active: Optional[Ride] = None
        self._events: EventEmitter[RecordingEvent] = EventEmitter()

    def subscribe(self, callback: Callable[[RecordingEvent], None]) -> Callable[[], None]:
        return self._events.subscribe(callback)

    @property
    def is_recording(self) -> bool:
        return self._active is not None

    @property
    def active_ride(self) -> Optional[Ride]:
        return self._active

    def start_ride(self, name: str = DEFAULT_RIDE_NAME) -> Ride:
        """
        Begin recording a new ride.

        Raises:
            RecordingError: a ride is already being recorded
        """
        if self._active is not None:
            raise RecordingError(f"Already recording ride {self._active.id}")

        self._active = Ride(name=name or DEFAULT_RIDE_NAME, start_time=self.clock())
        logger.info(f"Recording started: {self._active.id} ({self._active.name!r})")
        self._events.emit(RecordingStarted(ride_id=self._active.id, name=self._active.name))
        return self._active

    def record_fix(self, fix: LocationFix) -> bool:
        """
        Append a fix to the active ride.

        Returns:
            False when no ride is being recorded
        """
        ride = self._active
        if ride is None:
            return False

        ride.trace.append(fix)
        self._events.emit(FixRecorded(ride_id=ride.id, fix=fix, fix_count=len(ride.trace)))
        return True

    def stop_ride(self) -> Optional[Ride]:
        """
        Finalize the active ride and save it.

        Returns:
            The finished ride, or None when nothing was being recorded
        """
        ride = self._active
        if ride is None:
            return None

        ride.end_time = self.clock()
        self._active = None
        self.repository.add_ride(ride)
        logger.info(f"Recording stopped: {ride.id} ({len(ride.trace)} fixes)")
        self._events.emit(RecordingStopped(ride=ride))
        return ride

    def discard_ride(self) -> bool:
        """Drop the active ride without saving it."""
        ride = self._active
        if ride is None:
            return False

        self._active = None
        logger.info(f"Recording discarded: {ride.id}")
        self._events.emit(RecordingDiscarded(ride_id=ride.id))
        return True

    def live_statistics(self, now: Optional[datetime] = None) -> Optional[RideStatistics]:
        """Statistics of the ride in progress, timed up to `now`."""
        if self._active is None:
            return None
        return ride_statistics(self._active, now=now or self.clock())
