"""
Ride Repository - local persistence of the ride list.

Rides are kept in memory and mirrored to a single JSON document stored under
a key in the data folder (one file per key). With no data folder the
repository is memory-only.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from ridetrack.core.errors import RideNotFoundError
from ridetrack.models.ride import Ride, RideHistorySummary
from ridetrack.services.codec import decode_rides, encode_rides
from ridetrack.services.telemetry import summarize_rides


logger = logging.getLogger(__name__)


SAVE_KEY = "savedRides"


class RideRepository:
    """
    Repository for finished rides.

    Order of the stored list is insertion order; list_rides() returns
    newest first.
    """

    def __init__(self, data_folder: Optional[Path] = None, key: str = SAVE_KEY):
        """
        Initialize the repository.

        Args:
            data_folder: Folder holding the key-value files. None keeps
                rides in memory only.
            key: Storage key for the ride list
        """
        self._data_folder: Optional[Path] = data_folder
        self._key = key
        self._rides: list[Ride] = []

        if data_folder is not None:
            self.load()

    @property
    def data_folder(self) -> Optional[Path]:
        return self._data_folder

    @property
    def store_path(self) -> Optional[Path]:
        if self._data_folder is None:
            return None
        return self._data_folder / f"{self._key}.json"

    def load(self) -> int:
        """
        (Re)load rides from disk.

        A missing or unreadable store yields an empty list; the error is
        logged, not raised.

        Returns:
            Number of rides loaded
        """
        path = self.store_path
        self._rides = []
        if path is None or not path.exists():
            logger.info(f"No saved rides at {path}")
            return 0

        try:
            self._rides = decode_rides(path.read_bytes())
        except (OSError, ValidationError) as e:
            logger.error(f"Error loading rides from {path}: {e}")
            return 0

        logger.info(f"Loaded {len(self._rides)} rides from {path}")
        return len(self._rides)

    def save(self) -> bool:
        """
        Write the ride list to disk.

        A failed write is logged and the in-memory list is kept, so the
        rides are retried on the next save.

        Returns:
            True if written (also True when memory-only)
        """
        path = self.store_path
        if path is None:
            return True
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".json.tmp")
            tmp.write_bytes(encode_rides(self._rides))
            tmp.replace(path)
        except OSError as e:
            logger.error(f"Error saving rides to {path}: {e}")
            return False
        logger.debug(f"Saved {len(self._rides)} rides to {path}")
        return True

    def list_rides(self) -> list[Ride]:
        """All rides, newest start time first."""
        return sorted(self._rides, key=lambda r: r.start_time, reverse=True)

    def get_ride(self, ride_id: str) -> Optional[Ride]:
        for ride in self._rides:
            if ride.id == ride_id:
                return ride
        return None

    def require_ride(self, ride_id: str) -> Ride:
        ride = self.get_ride(ride_id)
        if ride is None:
            raise RideNotFoundError(f"Ride not found: {ride_id}")
        return ride

    def add_ride(self, ride: Ride) -> Ride:
        self._rides.append(ride)
        self.save()
        logger.info(f"Added ride {ride.id} ({ride.name!r}, {len(ride.trace)} fixes)")
        return ride

    def update_ride(self, ride: Ride) -> Ride:
        """
        Replace the stored ride with the same id.

        Raises:
            RideNotFoundError: no ride with that id
        """
        for index, existing in enumerate(self._rides):
            if existing.id == ride.id:
                self._rides[index] = ride
                self.save()
                return ride
        raise RideNotFoundError(f"Ride not found: {ride.id}")

    def rename_ride(self, ride_id: str, name: str) -> Ride:
        ride = self.require_ride(ride_id)
        ride.name = name
        self.save()
        return ride

    def delete_ride(self, ride_id: str) -> bool:
        """
        Returns:
            True if a ride was removed
        """
        before = len(self._rides)
        self._rides = [r for r in self._rides if r.id != ride_id]
        if len(self._rides) == before:
            return False
        self.save()
        logger.info(f"Deleted ride {ride_id}")
        return True

    def clear(self) -> None:
        self._rides.clear()
        self.save()
        logger.info("All rides cleared")

    def history_summary(self, now: Optional[datetime] = None) -> RideHistorySummary:
        return summarize_rides(self._rides, now=now)

    def __len__(self) -> int:
        return len(self._rides)
