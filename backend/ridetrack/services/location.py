"""
Location feed.

Receives raw fixes from the location service, drops inaccurate ones, keeps
the last good fix and fans the rest out to subscribers (recorder,
navigation tracker). Fixes are passed through in arrival order; callers
must deliver them in non-decreasing timestamp order.
"""

import logging
from typing import Callable, Optional

from ridetrack.models.ride import LocationFix
from ridetrack.services.events import EventEmitter


logger = logging.getLogger(__name__)


DEFAULT_MAX_HORIZONTAL_ACCURACY_M = 50.0


class LocationFeed:
    """Push-based stream of accepted location fixes."""

    def __init__(self, max_horizontal_accuracy_m: float = DEFAULT_MAX_HORIZONTAL_ACCURACY_M):
        self.max_horizontal_accuracy_m = max_horizontal_accuracy_m
        self._last_fix: Optional[LocationFix] = None
        self._events: EventEmitter[LocationFix] = EventEmitter()

    @property
    def last_fix(self) -> Optional[LocationFix]:
        return self._last_fix

    def subscribe(self, callback: Callable[[LocationFix], None]) -> Callable[[], None]:
        return self._events.subscribe(callback)

    def is_accurate(self, fix: LocationFix) -> bool:
        """Negative accuracy means the platform had no valid position."""
        return 0 <= fix.horizontal_accuracy < self.max_horizontal_accuracy_m

    def publish(self, fix: LocationFix) -> bool:
        """
        Offer a fix to the feed.

        Returns:
            True if the fix was accepted and delivered
        """
        if not self.is_accurate(fix):
            logger.debug(
                f"Dropping fix at {fix.timestamp.isoformat()} "
                f"(accuracy {fix.horizontal_accuracy:.1f} m)"
            )
            return False

        self._last_fix = fix
        self._events.emit(fix)
        return True

    def reset(self) -> None:
        self._last_fix = None
