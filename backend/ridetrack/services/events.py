"""
Minimal typed observer list.

Owners of mutable session state (recorder, navigation tracker, location
feed) emit change notifications through an EventEmitter; hosts subscribe
with a callback. Callbacks run synchronously on the emitting call.
"""

import logging
from typing import Callable, Generic, TypeVar


logger = logging.getLogger(__name__)

E = TypeVar("E")


class EventEmitter(Generic[E]):
    """Ordered list of subscriber callbacks."""

    def __init__(self):
        self._subscribers: list[Callable[[E], None]] = []

    def subscribe(self, callback: Callable[[E], None]) -> Callable[[], None]:
        """
        Register a callback.

        Returns:
            A function that removes the subscription (safe to call twice)
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def emit(self, event: E) -> None:
        # A failing subscriber must not stop the others or the emitter
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception(f"Subscriber {callback!r} failed on {type(event).__name__}")

    def __len__(self) -> int:
        return len(self._subscribers)
