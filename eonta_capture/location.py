"""
Location Provider Contract
==========================

Push-based position fixes with a categorized error channel.

Design:
- LocationProvider is a structural Protocol (subscribe / unsubscribe)
- LocationHub is the shipped in-process provider: whatever feeds it
  (the MQTT LocationSubscriber, a replay, a test) fans out to every
  live subscription
- Callback failures are logged, never propagated to the feeder
"""

import itertools
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol, runtime_checkable

from eonta_mqtt.logging import LogEvent, StructuredLogger, create_logger
from eonta_mqtt.schemas import LocationError, LocationErrorCode, LocationFix


FixCallback = Callable[[LocationFix], None]
ErrorCallback = Callable[[LocationError], None]

_subscription_ids = itertools.count(1)


@dataclass
class Subscription:
    """Handle returned by LocationProvider.subscribe()."""
    on_fix: FixCallback
    on_error: Optional[ErrorCallback] = None
    id: int = field(default_factory=lambda: next(_subscription_ids))
    active: bool = True

    def cancel(self) -> None:
        self.active = False


@runtime_checkable
class LocationProvider(Protocol):
    """Source of position fixes."""

    def subscribe(self, on_fix: FixCallback, on_error: Optional[ErrorCallback] = None) -> Subscription:
        ...

    def unsubscribe(self, subscription: Subscription) -> None:
        ...


class LocationHub:
    """
    In-process LocationProvider.

    Example:
        >>> hub = LocationHub()
        >>> sub = hub.subscribe(on_fix=print)
        >>> hub.publish_fix(LocationFix(lat=40.0, lng=-3.0, accuracy=5.0, timestamp=0))
        >>> hub.unsubscribe(sub)
    """

    def __init__(self, logger: Optional[StructuredLogger] = None):
        self.logger = logger or create_logger("location")
        self._subscriptions: Dict[int, Subscription] = {}
        self._lock = threading.Lock()

    def subscribe(self, on_fix: FixCallback, on_error: Optional[ErrorCallback] = None) -> Subscription:
        subscription = Subscription(on_fix=on_fix, on_error=on_error)
        with self._lock:
            self._subscriptions[subscription.id] = subscription
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.cancel()
        with self._lock:
            self._subscriptions.pop(subscription.id, None)

    def _live(self) -> List[Subscription]:
        with self._lock:
            return [s for s in self._subscriptions.values() if s.active]

    @property
    def subscriber_count(self) -> int:
        return len(self._live())

    def publish_fix(self, fix: LocationFix) -> None:
        """Deliver ``fix`` to every live subscription."""
        for subscription in self._live():
            try:
                subscription.on_fix(fix)
            except Exception as e:
                self.logger.error(
                    event=LogEvent.LOCATION_FIX_RECEIVED,
                    message="Location subscriber failed on fix",
                    exc_info=e,
                    metadata={'subscription_id': subscription.id}
                )

    def publish_error(self, error: LocationError) -> None:
        """Deliver ``error`` to every live subscription with an error callback."""
        for subscription in self._live():
            if subscription.on_error is None:
                continue
            try:
                subscription.on_error(error)
            except Exception as e:
                self.logger.error(
                    event=LogEvent.LOCATION_ERROR_RECEIVED,
                    message="Location subscriber failed on error",
                    exc_info=e,
                    metadata={'subscription_id': subscription.id}
                )


__all__ = [
    'ErrorCallback',
    'FixCallback',
    'LocationError',
    'LocationErrorCode',
    'LocationFix',
    'LocationHub',
    'LocationProvider',
    'Subscription',
]
