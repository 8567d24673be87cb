"""
Reservation event registry.

Notification delivery lives outside the engine; observers subscribe here
to hear about new reservations and status changes. Each subscriber gets
its own Subscription handle and the registry owns the listener lifetimes.
"""

import inspect
import itertools
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, FrozenSet, Iterable, Optional, Tuple, Union
from uuid import UUID

from domain.enums import ReservationEventType, ReservationStatus
from domain.models import NewReservation, StatusChange


logger = logging.getLogger(__name__)


STATUS_EVENTS: Dict[ReservationStatus, ReservationEventType] = {
    ReservationStatus.CONFIRMED: ReservationEventType.CONFIRMED,
    ReservationStatus.CANCELED: ReservationEventType.CANCELED,
    ReservationStatus.COMPLETED: ReservationEventType.COMPLETED,
}


@dataclass(frozen=True)
class ReservationEvent:
    """Something observers may want to act on."""
    type: ReservationEventType
    reservation_id: UUID
    business_id: str
    user_id: str
    change: Optional[StatusChange] = None

    @classmethod
    def created(cls, reservation_id: UUID, reservation: NewReservation) -> "ReservationEvent":
        return cls(
            type=ReservationEventType.CREATED,
            reservation_id=reservation_id,
            business_id=reservation.business_id,
            user_id=reservation.user_id,
        )

    @classmethod
    def status_changed(cls, change: StatusChange) -> "ReservationEvent":
        return cls(
            type=STATUS_EVENTS[change.new_status],
            reservation_id=change.reservation_id,
            business_id=change.business_id,
            user_id=change.user_id,
            change=change,
        )


Listener = Callable[[ReservationEvent], Union[None, Awaitable[None]]]


class Subscription:
    """Handle for one registered listener."""

    def __init__(self, registry: "ReservationEventRegistry", listener_id: int):
        self._registry = registry
        self._listener_id = listener_id
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        """Remove the listener. Calling this more than once is harmless."""
        if self._active:
            self._registry._remove(self._listener_id)
            self._active = False

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.unsubscribe()


class ReservationEventRegistry:
    """Owns reservation event listeners and dispatches events to them."""

    def __init__(self):
        self._listeners: Dict[int, Tuple[Listener, Optional[FrozenSet[ReservationEventType]]]] = {}
        self._ids = itertools.count(1)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(
        self,
        listener: Listener,
        event_types: Optional[Iterable[ReservationEventType]] = None,
    ) -> Subscription:
        """
        Register a listener.

        Args:
            listener: Callable (sync or async) receiving each event
            event_types: Only deliver these event types (all when None)

        Returns:
            Subscription handle used to unsubscribe
        """
        listener_id = next(self._ids)
        types = frozenset(event_types) if event_types is not None else None
        self._listeners[listener_id] = (listener, types)
        return Subscription(self, listener_id)

    def _remove(self, listener_id: int) -> None:
        self._listeners.pop(listener_id, None)

    async def publish(self, event: ReservationEvent) -> None:
        """
        Deliver an event to every matching listener.

        The write that produced the event is already committed, so a failing
        listener is logged and the remaining listeners still run.
        """
        for listener_id, (listener, types) in list(self._listeners.items()):
            if types is not None and event.type not in types:
                continue
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    f"Listener {listener_id} failed on {event.type.value} "
                    f"for reservation {event.reservation_id}"
                )
