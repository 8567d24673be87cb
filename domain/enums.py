"""Domain enums for the reservation booking engine."""

from enum import Enum


class ReservationStatus(str, Enum):
    """Reservation status enumeration."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELED = "canceled"
    COMPLETED = "completed"

    @property
    def is_active(self) -> bool:
        """Active reservations count against slot capacity."""
        return self in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self in (ReservationStatus.CANCELED, ReservationStatus.COMPLETED)


ACTIVE_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.CONFIRMED})


class DayOfWeek(str, Enum):
    """Days of the week, in ``date.weekday()`` order."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_weekday(cls, weekday: int) -> "DayOfWeek":
        return list(cls)[weekday]


class DenyReason(str, Enum):
    """Reasons an availability check can refuse a booking."""

    DAY_UNAVAILABLE = "day-unavailable"
    DATE_UNAVAILABLE = "date-unavailable"
    TIME_UNAVAILABLE = "time-unavailable"
    PARTY_SIZE_UNAVAILABLE = "party-size-unavailable"
    TIME_FULL = "time-full"


class LifecycleAction(str, Enum):
    """Actions that move a reservation through its lifecycle."""

    CONFIRM = "confirm"
    CANCEL = "cancel"
    COMPLETE = "complete"


class ActorRole(str, Enum):
    """Who is performing an operation."""

    BUSINESS_OWNER = "business_owner"
    CUSTOMER = "customer"


class ReservationEventType(str, Enum):
    """Event types published to reservation observers."""

    CREATED = "reservation_created"
    CONFIRMED = "reservation_confirmed"
    CANCELED = "reservation_canceled"
    COMPLETED = "reservation_completed"
