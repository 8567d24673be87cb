"""Domain layer for the reservation booking engine."""

from .enums import (
    ReservationStatus,
    ACTIVE_STATUSES,
    DayOfWeek,
    DenyReason,
    LifecycleAction,
    ActorRole,
    ReservationEventType,
)
from .models import (
    SpecialSchedule,
    AvailabilityConfig,
    ContactInfo,
    BookingRequest,
    NewReservation,
    ReservationRecord,
    ReservationFilter,
    Actor,
    StatusChange,
    ReservationStats,
)
from .errors import (
    EngineError,
    ValidationError,
    AvailabilityDenied,
    NotFoundError,
    IllegalTransitionError,
    PermissionDeniedError,
    RepositoryError,
    Result,
    AvailabilityDecision,
)

__all__ = [
    # Enums
    "ReservationStatus",
    "ACTIVE_STATUSES",
    "DayOfWeek",
    "DenyReason",
    "LifecycleAction",
    "ActorRole",
    "ReservationEventType",
    # Models
    "SpecialSchedule",
    "AvailabilityConfig",
    "ContactInfo",
    "BookingRequest",
    "NewReservation",
    "ReservationRecord",
    "ReservationFilter",
    "Actor",
    "StatusChange",
    "ReservationStats",
    # Results
    "EngineError",
    "ValidationError",
    "AvailabilityDenied",
    "NotFoundError",
    "IllegalTransitionError",
    "PermissionDeniedError",
    "RepositoryError",
    "Result",
    "AvailabilityDecision",
]
