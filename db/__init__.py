"""Database layer for the reservation booking engine."""

from .base import Base, TimestampMixin
from .models_sqlalchemy import AvailabilityConfigRow, Reservation, SlotCounter
from .session import (
    create_engine,
    create_test_engine,
    create_session_factory,
    get_engine,
    get_session_factory,
    get_session_context,
    init_db,
    drop_db,
    close_db,
)
from .repository import (
    ReservationRepository,
    SQLAlchemyReservationRepository,
    StoreError,
    SlotCapacityExceeded,
    call_with_timeout,
)

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Models
    "AvailabilityConfigRow",
    "Reservation",
    "SlotCounter",
    # Session
    "create_engine",
    "create_test_engine",
    "create_session_factory",
    "get_engine",
    "get_session_factory",
    "get_session_context",
    "init_db",
    "drop_db",
    "close_db",
    # Repository
    "ReservationRepository",
    "SQLAlchemyReservationRepository",
    "StoreError",
    "SlotCapacityExceeded",
    "call_with_timeout",
]
