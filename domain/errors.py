"""
Result values returned by the booking engine.

Expected failures (missing fields, denied availability, illegal
transitions, store outages) are returned as typed error values inside a
Result instead of being raised, so callers can branch on the error type
and localize messages from its code.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Optional, TypeVar

from .enums import DenyReason


T = TypeVar("T")


@dataclass
class EngineError:
    """Base error value."""
    message: str
    code: str = "error"
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ValidationError(EngineError):
    """Required booking fields missing or malformed; never persisted."""
    code: str = "validation"
    field: Optional[str] = None


@dataclass
class AvailabilityDenied(EngineError):
    """The requested slot cannot be booked."""
    reason: DenyReason = DenyReason.TIME_UNAVAILABLE

    def __post_init__(self):
        self.code = self.reason.value


@dataclass
class NotFoundError(EngineError):
    """Reservation or configuration does not exist."""
    code: str = "not-found"


@dataclass
class IllegalTransitionError(EngineError):
    """Transition not allowed from the current status, for this actor, or on this date."""
    code: str = "illegal-transition"


@dataclass
class PermissionDeniedError(EngineError):
    """Actor may not change this business's configuration."""
    code: str = "permission-denied"


@dataclass
class RepositoryError(EngineError):
    """The backing store failed or timed out."""
    code: str = "repository"
    cause: Optional[BaseException] = None


@dataclass
class Result(Generic[T]):
    """Either a value or an error."""
    value: Optional[T] = None
    error: Optional[EngineError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: EngineError) -> "Result[T]":
        return cls(error=error)


DENY_MESSAGES: Dict[DenyReason, str] = {
    DenyReason.DAY_UNAVAILABLE: "This day is not available for reservations",
    DenyReason.DATE_UNAVAILABLE: "This date is not available for reservations",
    DenyReason.TIME_UNAVAILABLE: "This time is not available",
    DenyReason.PARTY_SIZE_UNAVAILABLE: "This party size is not supported",
    DenyReason.TIME_FULL: "No availability left at this time",
}


@dataclass(frozen=True)
class AvailabilityDecision:
    """Allow, or Deny with a reason."""
    allowed: bool
    reason: Optional[DenyReason] = None

    @classmethod
    def allow(cls) -> "AvailabilityDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenyReason) -> "AvailabilityDecision":
        return cls(allowed=False, reason=reason)

    @property
    def message(self) -> str:
        if self.allowed:
            return "Available"
        return DENY_MESSAGES[self.reason]

    def to_error(self) -> AvailabilityDenied:
        """Convert a denial into the error value returned by bookings."""
        if self.allowed:
            raise ValueError("An allowed decision has no error")
        return AvailabilityDenied(message=self.message, reason=self.reason)
