"""Domain models using Pydantic v2 for the reservation booking engine."""

import re
import datetime as dt
from typing import Optional, Dict, List, Set, Any
from uuid import UUID

from pydantic import (
    BaseModel,
    Field,
    ConfigDict,
    field_validator,
    field_serializer,
    model_validator,
)

from .enums import (
    ReservationStatus,
    DayOfWeek,
    LifecycleAction,
    ActorRole,
)


SLOT_TIME_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})$')


def normalize_slot_time(value: str) -> str:
    """
    Normalize a slot time to zero-padded "HH:MM".

    Args:
        value: Time such as "9:30" or "19:00"

    Returns:
        Normalized time string

    Raises:
        ValueError: If the value is not a valid 24-hour time
    """
    if not isinstance(value, str):
        raise ValueError(f"Slot time must be a string (got {type(value).__name__})")

    match = SLOT_TIME_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Slot time must be in HH:MM format (got {value!r})")

    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"Slot time out of range (got {value!r})")

    return f"{hour:02d}:{minute:02d}"


def _normalize_slots(slots: List[str]) -> List[str]:
    """Validate "HH:MM" slots, drop duplicates and sort them."""
    return sorted({normalize_slot_time(slot) for slot in slots})


class SpecialSchedule(BaseModel):
    """Slot override for one specific date."""

    time_slots: List[str] = Field(default_factory=list)

    @field_validator("time_slots")
    @classmethod
    def validate_time_slots(cls, v: List[str]) -> List[str]:
        return _normalize_slots(v)


class AvailabilityConfig(BaseModel):
    """Booking rules authored by a business owner."""

    business_id: str = Field(..., min_length=1, max_length=128)
    available_days: Set[DayOfWeek] = Field(default_factory=set)
    time_slots: List[str] = Field(default_factory=list, description="Default bookable times (HH:MM)")
    max_party_sizes: Set[int] = Field(default_factory=set, description="Party sizes the business can seat")
    unavailable_dates: Set[dt.date] = Field(default_factory=set, description="Closures and holidays")
    special_schedules: Dict[dt.date, SpecialSchedule] = Field(default_factory=dict)
    slot_capacity: Optional[int] = Field(
        None,
        ge=1,
        description="Active reservations allowed per slot; engine default when unset",
    )

    model_config = ConfigDict(
        str_strip_whitespace=True,
        from_attributes=True,
    )

    @field_validator("available_days", mode="before")
    @classmethod
    def lowercase_days(cls, v: Any) -> Any:
        """Accept weekday tokens regardless of case."""
        if isinstance(v, (list, set, tuple, frozenset)):
            return {d.lower() if isinstance(d, str) else d for d in v}
        return v

    @field_validator("time_slots")
    @classmethod
    def validate_time_slots(cls, v: List[str]) -> List[str]:
        return _normalize_slots(v)

    @field_validator("max_party_sizes")
    @classmethod
    def validate_party_sizes(cls, v: Set[int]) -> Set[int]:
        """Party sizes must be positive."""
        invalid = sorted(size for size in v if size < 1)
        if invalid:
            raise ValueError(f"max_party_sizes must be positive integers (got {invalid})")
        return v

    @field_serializer("available_days")
    def serialize_days(self, days: Set[DayOfWeek]) -> List[str]:
        order = list(DayOfWeek)
        return [d.value for d in sorted(days, key=order.index)]

    @field_serializer("max_party_sizes")
    def serialize_party_sizes(self, sizes: Set[int]) -> List[int]:
        return sorted(sizes)

    @field_serializer("unavailable_dates")
    def serialize_unavailable_dates(self, dates: Set[dt.date]) -> List[str]:
        return [d.isoformat() for d in sorted(dates)]

    def effective_time_slots(self, on_date: dt.date) -> List[str]:
        """
        Get the slots in force on a date.

        A special schedule replaces the default slots only when it lists
        at least one time.
        """
        special = self.special_schedules.get(on_date)
        if special is not None and special.time_slots:
            return special.time_slots
        return self.time_slots


class ContactInfo(BaseModel):
    """Optional contact details left by the customer."""

    phone: Optional[str] = Field(None, max_length=32)
    email: Optional[str] = Field(None, max_length=254)

    model_config = ConfigDict(str_strip_whitespace=True, from_attributes=True)


class BookingRequest(BaseModel):
    """
    A customer's booking request as received from the client.

    Required fields are optional here so that a missing value is reported
    as a validation result instead of failing model construction.
    """

    business_id: Optional[str] = None
    business_name: str = ""
    user_id: Optional[str] = None
    user_name: str = ""
    contact_info: Optional[ContactInfo] = None
    date: Optional[dt.date] = None
    time: Optional[str] = None
    party_size: Optional[int] = None
    notes: Optional[str] = None

    model_config = ConfigDict(str_strip_whitespace=True)


class NewReservation(BaseModel):
    """Validated reservation data ready to be persisted."""

    business_id: str = Field(..., min_length=1, max_length=128)
    business_name: str = Field("", max_length=200)
    user_id: str = Field(..., min_length=1, max_length=128)
    user_name: str = Field("", max_length=100)
    contact_info: Optional[ContactInfo] = None
    date: dt.date
    time: str = Field(..., pattern=r"^\d{2}:\d{2}$")
    party_size: int = Field(..., ge=1)
    notes: Optional[str] = Field(None, max_length=500)

    model_config = ConfigDict(
        str_strip_whitespace=True,
        from_attributes=True,
    )


class ReservationRecord(NewReservation):
    """Complete reservation record from the store."""

    id: UUID
    status: ReservationStatus
    created_at: dt.datetime
    updated_at: Optional[dt.datetime] = None

    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
    )


class ReservationFilter(BaseModel):
    """Filter for reservation queries."""

    business_id: Optional[str] = None
    user_id: Optional[str] = None
    status: Optional[ReservationStatus] = None

    @model_validator(mode="after")
    def require_owner_filter(self) -> "ReservationFilter":
        """Queries are always scoped to a business or a customer."""
        if not self.business_id and not self.user_id:
            raise ValueError("business_id or user_id is required")
        return self


class Actor(BaseModel):
    """An authenticated identity performing an operation."""

    actor_id: str = Field(..., min_length=1)
    role: ActorRole
    business_id: Optional[str] = Field(None, description="Business owned by a business_owner actor")

    def owns_business(self, business_id: str) -> bool:
        return self.role == ActorRole.BUSINESS_OWNER and self.business_id == business_id


class StatusChange(BaseModel):
    """Outcome of an accepted lifecycle transition."""

    reservation_id: UUID
    business_id: str
    user_id: str
    action: LifecycleAction
    old_status: ReservationStatus
    new_status: ReservationStatus
    actor_id: str
    changed_at: dt.datetime


class ReservationStats(BaseModel):
    """Aggregated reservation counts for a business."""

    total_count: int = 0
    pending_count: int = 0
    confirmed_count: int = 0
    canceled_count: int = 0
    completed_count: int = 0
    by_day: Dict[str, int] = Field(default_factory=dict)
    by_hour: Dict[str, int] = Field(default_factory=dict)
