"""
Default availability configuration for businesses that have not stored one.

A business without a stored configuration still accepts bookings: the
evaluator substitutes the values below instead of refusing every request.
"""

from typing import List

from domain.enums import DayOfWeek
from domain.models import AvailabilityConfig


# Every day except Sunday
DEFAULT_AVAILABLE_DAYS: List[DayOfWeek] = [
    DayOfWeek.MONDAY,
    DayOfWeek.TUESDAY,
    DayOfWeek.WEDNESDAY,
    DayOfWeek.THURSDAY,
    DayOfWeek.FRIDAY,
    DayOfWeek.SATURDAY,
]

# Lunch and dinner services
DEFAULT_TIME_SLOTS: List[str] = ["12:00", "13:00", "14:00", "15:00", "19:00", "20:00"]

DEFAULT_PARTY_SIZES: List[int] = [1, 2, 3, 4, 5, 6, 7, 8, 10, 12]

# Active reservations allowed per (business, date, time)
DEFAULT_SLOT_CAPACITY: int = 3


def get_default_availability_config(business_id: str) -> AvailabilityConfig:
    """
    Build the fallback configuration for a business.

    Args:
        business_id: Business the configuration is for

    Returns:
        AvailabilityConfig populated with the documented defaults
    """
    return AvailabilityConfig(
        business_id=business_id,
        available_days=set(DEFAULT_AVAILABLE_DAYS),
        time_slots=list(DEFAULT_TIME_SLOTS),
        max_party_sizes=set(DEFAULT_PARTY_SIZES),
    )
