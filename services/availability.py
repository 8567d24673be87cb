"""
Availability evaluation for booking requests.

The evaluator is a pure function of its inputs: the stored configuration
(or None), the requested slot, the party size and the number of active
reservations already holding that slot. Checks run in a fixed order and
the first failing one decides the outcome.
"""

import logging
from datetime import date
from typing import List, Optional

from core.booking_config import DEFAULT_SLOT_CAPACITY, get_default_availability_config
from core.utils_datetime import weekday_of
from domain.enums import DenyReason
from domain.errors import AvailabilityDecision
from domain.models import AvailabilityConfig, normalize_slot_time


logger = logging.getLogger(__name__)


def resolve_config(business_id: str, config: Optional[AvailabilityConfig]) -> AvailabilityConfig:
    """Return the stored configuration, or the defaults when none is stored."""
    if config is None:
        return get_default_availability_config(business_id)
    return config


def effective_time_slots(config: AvailabilityConfig, on_date: date) -> List[str]:
    """Get the slots in force on a date after special-schedule overrides."""
    return config.effective_time_slots(on_date)


def resolve_slot_capacity(
    config: AvailabilityConfig,
    slot_capacity: Optional[int] = None,
    default_capacity: int = DEFAULT_SLOT_CAPACITY,
) -> int:
    """
    Pick the per-slot capacity for a business.

    An explicit capacity wins, then the business's own setting, then the
    engine default.
    """
    if slot_capacity is not None:
        return slot_capacity
    if config.slot_capacity is not None:
        return config.slot_capacity
    return default_capacity


def evaluate(
    config: Optional[AvailabilityConfig],
    business_id: str,
    requested_date: date,
    requested_time: str,
    party_size: int,
    active_count: int,
    slot_capacity: Optional[int] = None,
    default_capacity: int = DEFAULT_SLOT_CAPACITY,
) -> AvailabilityDecision:
    """
    Decide whether a slot can be booked.

    Args:
        config: Stored configuration, or None to use the defaults
        business_id: Business being booked
        requested_date: Booking date
        requested_time: Booking time ("HH:MM")
        party_size: Number of guests
        active_count: Pending or confirmed reservations already at the slot
        slot_capacity: Capacity override for this evaluation
        default_capacity: Capacity used when neither override nor config sets one

    Returns:
        AvailabilityDecision allowing the booking or carrying the deny reason
    """
    config = resolve_config(business_id, config)

    if weekday_of(requested_date) not in config.available_days:
        return AvailabilityDecision.deny(DenyReason.DAY_UNAVAILABLE)

    if requested_date in config.unavailable_dates:
        return AvailabilityDecision.deny(DenyReason.DATE_UNAVAILABLE)

    try:
        slot = normalize_slot_time(requested_time)
    except ValueError:
        return AvailabilityDecision.deny(DenyReason.TIME_UNAVAILABLE)

    if slot not in effective_time_slots(config, requested_date):
        return AvailabilityDecision.deny(DenyReason.TIME_UNAVAILABLE)

    if not any(size >= party_size for size in config.max_party_sizes):
        return AvailabilityDecision.deny(DenyReason.PARTY_SIZE_UNAVAILABLE)

    capacity = resolve_slot_capacity(config, slot_capacity, default_capacity)
    if active_count >= capacity:
        logger.debug(
            f"Slot {requested_date} {slot} for {business_id} is full "
            f"({active_count}/{capacity})"
        )
        return AvailabilityDecision.deny(DenyReason.TIME_FULL)

    return AvailabilityDecision.allow()
