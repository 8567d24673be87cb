"""
Date and time helpers for slot handling.
All "local" comparisons use the timezone configured in settings.
"""
from datetime import datetime, date
from typing import Optional

import pytz

from core.config import settings
from domain.enums import DayOfWeek


# Timezone configuration
TIMEZONE = pytz.timezone(settings.timezone)


def get_current_datetime() -> datetime:
    """Get current datetime in the configured business timezone."""
    return datetime.now(TIMEZONE)


def weekday_of(check_date: date) -> DayOfWeek:
    """Get the weekday token for a date."""
    return DayOfWeek.from_weekday(check_date.weekday())


def is_date_past(check_date: date, now: Optional[datetime] = None) -> bool:
    """
    Check whether a booking date has passed.

    The booking date itself still counts as upcoming until the end of the
    day in local time.

    Args:
        check_date: Reservation date
        now: Current datetime (defaults to now in the business timezone)

    Returns:
        True if the date is strictly before today's local date
    """
    now = now or get_current_datetime()
    if now.tzinfo is None:
        now = TIMEZONE.localize(now)
    else:
        now = now.astimezone(TIMEZONE)
    return check_date < now.date()
