"""Reservation statistics for business dashboards."""

from collections import Counter
from typing import Iterable

from core.utils_datetime import weekday_of
from domain.enums import ReservationStatus, DayOfWeek
from domain.models import ReservationRecord, ReservationStats


def compute_reservation_stats(reservations: Iterable[ReservationRecord]) -> ReservationStats:
    """
    Count reservations by status, weekday and hour.

    Weekday keys are day tokens ("monday"...), hour keys are the two-digit
    hour of the booked slot ("19").
    """
    by_status: Counter = Counter()
    by_day: Counter = Counter()
    by_hour: Counter = Counter()

    for reservation in reservations:
        by_status[reservation.status] += 1
        by_day[weekday_of(reservation.date).value] += 1
        by_hour[reservation.time[:2]] += 1

    day_order = [d.value for d in DayOfWeek]

    return ReservationStats(
        total_count=sum(by_status.values()),
        pending_count=by_status[ReservationStatus.PENDING],
        confirmed_count=by_status[ReservationStatus.CONFIRMED],
        canceled_count=by_status[ReservationStatus.CANCELED],
        completed_count=by_status[ReservationStatus.COMPLETED],
        by_day={day: by_day[day] for day in day_order if by_day[day]},
        by_hour=dict(sorted(by_hour.items())),
    )
