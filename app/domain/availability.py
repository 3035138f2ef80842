"""Date-range availability rules.

Stays are half-open ranges [check_in, check_out): a guest checking out on a
given day does not block another guest checking in that same day.
"""

from collections.abc import Iterable
from datetime import date
from typing import Protocol, TypeVar

from app.domain.booking_state import BookingStatus

# Statuses that hold dates on the calendar
BLOCKING_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})


class DateRanged(Protocol):
    check_in_date: date
    check_out_date: date
    status: BookingStatus


T = TypeVar("T", bound=DateRanged)


def ranges_overlap(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    """Return True if [start_a, end_a) and [start_b, end_b) share at least one night.

    Covers partial overlap on either side, containment in both directions, and
    treats back-to-back ranges as free.
    """
    return start_a < end_b and start_b < end_a


def find_conflicts(bookings: Iterable[T], check_in: date, check_out: date) -> list[T]:
    """Return the blocking bookings whose range overlaps [check_in, check_out)."""
    return [
        booking
        for booking in bookings
        if BookingStatus(booking.status) in BLOCKING_STATUSES
        and ranges_overlap(booking.check_in_date, booking.check_out_date, check_in, check_out)
    ]


def is_range_available(bookings: Iterable[DateRanged], check_in: date, check_out: date) -> bool:
    return not find_conflicts(bookings, check_in, check_out)
