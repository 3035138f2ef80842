"""
Unit tests for date-range overlap and conflict detection
"""
from dataclasses import dataclass
from datetime import date

import pytest

from app.domain.availability import find_conflicts, is_range_available, ranges_overlap
from app.domain.booking_state import BookingStatus


@dataclass
class Stay:
    check_in_date: date
    check_out_date: date
    status: BookingStatus = BookingStatus.CONFIRMED


class TestRangesOverlap:
    """Half-open [check_in, check_out) overlap"""

    @pytest.mark.parametrize(
        "existing, requested, expected",
        [
            # partial overlap at the end
            ((date(2026, 3, 10), date(2026, 3, 15)), (date(2026, 3, 12), date(2026, 3, 18)), True),
            # partial overlap at the start
            ((date(2026, 3, 10), date(2026, 3, 15)), (date(2026, 3, 8), date(2026, 3, 11)), True),
            # requested inside existing
            ((date(2026, 3, 1), date(2026, 3, 15)), (date(2026, 3, 5), date(2026, 3, 10)), True),
            # existing inside requested
            ((date(2026, 3, 5), date(2026, 3, 10)), (date(2026, 3, 1), date(2026, 3, 15)), True),
            # identical
            ((date(2026, 3, 5), date(2026, 3, 10)), (date(2026, 3, 5), date(2026, 3, 10)), True),
            # back-to-back: checkout day is the next check-in
            ((date(2026, 3, 10), date(2026, 3, 15)), (date(2026, 3, 15), date(2026, 3, 20)), False),
            ((date(2026, 3, 15), date(2026, 3, 20)), (date(2026, 3, 10), date(2026, 3, 15)), False),
            # disjoint
            ((date(2026, 3, 20), date(2026, 3, 25)), (date(2026, 3, 1), date(2026, 3, 5)), False),
        ],
    )
    def test_overlap(self, existing, requested, expected):
        assert ranges_overlap(*existing, *requested) is expected

    def test_overlap_is_symmetric(self):
        a = (date(2026, 5, 1), date(2026, 5, 4))
        b = (date(2026, 5, 3), date(2026, 5, 9))
        assert ranges_overlap(*a, *b) == ranges_overlap(*b, *a)


class TestFindConflicts:
    """Only PENDING and CONFIRMED bookings hold dates"""

    def test_pending_and_confirmed_block(self):
        stays = [
            Stay(date(2026, 6, 1), date(2026, 6, 5), BookingStatus.PENDING),
            Stay(date(2026, 6, 3), date(2026, 6, 8), BookingStatus.CONFIRMED),
        ]
        assert find_conflicts(stays, date(2026, 6, 4), date(2026, 6, 6)) == stays

    @pytest.mark.parametrize(
        "status", [BookingStatus.DECLINED, BookingStatus.CANCELLED, BookingStatus.COMPLETED]
    )
    def test_terminal_statuses_free_the_dates(self, status):
        stays = [Stay(date(2026, 6, 1), date(2026, 6, 5), status)]
        assert find_conflicts(stays, date(2026, 6, 2), date(2026, 6, 4)) == []
        assert is_range_available(stays, date(2026, 6, 2), date(2026, 6, 4))

    def test_back_to_back_is_available(self):
        stays = [Stay(date(2026, 6, 1), date(2026, 6, 5))]
        assert is_range_available(stays, date(2026, 6, 5), date(2026, 6, 7))
        assert is_range_available(stays, date(2026, 5, 28), date(2026, 6, 1))
