"""
Unit tests for the booking service over in-memory storage
"""
import asyncio
import uuid
from datetime import date
from decimal import Decimal

import pytest

from app.core.exceptions import (
    BadRequestError,
    DatesNotAvailable,
    ErrorCode,
    ForbiddenError,
    InvalidBookingTransition,
    InvalidStayLength,
    NotFoundError,
    RentalNotAvailable,
)
from app.domain.booking_state import BookingStatus
from app.repositories.base import StaleBookingError
from app.repositories.memory import InMemoryBookingRepository, InMemoryRentalDirectory
from app.schemas.booking import BookingCalculateRequest
from app.services.booking_service import BookingListRole, BookingService

CHECK_IN = date(2026, 11, 1)
CHECK_OUT = date(2026, 11, 6)


class TestCreateBooking:
    async def test_creates_pending_booking_with_price_snapshot(
        self, service, make_request, guest_id, host_id, rental
    ):
        booking = await service.create_booking(
            guest_id, make_request(CHECK_IN, CHECK_OUT, guest_message="Arriving late")
        )

        assert booking.status == BookingStatus.PENDING
        assert booking.rental_id == rental.id
        assert booking.guest_id == guest_id
        assert booking.host_id == host_id
        assert booking.number_of_nights == 5
        assert booking.subtotal == Decimal("500.00")
        assert booking.cleaning_fee == Decimal("50.00")
        assert booking.service_fee == Decimal("50.00")
        assert booking.total_price == Decimal("600.00")
        assert booking.guest_message == "Arriving late"
        assert booking.cancelled_at is None
        assert await service.bookings.get_booking(booking.id) == booking

    async def test_unknown_rental(self, service, make_request, guest_id):
        with pytest.raises(NotFoundError):
            await service.create_booking(
                guest_id, make_request(CHECK_IN, CHECK_OUT, rental_id=uuid.uuid4())
            )

    @pytest.mark.parametrize(
        "changes", [{"is_active": False}, {"is_approved": False}]
    )
    async def test_rental_not_bookable(self, service, rentals, rental, make_request, guest_id, changes):
        rentals.update(rental.id, **changes)

        with pytest.raises(RentalNotAvailable):
            await service.create_booking(guest_id, make_request(CHECK_IN, CHECK_OUT))

    async def test_rental_removed_during_create(self, rental, make_request, guest_id):
        class VanishingDirectory(InMemoryRentalDirectory):
            async def get_rental(self, rental_id):
                snapshot = await super().get_rental(rental_id)
                self.remove(rental_id)
                return snapshot

        rentals = VanishingDirectory([rental])
        service = BookingService(rentals, InMemoryBookingRepository(rentals))

        with pytest.raises(NotFoundError):
            await service.create_booking(guest_id, make_request(CHECK_IN, CHECK_OUT))
        assert await service.bookings.list_for_guest(guest_id) == []

    async def test_rental_deactivated_during_create(self, rental, make_request, guest_id):
        class DeactivatingDirectory(InMemoryRentalDirectory):
            async def get_rental(self, rental_id):
                snapshot = await super().get_rental(rental_id)
                self.update(rental_id, is_active=False)
                return snapshot

        rentals = DeactivatingDirectory([rental])
        service = BookingService(rentals, InMemoryBookingRepository(rentals))

        with pytest.raises(RentalNotAvailable):
            await service.create_booking(guest_id, make_request(CHECK_IN, CHECK_OUT))

    async def test_host_cannot_book_own_rental(self, service, make_request, host_id):
        with pytest.raises(BadRequestError, match="own rental"):
            await service.create_booking(host_id, make_request(CHECK_IN, CHECK_OUT))

    async def test_too_many_guests(self, service, make_request, guest_id):
        with pytest.raises(BadRequestError, match="Maximum guests allowed is 4"):
            await service.create_booking(guest_id, make_request(CHECK_IN, CHECK_OUT, guests=5))

    async def test_zero_nights_rejected_before_availability(
        self, service, make_request, guest_id
    ):
        # Same dates are already taken, but stay length is checked first
        await service.create_booking(guest_id, make_request(CHECK_IN, CHECK_OUT))

        with pytest.raises(InvalidStayLength):
            await service.create_booking(uuid.uuid4(), make_request(CHECK_IN, CHECK_IN))

    async def test_overlapping_dates_conflict(self, service, make_request, guest_id):
        await service.create_booking(guest_id, make_request(CHECK_IN, CHECK_OUT))

        with pytest.raises(DatesNotAvailable) as exc_info:
            await service.create_booking(
                uuid.uuid4(), make_request(date(2026, 11, 3), date(2026, 11, 8))
            )
        assert exc_info.value.status_code == 409

    async def test_back_to_back_allowed(self, service, make_request, guest_id):
        await service.create_booking(guest_id, make_request(CHECK_IN, CHECK_OUT))
        after = await service.create_booking(
            uuid.uuid4(), make_request(CHECK_OUT, date(2026, 11, 9))
        )
        assert after.status == BookingStatus.PENDING

    async def test_cancelled_booking_frees_dates(
        self, service, make_request, guest_id
    ):
        first = await service.create_booking(guest_id, make_request(CHECK_IN, CHECK_OUT))
        await service.update_booking_status(first.id, guest_id, BookingStatus.CANCELLED)

        second = await service.create_booking(uuid.uuid4(), make_request(CHECK_IN, CHECK_OUT))
        assert second.status == BookingStatus.PENDING

    async def test_concurrent_requests_for_same_dates(self, service, make_request):
        """Exactly one of N simultaneous requests wins the dates"""
        attempts = 10
        results = await asyncio.gather(
            *(
                service.create_booking(uuid.uuid4(), make_request(CHECK_IN, CHECK_OUT))
                for _ in range(attempts)
            ),
            return_exceptions=True,
        )

        created = [r for r in results if not isinstance(r, Exception)]
        conflicts = [r for r in results if isinstance(r, DatesNotAvailable)]
        assert len(created) == 1
        assert len(conflicts) == attempts - 1

        stored = await service.bookings.find_overlapping(
            created[0].rental_id, CHECK_IN, CHECK_OUT
        )
        assert [b.id for b in stored] == [created[0].id]

    async def test_price_snapshot_survives_rate_change(
        self, service, rentals, rental, make_request, guest_id
    ):
        booking = await service.create_booking(guest_id, make_request(CHECK_IN, CHECK_OUT))

        rentals.update(rental.id, price_per_night=Decimal("250.00"), cleaning_fee=Decimal("99.00"))
        confirmed = await service.update_booking_status(
            booking.id, rental.host_id, BookingStatus.CONFIRMED
        )

        assert confirmed.price_per_night == Decimal("100.00")
        assert confirmed.total_price == Decimal("600.00")


class TestQuoteBooking:
    def _request(self, rental, check_in=CHECK_IN, check_out=CHECK_OUT, guests=2):
        return BookingCalculateRequest(
            rental_id=rental.id,
            check_in_date=check_in,
            check_out_date=check_out,
            number_of_guests=guests,
        )

    async def test_available_quote(self, service, rental):
        quote = await service.quote_booking(self._request(rental))

        assert quote.available is True
        assert quote.price_breakdown.total_price == Decimal("600.00")
        assert quote.security_deposit == Decimal("200.00")
        assert quote.unavailable_reason is None

    async def test_quote_with_taken_dates(self, service, rental, make_request, guest_id):
        await service.create_booking(guest_id, make_request(CHECK_IN, CHECK_OUT))

        quote = await service.quote_booking(self._request(rental))

        assert quote.available is False
        assert quote.unavailable_reason == "Rental is not available for these dates"

    async def test_quote_zero_nights(self, service, rental):
        quote = await service.quote_booking(self._request(rental, check_out=CHECK_IN))

        assert quote.available is False
        assert quote.unavailable_reason == "Booking must be at least 1 night"

    async def test_quote_does_not_write(self, service, rental, guest_id):
        await service.quote_booking(self._request(rental))
        assert await service.bookings.list_for_guest(guest_id) == []


class TestStatusUpdates:
    async def _pending(self, service, make_request, guest_id):
        return await service.create_booking(guest_id, make_request(CHECK_IN, CHECK_OUT))

    async def test_host_confirms(self, service, make_request, guest_id, host_id):
        booking = await self._pending(service, make_request, guest_id)

        updated = await service.update_booking_status(booking.id, host_id, BookingStatus.CONFIRMED)

        assert updated.status == BookingStatus.CONFIRMED
        assert updated.cancelled_at is None

    async def test_host_declines(self, service, make_request, guest_id, host_id):
        booking = await self._pending(service, make_request, guest_id)

        updated = await service.update_booking_status(booking.id, host_id, BookingStatus.DECLINED)

        assert updated.status == BookingStatus.DECLINED

    async def test_guest_cannot_confirm(self, service, make_request, guest_id):
        booking = await self._pending(service, make_request, guest_id)

        with pytest.raises(InvalidBookingTransition):
            await service.update_booking_status(booking.id, guest_id, BookingStatus.CONFIRMED)

    async def test_host_cannot_cancel_pending(self, service, make_request, guest_id, host_id):
        booking = await self._pending(service, make_request, guest_id)

        with pytest.raises(InvalidBookingTransition):
            await service.update_booking_status(booking.id, host_id, BookingStatus.CANCELLED)

    async def test_guest_cancel_stamps_time(self, service, make_request, guest_id):
        booking = await self._pending(service, make_request, guest_id)

        updated = await service.update_booking_status(booking.id, guest_id, BookingStatus.CANCELLED)

        assert updated.status == BookingStatus.CANCELLED
        assert updated.cancelled_at is not None

    async def test_either_party_cancels_confirmed(self, service, make_request, guest_id, host_id):
        booking = await self._pending(service, make_request, guest_id)
        await service.update_booking_status(booking.id, host_id, BookingStatus.CONFIRMED)

        updated = await service.update_booking_status(booking.id, host_id, BookingStatus.CANCELLED)

        assert updated.status == BookingStatus.CANCELLED
        assert updated.cancelled_at is not None

    async def test_terminal_booking_is_final(self, service, make_request, guest_id, host_id):
        booking = await self._pending(service, make_request, guest_id)
        await service.update_booking_status(booking.id, host_id, BookingStatus.DECLINED)

        with pytest.raises(InvalidBookingTransition):
            await service.update_booking_status(booking.id, host_id, BookingStatus.CONFIRMED)

    async def test_stranger_is_forbidden(self, service, make_request, guest_id):
        booking = await self._pending(service, make_request, guest_id)

        with pytest.raises(ForbiddenError):
            await service.update_booking_status(booking.id, uuid.uuid4(), BookingStatus.CANCELLED)

    async def test_unknown_booking(self, service, host_id):
        with pytest.raises(NotFoundError):
            await service.update_booking_status(uuid.uuid4(), host_id, BookingStatus.CONFIRMED)

    async def test_concurrent_host_decisions(self, service, make_request, guest_id, host_id):
        """Confirm and decline race: one wins, the loser is re-checked against it"""
        booking = await self._pending(service, make_request, guest_id)

        results = await asyncio.gather(
            service.update_booking_status(booking.id, host_id, BookingStatus.CONFIRMED),
            service.update_booking_status(booking.id, host_id, BookingStatus.DECLINED),
            return_exceptions=True,
        )

        succeeded = [r for r in results if not isinstance(r, Exception)]
        rejected = [r for r in results if isinstance(r, InvalidBookingTransition)]
        assert len(succeeded) == 1
        assert len(rejected) == 1

        stored = await service.bookings.get_booking(booking.id)
        assert stored.status == succeeded[0].status
        assert stored.version == 2

    async def test_gives_up_after_repeated_conflicts(
        self, rentals, make_request, guest_id, host_id
    ):
        class AlwaysStale(InMemoryBookingRepository):
            calls = 0

            async def update_status(self, booking_id, expected_version, status, cancelled_at=None):
                AlwaysStale.calls += 1
                raise StaleBookingError(booking_id, expected_version)

        service = BookingService(rentals, AlwaysStale(rentals), max_update_attempts=3)
        booking = await service.create_booking(guest_id, make_request(CHECK_IN, CHECK_OUT))

        with pytest.raises(BadRequestError, match="modified concurrently"):
            await service.update_booking_status(booking.id, host_id, BookingStatus.CONFIRMED)
        assert AlwaysStale.calls == 3


class TestCompletion:
    async def _confirmed(self, service, make_request, guest_id, host_id, check_in=CHECK_IN, check_out=CHECK_OUT):
        booking = await service.create_booking(guest_id, make_request(check_in, check_out))
        return await service.update_booking_status(booking.id, host_id, BookingStatus.CONFIRMED)

    async def test_completes_after_checkout(self, service, make_request, guest_id, host_id):
        booking = await self._confirmed(service, make_request, guest_id, host_id)

        completed = await service.complete_booking(booking.id, today=CHECK_OUT)

        assert completed.status == BookingStatus.COMPLETED

    async def test_not_before_checkout(self, service, make_request, guest_id, host_id):
        booking = await self._confirmed(service, make_request, guest_id, host_id)

        with pytest.raises(BadRequestError, match="before its checkout"):
            await service.complete_booking(booking.id, today=date(2026, 11, 3))

    async def test_pending_cannot_complete(self, service, make_request, guest_id):
        booking = await service.create_booking(guest_id, make_request(CHECK_IN, CHECK_OUT))

        with pytest.raises(InvalidBookingTransition):
            await service.complete_booking(booking.id, today=date(2026, 12, 1))

    async def test_users_cannot_complete(self, service, make_request, guest_id, host_id):
        booking = await self._confirmed(service, make_request, guest_id, host_id)

        with pytest.raises(InvalidBookingTransition):
            await service.update_booking_status(booking.id, host_id, BookingStatus.COMPLETED)

    async def test_sweep_completes_only_finished_stays(
        self, service, make_request, guest_id, host_id
    ):
        finished = await self._confirmed(service, make_request, guest_id, host_id)
        upcoming = await self._confirmed(
            service, make_request, guest_id, host_id, date(2026, 12, 1), date(2026, 12, 4)
        )
        pending = await service.create_booking(
            guest_id, make_request(date(2026, 10, 1), date(2026, 10, 3))
        )

        completed = await service.complete_finished_bookings(today=date(2026, 11, 10))

        assert completed == 1
        assert (await service.bookings.get_booking(finished.id)).status == BookingStatus.COMPLETED
        assert (await service.bookings.get_booking(upcoming.id)).status == BookingStatus.CONFIRMED
        assert (await service.bookings.get_booking(pending.id)).status == BookingStatus.PENDING


class TestReads:
    async def test_guest_and_host_can_read(self, service, make_request, guest_id, host_id):
        booking = await service.create_booking(guest_id, make_request(CHECK_IN, CHECK_OUT))

        assert (await service.get_booking_by_id(booking.id, guest_id)).id == booking.id
        assert (await service.get_booking_by_id(booking.id, host_id)).id == booking.id

    async def test_stranger_cannot_read(self, service, make_request, guest_id):
        booking = await service.create_booking(guest_id, make_request(CHECK_IN, CHECK_OUT))

        with pytest.raises(ForbiddenError):
            await service.get_booking_by_id(booking.id, uuid.uuid4())

    async def test_lists_by_role_and_status(self, service, make_request, guest_id, host_id):
        first = await service.create_booking(guest_id, make_request(CHECK_IN, CHECK_OUT))
        second = await service.create_booking(
            guest_id, make_request(date(2026, 12, 1), date(2026, 12, 3))
        )
        await service.update_booking_status(first.id, host_id, BookingStatus.CONFIRMED)

        as_guest = await service.list_bookings_for_user(guest_id, BookingListRole.GUEST)
        as_host = await service.list_bookings_for_user(host_id, BookingListRole.HOST)
        confirmed = await service.list_bookings_for_user(
            host_id, BookingListRole.HOST, status=BookingStatus.CONFIRMED
        )

        assert {b.id for b in as_guest} == {first.id, second.id}
        assert {b.id for b in as_host} == {first.id, second.id}
        assert [b.id for b in confirmed] == [first.id]
        assert await service.list_bookings_for_user(host_id, BookingListRole.GUEST) == []


class TestRentalRemoval:
    async def test_blocked_by_upcoming_booking(self, service, make_request, guest_id, rental):
        await service.create_booking(guest_id, make_request(CHECK_IN, CHECK_OUT))

        with pytest.raises(BadRequestError) as exc_info:
            await service.assert_rental_removable(rental.id, today=date(2026, 10, 1))
        assert exc_info.value.code == ErrorCode.HAS_ACTIVE_BOOKINGS

    async def test_allowed_when_only_past_or_closed(
        self, service, make_request, guest_id, rental
    ):
        booking = await service.create_booking(guest_id, make_request(CHECK_IN, CHECK_OUT))
        await service.update_booking_status(booking.id, guest_id, BookingStatus.CANCELLED)

        await service.assert_rental_removable(rental.id, today=date(2026, 10, 1))
