"""
Shared fixtures: in-memory storage, a bookable rental, and signed tokens.
"""
import uuid
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal

import pytest
from jose import jwt

from app.config import settings
from app.domain.records import RentalSnapshot
from app.repositories.memory import InMemoryBookingRepository, InMemoryRentalDirectory
from app.schemas.booking import BookingCreate
from app.services.booking_service import BookingService


@pytest.fixture
def host_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def guest_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def rental(host_id) -> RentalSnapshot:
    """Active, approved rental: 100.00/night, 50.00 cleaning, sleeps 4."""
    return RentalSnapshot(
        id=uuid.uuid4(),
        host_id=host_id,
        price_per_night=Decimal("100.00"),
        cleaning_fee=Decimal("50.00"),
        security_deposit=Decimal("200.00"),
        max_guests=4,
        is_active=True,
        is_approved=True,
    )


@pytest.fixture
def rentals(rental) -> InMemoryRentalDirectory:
    return InMemoryRentalDirectory([rental])


@pytest.fixture
def bookings(rentals) -> InMemoryBookingRepository:
    return InMemoryBookingRepository(rentals)


@pytest.fixture
def service(rentals, bookings) -> BookingService:
    return BookingService(rentals=rentals, bookings=bookings)


@pytest.fixture
def make_request(rental):
    """Build a BookingCreate for the default rental."""

    def _make(check_in: date, check_out: date, guests: int = 2, **extra) -> BookingCreate:
        return BookingCreate(
            rental_id=extra.pop("rental_id", rental.id),
            check_in_date=check_in,
            check_out_date=check_out,
            number_of_guests=guests,
            **extra,
        )

    return _make


@pytest.fixture
def make_token():
    """Sign an access token the way the identity provider would."""

    def _make(user_id: uuid.UUID, expires_in: timedelta = timedelta(minutes=15)) -> str:
        claims = {"sub": str(user_id), "exp": datetime.now(UTC) + expires_in}
        if settings.jwt_audience:
            claims["aud"] = settings.jwt_audience
        if settings.jwt_issuer:
            claims["iss"] = settings.jwt_issuer
        return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)

    return _make
