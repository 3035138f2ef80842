"""Database models."""

from app.models.booking import Booking
from app.models.rental import Rental

__all__ = [
    # Rental directory
    "Rental",
    # Booking
    "Booking",
]
