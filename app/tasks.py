"""Celery background tasks."""

import asyncio
import logging
from datetime import date

from celery import shared_task

from app.config import settings
from app.core.immutability import register_immutability_enforcement
from app.database import build_engine, build_session_factory, close_db
from app.repositories.sql import SqlBookingRepository, SqlRentalDirectory
from app.services.booking_service import BookingService

logger = logging.getLogger(__name__)


def run_async(coro):
    """Run async function in sync context."""
    return asyncio.run(coro)


# ==================== BOOKING LIFECYCLE TASKS ====================


@shared_task(bind=True, max_retries=3)
def complete_finished_bookings(self, today: str | None = None):
    """Move confirmed bookings whose checkout has passed to COMPLETED.

    Runs daily (see beat schedule). ``today`` is an ISO date override for
    backfills.
    """
    try:
        completed = run_async(
            _complete_finished_bookings(date.fromisoformat(today) if today else None)
        )
        return {"status": "success", "completed": completed}
    except Exception as exc:
        logger.exception("Completion sweep failed")
        raise self.retry(exc=exc, countdown=300)


async def _complete_finished_bookings(today: date | None = None) -> int:
    """Async implementation of the completion sweep."""
    engine = build_engine(settings)
    register_immutability_enforcement()
    try:
        session_factory = build_session_factory(engine)
        service = BookingService(
            rentals=SqlRentalDirectory(session_factory),
            bookings=SqlBookingRepository(session_factory),
            service_fee_percent=settings.service_fee_percent,
            max_update_attempts=settings.status_update_max_attempts,
        )
        return await service.complete_finished_bookings(today)
    finally:
        await close_db(engine)
