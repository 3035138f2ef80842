"""Internal service-to-service endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends

from app.api.deps import get_booking_service, require_internal_key
from app.schemas.booking import BookingResponse
from app.services.booking_service import BookingService

router = APIRouter(dependencies=[Depends(require_internal_key)])


@router.post("/bookings/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: UUID,
    service: Annotated[BookingService, Depends(get_booking_service)],
) -> BookingResponse:
    """Mark a finished stay as completed (called by the review flow)."""
    booking = await service.complete_booking(booking_id)
    return BookingResponse.model_validate(booking)
