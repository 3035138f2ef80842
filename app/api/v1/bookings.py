"""Booking endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_booking_service, get_current_user_id
from app.domain.booking_state import BookingStatus
from app.schemas.booking import (
    BookingCalculateRequest,
    BookingCalculateResponse,
    BookingCreate,
    BookingListResponse,
    BookingResponse,
    BookingStatusUpdate,
)
from app.services.booking_service import BookingListRole, BookingService

router = APIRouter()

Service = Annotated[BookingService, Depends(get_booking_service)]
CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]


@router.post("/calculate", response_model=BookingCalculateResponse)
async def calculate_booking_price(
    request: BookingCalculateRequest,
    current_user_id: CurrentUserId,
    service: Service,
) -> BookingCalculateResponse:
    """Calculate booking price without creating a booking."""
    quote = await service.quote_booking(request)
    return BookingCalculateResponse.model_validate(quote)


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    current_user_id: CurrentUserId,
    service: Service,
) -> BookingResponse:
    """Create a new booking request."""
    booking = await service.create_booking(current_user_id, booking_data)
    return BookingResponse.model_validate(booking)


@router.get("/", response_model=BookingListResponse)
async def get_my_bookings(
    current_user_id: CurrentUserId,
    service: Service,
    role: BookingListRole = Query(default=BookingListRole.GUEST),
    status_filter: BookingStatus | None = Query(default=None, alias="status"),
) -> BookingListResponse:
    """Get bookings for the current user (as guest, or as host with ?role=HOST)."""
    bookings = await service.list_bookings_for_user(current_user_id, role, status=status_filter)
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        total=len(bookings),
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    current_user_id: CurrentUserId,
    service: Service,
) -> BookingResponse:
    """Get a booking by ID (guest or host only)."""
    booking = await service.get_booking_by_id(booking_id, current_user_id)
    return BookingResponse.model_validate(booking)


@router.patch("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: UUID,
    request: BookingStatusUpdate,
    current_user_id: CurrentUserId,
    service: Service,
) -> BookingResponse:
    """Host confirms/declines, guest cancels, either cancels a confirmed stay."""
    booking = await service.update_booking_status(booking_id, current_user_id, request.status)
    return BookingResponse.model_validate(booking)
