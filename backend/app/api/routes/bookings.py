"""
Booking endpoints: all-or-nothing purchase and cancellation.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_cancellation_service, get_coordinator
from app.core.security import get_current_user_id
from app.db.session import get_db
from app.schemas.booking import BookingCancelResponse, BookingCreate, BookingResponse
from app.services.booking_service import (
    ReservationCoordinator,
    get_user_booking,
    get_user_bookings,
)
from app.services.cancellation_service import CancellationService

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    response: Response,
    user_id: int = Depends(get_current_user_id),
    coordinator: ReservationCoordinator = Depends(get_coordinator),
    idempotency_key: Optional[str] = Header(default=None, max_length=64),
):
    """
    Book seats for a show.

    Either every requested seat is booked or none is. Returns 409 with the
    unavailable seats if any was taken; pick again rather than retrying.
    Send an Idempotency-Key header to make retries safe.
    """
    result = await coordinator.create_booking(
        user_id,
        booking_data.show_id,
        booking_data.seat_labels,
        booking_data.total_amount,
        idempotency_key=idempotency_key,
    )
    if result.replayed:
        response.status_code = status.HTTP_200_OK
    return BookingResponse.from_booking(result.booking, result.seat_labels, result.replayed)


@router.delete("/{booking_id}", response_model=BookingCancelResponse)
async def cancel_booking_endpoint(
    booking_id: int,
    user_id: int = Depends(get_current_user_id),
    cancellations: CancellationService = Depends(get_cancellation_service),
):
    """Cancel a booking and return its seats to available."""
    result = await cancellations.cancel_booking(booking_id, user_id)
    return BookingCancelResponse(
        message="Booking cancelled successfully",
        booking_id=result.booking_id,
        status="cancelled",
        seats_released=result.seats_released,
    )


@router.get("/", response_model=list[BookingResponse])
async def list_user_bookings(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Bookings of the authenticated user, newest first."""
    bookings = await get_user_bookings(db, user_id)
    return [BookingResponse.from_booking(booking, labels) for booking, labels in bookings]


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking_endpoint(
    booking_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    booking, labels = await get_user_booking(db, booking_id, user_id)
    return BookingResponse.from_booking(booking, labels)
