"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from app.models.booking import Booking


class BookingCreate(BaseModel):
    show_id: int
    seat_labels: list[str] = Field(..., min_length=1, max_length=10)
    # Optional; when sent it must equal seat count x show price
    total_amount: Optional[Decimal] = Field(default=None, ge=0)


class BookingResponse(BaseModel):
    id: int
    user_id: int
    show_id: int
    seat_labels: list[str]
    total_amount: Decimal
    status: str
    created_at: datetime
    cancelled_at: Optional[datetime] = None
    replayed: bool = False

    @classmethod
    def from_booking(cls, booking: Booking, seat_labels: list[str], replayed: bool = False) -> "BookingResponse":
        return cls(
            id=booking.id,
            user_id=booking.user_id,
            show_id=booking.show_id,
            seat_labels=seat_labels,
            total_amount=booking.total_amount,
            status=booking.status,
            created_at=booking.created_at,
            cancelled_at=booking.cancelled_at,
            replayed=replayed,
        )


class BookingCancelResponse(BaseModel):
    message: str
    booking_id: int
    status: str
    seats_released: int
