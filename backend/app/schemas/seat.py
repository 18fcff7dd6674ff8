"""
Pydantic schemas for seat maps and holds.

Public seat views never expose who holds a seat, only whether the caller does.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from app.models.seat import Seat, SeatStatus


class SeatResponse(BaseModel):
    seat_label: str
    seat_row: int
    seat_column: int
    status: str
    held_by_me: bool = False
    hold_expires_at: Optional[datetime] = None

    @classmethod
    def from_seat(cls, seat: Seat, now: datetime, user_id: Optional[int] = None) -> "SeatResponse":
        status = seat.effective_status(now)
        blocked = status == SeatStatus.BLOCKED.value
        return cls(
            seat_label=seat.seat_label,
            seat_row=seat.seat_row,
            seat_column=seat.seat_column,
            status=status,
            held_by_me=blocked and user_id is not None and seat.hold_owner == user_id,
            hold_expires_at=seat.hold_expiry if blocked else None,
        )


class AdminSeatResponse(SeatResponse):
    booking_id: Optional[int] = None
    hold_owner: Optional[int] = None

    @classmethod
    def from_seat(cls, seat: Seat, now: datetime, user_id: Optional[int] = None) -> "AdminSeatResponse":
        base = SeatResponse.from_seat(seat, now, user_id)
        return cls(
            **base.model_dump(),
            booking_id=seat.booking_id,
            hold_owner=seat.hold_owner if base.status == SeatStatus.BLOCKED.value else None,
        )


class SeatHoldResponse(BaseModel):
    show_id: int
    seat_label: str
    status: str = SeatStatus.BLOCKED.value
    expires_at: datetime


class SeatReleaseResponse(BaseModel):
    show_id: int
    seat_label: str
    released: bool
