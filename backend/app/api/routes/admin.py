"""
Privileged endpoints: seat inspection, forced release, forced cancellation
and the manual hold sweep. All require an admin user.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_cancellation_service, get_hold_manager, require_admin
from app.db.base import utcnow
from app.db.session import get_db
from app.schemas.booking import BookingCancelResponse
from app.schemas.seat import AdminSeatResponse, SeatReleaseResponse
from app.services.cancellation_service import CancellationService
from app.services.hold_manager import HoldManager
from app.services.seat_ledger import SeatLedger
from app.services.show_service import get_show

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.get("/shows/{show_id}/seats", response_model=list[AdminSeatResponse])
async def admin_seat_map(show_id: int, db: AsyncSession = Depends(get_db)):
    """Seat map including booking ids and hold owners."""
    await get_show(db, show_id)
    seats = await SeatLedger(db).list_seats(show_id)
    now = utcnow()
    return [AdminSeatResponse.from_seat(seat, now) for seat in seats]


@router.post("/shows/{show_id}/seats/{seat_label}/release", response_model=SeatReleaseResponse)
async def admin_release_seat(
    show_id: int,
    seat_label: str,
    holds: HoldManager = Depends(get_hold_manager),
):
    """Release a hold regardless of who owns it."""
    released = await holds.release_seat(show_id, seat_label.upper(), user_id=None)
    return SeatReleaseResponse(show_id=show_id, seat_label=seat_label.upper(), released=released)


@router.delete("/bookings/{booking_id}", response_model=BookingCancelResponse)
async def admin_cancel_booking(
    booking_id: int,
    cancellations: CancellationService = Depends(get_cancellation_service),
):
    result = await cancellations.cancel_booking(booking_id, user_id=None)
    return BookingCancelResponse(
        message="Booking cancelled by administrator",
        booking_id=result.booking_id,
        status="cancelled",
        seats_released=result.seats_released,
    )


@router.post("/maintenance/sweep")
async def sweep_expired_holds(holds: HoldManager = Depends(get_hold_manager)):
    """Run the expired-hold sweep now instead of waiting for the timer."""
    return {"released": await holds.sweep_expired()}
