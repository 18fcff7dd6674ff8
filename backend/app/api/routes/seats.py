"""
Seat map and hold endpoints.

Reads go straight to the seat ledger; holds go through HoldManager, which
owns the blocked state and its 5 minute expiry.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_hold_manager
from app.core.security import get_current_user_id, get_optional_user_id
from app.db.base import utcnow
from app.db.session import get_db
from app.schemas.seat import SeatHoldResponse, SeatReleaseResponse, SeatResponse
from app.services.hold_manager import HoldManager
from app.services.seat_ledger import SeatLedger
from app.services.show_service import get_show

router = APIRouter(prefix="/shows/{show_id}/seats", tags=["Seats"])


@router.get("/", response_model=list[SeatResponse])
async def list_seats_endpoint(
    show_id: int,
    user_id: Optional[int] = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Seat map ordered by row then column. Lapsed holds are shown as available."""
    await get_show(db, show_id)
    seats = await SeatLedger(db).list_seats(show_id)
    now = utcnow()
    return [SeatResponse.from_seat(seat, now, user_id) for seat in seats]


@router.post("/{seat_label}/hold", response_model=SeatHoldResponse)
async def hold_seat_endpoint(
    show_id: int,
    seat_label: str,
    user_id: int = Depends(get_current_user_id),
    holds: HoldManager = Depends(get_hold_manager),
):
    """Block a seat for 5 minutes. Repeating the call renews the hold."""
    hold = await holds.block_seat(show_id, seat_label.upper(), user_id)
    return SeatHoldResponse(show_id=show_id, seat_label=hold.seat_label, expires_at=hold.expires_at)


@router.post("/{seat_label}/release", response_model=SeatReleaseResponse)
async def release_seat_endpoint(
    show_id: int,
    seat_label: str,
    user_id: int = Depends(get_current_user_id),
    holds: HoldManager = Depends(get_hold_manager),
):
    released = await holds.release_seat(show_id, seat_label.upper(), user_id)
    return SeatReleaseResponse(show_id=show_id, seat_label=seat_label.upper(), released=released)
