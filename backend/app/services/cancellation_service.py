"""
Cancellation: reverse a confirmed booking.

Both steps run in one transaction, each as a single conditional statement:

  UPDATE bookings SET status='cancelled', cancelled_at=:now
  WHERE id=:id AND status='confirmed' [AND user_id=:user]

  UPDATE seats SET status='available', booking_id=NULL
  WHERE booking_id=:id AND status='booked'

Two concurrent cancels of the same booking cannot both pass the first
statement, so seats are never released twice; the loser is told the booking
is already cancelled.

Holds that never became a booking are not handled here; HoldManager's sweep
reclaims them.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import select, update

from app.core.exceptions import AlreadyCancelledError, NotFoundError
from app.core.logging import get_logger
from app.core.metrics import record_cancellation, record_seat_release
from app.db.base import utcnow
from app.db.session import Database
from app.models.booking import Booking, BookingStatus
from app.services.seat_ledger import SeatLedger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CancellationResult:
    booking_id: int
    seats_released: int
    cancelled_at: datetime


class CancellationService:
    def __init__(self, database: Database, *, clock: Callable[[], datetime] = utcnow):
        self.database = database
        self.clock = clock

    async def cancel_booking(self, booking_id: int, user_id: Optional[int]) -> CancellationResult:
        """
        Cancel `booking_id` on behalf of `user_id`; `user_id=None` is the admin
        path with no ownership check. Another user's booking reads as not found.
        """
        now = self.clock()
        async with self.database.transaction() as session:
            criteria = [
                Booking.id == booking_id,
                Booking.status == BookingStatus.CONFIRMED.value,
            ]
            if user_id is not None:
                criteria.append(Booking.user_id == user_id)

            result = await session.execute(
                update(Booking)
                .where(*criteria)
                .values(status=BookingStatus.CANCELLED.value, cancelled_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                await self._raise_for_missing(session, booking_id, user_id)

            released = await SeatLedger(session).release_booking(booking_id)

        record_cancellation("cancelled")
        record_seat_release("cancellation", released)
        logger.info(
            "booking_cancelled",
            booking_id=booking_id,
            user_id=user_id,
            admin=user_id is None,
            seats_released=released,
        )
        return CancellationResult(booking_id, released, now)

    async def _raise_for_missing(self, session, booking_id: int, user_id: Optional[int]) -> None:
        booking = (
            await session.execute(select(Booking).where(Booking.id == booking_id))
        ).scalar_one_or_none()

        if booking is None or (user_id is not None and booking.user_id != user_id):
            record_cancellation("not_found")
            raise NotFoundError(f"Booking {booking_id} not found")

        record_cancellation("already_cancelled")
        raise AlreadyCancelledError(f"Booking {booking_id} is already cancelled")
