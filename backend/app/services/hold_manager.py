"""
Seat holds ("blocked" seats).

A hold is a time-limited, user-scoped claim taken while the user decides.
It lasts HOLD_TTL_SECONDS (5 minutes) and is renewed only when the same user
blocks the seat again. Expired holds are read as available straight away and
are physically cleared by `sweep_expired`, which HoldSweeper runs on a timer.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import or_

from app.core.exceptions import BookingValidationError, SeatConflictError
from app.core.logging import get_logger
from app.core.metrics import record_hold_attempt, record_seat_release
from app.db.base import utcnow
from app.db.session import Database
from app.models.seat import Seat, SeatStatus
from app.services.seat_ledger import SeatLedger

logger = get_logger(__name__)

DEFAULT_HOLD_TTL = timedelta(minutes=5)


@dataclass(frozen=True)
class SeatHold:
    show_id: int
    seat_label: str
    user_id: int
    expires_at: datetime


class HoldManager:
    def __init__(
        self,
        database: Database,
        *,
        ttl: timedelta = DEFAULT_HOLD_TTL,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.database = database
        self.ttl = ttl
        self.clock = clock

    async def block_seat(self, show_id: int, seat_label: str, user_id: int) -> SeatHold:
        """
        Hold `seat_label` for `user_id`.

        Succeeds when the seat is available, already held by the same user
        (expiry is pushed out), or held by someone whose hold has lapsed.
        Raises SeatConflictError when it is booked or held by another user.
        """
        now = self.clock()
        expires_at = now + self.ttl

        async with self.database.transaction() as session:
            ledger = SeatLedger(session)
            moved = await ledger.transition_seats(
                show_id,
                [seat_label],
                {SeatStatus.AVAILABLE, SeatStatus.BLOCKED},
                SeatStatus.BLOCKED,
                condition=or_(
                    Seat.status == SeatStatus.AVAILABLE.value,
                    Seat.hold_owner == user_id,
                    Seat.hold_expiry < now,
                ),
                hold_owner=user_id,
                hold_expiry=expires_at,
            )
            if moved != 1:
                seats = await ledger.get_seats_by_labels(show_id, [seat_label])
                if not seats:
                    record_hold_attempt("invalid")
                    raise BookingValidationError(
                        f"Seat {seat_label} does not exist for show {show_id}"
                    )
                record_hold_attempt("conflict")
                logger.info(
                    "seat_hold_conflict",
                    show_id=show_id,
                    seat=seat_label,
                    user_id=user_id,
                    status=seats[0].status,
                )
                raise SeatConflictError(
                    f"Seat {seat_label} is not available", seat_labels=[seat_label]
                )

        record_hold_attempt("granted")
        logger.info(
            "seat_hold_granted",
            show_id=show_id,
            seat=seat_label,
            user_id=user_id,
            expires_at=expires_at.isoformat(),
        )
        return SeatHold(show_id, seat_label, user_id, expires_at)

    async def release_seat(
        self, show_id: int, seat_label: str, user_id: Optional[int]
    ) -> bool:
        """
        Return a held seat to available.

        `user_id=None` is the admin path and skips the holder check. Returns
        False when there was nothing to release (seat already available or its
        hold already lapsed). Releasing someone else's live hold, or a booked
        seat, raises SeatConflictError.
        """
        now = self.clock()
        async with self.database.transaction() as session:
            ledger = SeatLedger(session)
            condition = None if user_id is None else (Seat.hold_owner == user_id)
            moved = await ledger.transition_seats(
                show_id,
                [seat_label],
                {SeatStatus.BLOCKED},
                SeatStatus.AVAILABLE,
                condition=condition,
            )
            if moved != 1:
                seats = await ledger.get_seats_by_labels(show_id, [seat_label])
                if not seats:
                    raise BookingValidationError(
                        f"Seat {seat_label} does not exist for show {show_id}"
                    )
                seat = seats[0]
                status = seat.effective_status(now)
                if status == SeatStatus.AVAILABLE.value:
                    return False
                if status == SeatStatus.BOOKED.value:
                    raise SeatConflictError(
                        f"Seat {seat_label} is booked; cancel the booking instead",
                        seat_labels=[seat_label],
                    )
                raise SeatConflictError(
                    f"Seat {seat_label} is held by another user", seat_labels=[seat_label]
                )

        record_seat_release("user" if user_id is not None else "admin")
        logger.info(
            "seat_hold_released",
            show_id=show_id,
            seat=seat_label,
            user_id=user_id,
            admin=user_id is None,
        )
        return True

    async def sweep_expired(self) -> int:
        """Clear every lapsed hold. Safe to run concurrently with itself."""
        now = self.clock()
        async with self.database.transaction() as session:
            released = await SeatLedger(session).release_expired_holds(now)

        if released:
            record_seat_release("sweep", released)
            logger.info("holds_swept", released=released)
        return released


def hold_ttl(settings) -> timedelta:
    return timedelta(seconds=settings.HOLD_TTL_SECONDS)
