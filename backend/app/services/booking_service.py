"""
Reservation coordinator: the all-or-nothing purchase.

ALGORITHM (one database transaction)
====================================

  1. Look up the show price (missing show -> BookingValidationError)
  2. Read the requested seats (unknown label -> BookingValidationError)
  3. Any seat already booked -> SeatConflictError naming those seats
  4. Insert the Booking row and flush to reserve its id
  5. UPDATE seats SET status='booked', booking_id=:id
     WHERE show_id=:show AND seat_label IN (:labels)
       AND status IN ('available', 'blocked')
     If fewer rows moved than requested, another transaction won the race
     between steps 2 and 5 -> SeatConflictError
  6. Commit

Any exception rolls the transaction back, so neither the booking row nor a
partial seat capture survives a failure. This is the only code path that
moves a seat into 'booked'.

Conflicts are not retried here. A conflict means the selection is stale and
the client has to pick again.

Blocked seats are capturable regardless of who holds them unless
ENFORCE_HOLD_OWNERSHIP is set, in which case only the buyer's own holds
(or lapsed ones) can be captured.
"""

import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BookingValidationError, NotFoundError, SeatConflictError
from app.core.logging import get_logger
from app.core.metrics import booking_latency, record_booking_attempt
from app.db.base import utcnow
from app.db.session import Database
from app.models.booking import Booking, BookingStatus
from app.models.seat import Seat, SeatStatus
from app.services.seat_ledger import SeatLedger
from app.services.show_service import get_show_price

logger = get_logger(__name__)

CENTS = Decimal("0.01")


@dataclass
class BookingResult:
    booking: Booking
    seat_labels: list[str] = field(default_factory=list)
    replayed: bool = False


class ReservationCoordinator:
    def __init__(
        self,
        database: Database,
        *,
        enforce_hold_ownership: bool = False,
        max_seats: int = 10,
        clock: Callable = utcnow,
    ):
        self.database = database
        self.enforce_hold_ownership = enforce_hold_ownership
        self.max_seats = max_seats
        self.clock = clock

    async def create_booking(
        self,
        user_id: int,
        show_id: int,
        seat_labels: Sequence[str],
        total_amount: Optional[Decimal] = None,
        idempotency_key: Optional[str] = None,
    ) -> BookingResult:
        """Book `seat_labels` for `user_id`, or raise without changing any seat."""
        try:
            labels = self._normalize_labels(seat_labels)
        except BookingValidationError:
            record_booking_attempt("invalid")
            raise

        fingerprint = request_fingerprint(show_id, labels) if idempotency_key else None
        start = time.perf_counter()
        try:
            async with self.database.transaction() as session:
                if idempotency_key:
                    previous = await self._find_by_idempotency_key(session, user_id, idempotency_key)
                    if previous is not None:
                        return self._replay(previous, fingerprint)

                result = await self._book(
                    session, user_id, show_id, labels, total_amount, idempotency_key, fingerprint
                )
        except IntegrityError:
            # A concurrent request with the same idempotency key committed first
            if idempotency_key:
                async with self.database.transaction() as session:
                    previous = await self._find_by_idempotency_key(session, user_id, idempotency_key)
                if previous is not None:
                    try:
                        return self._replay(previous, fingerprint)
                    except BookingValidationError:
                        record_booking_attempt("invalid")
                        raise
            record_booking_attempt("invalid")
            raise BookingValidationError("Unknown user or show")
        except SeatConflictError as e:
            record_booking_attempt("conflict")
            logger.info(
                "booking_conflict",
                user_id=user_id,
                show_id=show_id,
                requested=labels,
                unavailable=e.seat_labels,
            )
            raise
        except BookingValidationError:
            record_booking_attempt("invalid")
            raise
        except Exception:
            record_booking_attempt("error")
            raise
        finally:
            booking_latency.observe(time.perf_counter() - start)

        record_booking_attempt("success")
        logger.info(
            "booking_created",
            booking_id=result.booking.id,
            user_id=user_id,
            show_id=show_id,
            seats=result.seat_labels,
            total_amount=str(result.booking.total_amount),
        )
        return result

    async def _book(
        self,
        session: AsyncSession,
        user_id: int,
        show_id: int,
        labels: list[str],
        total_amount: Optional[Decimal],
        idempotency_key: Optional[str],
        fingerprint: Optional[str],
    ) -> BookingResult:
        price = await get_show_price(session, show_id)
        if price is None:
            raise BookingValidationError(f"Show {show_id} does not exist")

        total = (price * len(labels)).quantize(CENTS)
        if total_amount is not None and Decimal(total_amount).quantize(CENTS) != total:
            raise BookingValidationError(
                f"Total amount {total_amount} does not match {len(labels)} x {price} = {total}"
            )

        ledger = SeatLedger(session)
        now = self.clock()
        seats = {seat.seat_label: seat for seat in await ledger.get_seats_by_labels(show_id, labels)}

        missing = [label for label in labels if label not in seats]
        if missing:
            raise BookingValidationError(
                f"Unknown seats for show {show_id}: {', '.join(missing)}"
            )

        unavailable = [
            label for label in labels if not self._capturable(seats[label], user_id, now)
        ]
        if unavailable:
            raise SeatConflictError(
                f"Seats no longer available: {', '.join(unavailable)}",
                seat_labels=unavailable,
            )

        booking = Booking(
            user_id=user_id,
            show_id=show_id,
            total_amount=total,
            status=BookingStatus.CONFIRMED.value,
            idempotency_key=idempotency_key,
            idempotency_fingerprint=fingerprint,
        )
        session.add(booking)
        await session.flush()

        moved = await ledger.transition_seats(
            show_id,
            labels,
            {SeatStatus.AVAILABLE, SeatStatus.BLOCKED},
            SeatStatus.BOOKED,
            condition=self._capture_condition(user_id, now),
            booking_id=booking.id,
        )
        if moved != len(labels):
            lost = await ledger.labels_not_booked_by(show_id, labels, booking.id)
            raise SeatConflictError(
                f"Seats taken by a concurrent booking: {', '.join(lost)}",
                seat_labels=lost,
            )

        await session.refresh(booking)
        return BookingResult(booking=booking, seat_labels=labels)

    def _replay(self, previous: BookingResult, fingerprint: Optional[str]) -> BookingResult:
        """
        Answer a retried request with its earlier booking. A key reused for a
        different show or seat selection is rejected.
        """
        if previous.booking.idempotency_fingerprint != fingerprint:
            logger.info(
                "idempotency_key_mismatch",
                booking_id=previous.booking.id,
                user_id=previous.booking.user_id,
            )
            raise BookingValidationError("Idempotency-Key reused with a different request")

        record_booking_attempt("replayed")
        logger.info("booking_replayed", booking_id=previous.booking.id, user_id=previous.booking.user_id)
        return previous

    def _capturable(self, seat: Seat, user_id: int, now) -> bool:
        status = seat.effective_status(now)
        if status == SeatStatus.BOOKED.value:
            return False
        if status == SeatStatus.BLOCKED.value and self.enforce_hold_ownership:
            return seat.hold_owner == user_id
        return True

    def _capture_condition(self, user_id: int, now):
        if not self.enforce_hold_ownership:
            return None
        return or_(
            Seat.status == SeatStatus.AVAILABLE.value,
            Seat.hold_owner == user_id,
            Seat.hold_expiry < now,
        )

    def _normalize_labels(self, seat_labels: Sequence[str]) -> list[str]:
        labels = [label.strip().upper() for label in seat_labels if label and label.strip()]
        if not labels:
            raise BookingValidationError("At least one seat is required")
        if len(labels) != len(set(labels)):
            raise BookingValidationError("Duplicate seats in request")
        if len(labels) > self.max_seats:
            raise BookingValidationError(f"At most {self.max_seats} seats per booking")
        return labels

    async def _find_by_idempotency_key(
        self, session: AsyncSession, user_id: int, idempotency_key: str
    ) -> Optional[BookingResult]:
        result = await session.execute(
            select(Booking).where(
                Booking.user_id == user_id,
                Booking.idempotency_key == idempotency_key,
            )
        )
        booking = result.scalar_one_or_none()
        if booking is None:
            return None
        return BookingResult(
            booking=booking,
            seat_labels=await booked_seat_labels(session, booking.id),
            replayed=True,
        )


def request_fingerprint(show_id: int, labels: Sequence[str]) -> str:
    """Order-independent identity of a booking request, e.g. "7:A1,A2"."""
    return f"{show_id}:{','.join(sorted(labels))}"


async def booked_seat_labels(db: AsyncSession, booking_id: int) -> list[str]:
    result = await db.execute(
        select(Seat.seat_label)
        .where(Seat.booking_id == booking_id)
        .order_by(Seat.seat_row, Seat.seat_column)
    )
    return list(result.scalars().all())


async def get_user_bookings(db: AsyncSession, user_id: int) -> list[tuple[Booking, list[str]]]:
    """All bookings of a user, newest first, each with its seat labels."""
    result = await db.execute(
        select(Booking)
        .where(Booking.user_id == user_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    bookings = list(result.scalars().all())
    if not bookings:
        return []

    seat_rows = await db.execute(
        select(Seat.booking_id, Seat.seat_label)
        .where(Seat.booking_id.in_([b.id for b in bookings]))
        .order_by(Seat.seat_row, Seat.seat_column)
    )
    labels: dict[int, list[str]] = {}
    for booking_id, label in seat_rows.all():
        labels.setdefault(booking_id, []).append(label)
    return [(booking, labels.get(booking.id, [])) for booking in bookings]


async def get_user_booking(db: AsyncSession, booking_id: int, user_id: int) -> tuple[Booking, list[str]]:
    result = await db.execute(
        select(Booking).where(Booking.id == booking_id, Booking.user_id == user_id)
    )
    booking = result.scalar_one_or_none()
    if booking is None:
        raise NotFoundError(f"Booking {booking_id} not found")
    return booking, await booked_seat_labels(db, booking.id)
