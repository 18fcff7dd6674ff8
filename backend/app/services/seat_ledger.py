"""
Seat ledger: the authoritative per-show seat state.

CONCURRENCY STRATEGY: Conditional set-based UPDATE
===================================================

Problem:
  Two buyers race for seat A1. Both read status='available', both write
  status='booked'. Result: double booking.

Solution:
  Every status change is one statement of the form

    UPDATE seats SET status = :new, ...
    WHERE show_id = :show AND seat_label IN (:labels)
      AND status IN (:expected) [AND <extra condition>]

  and the caller compares the affected row count with the number of labels
  it asked for. The database evaluates the WHERE clause and applies the
  write atomically per row, so of two racing transactions only one sees
  the row still in an expected state; the other gets a short count and
  must roll back. No in-process locks are involved, so any number of API
  instances can share the same database.

A SeatLedger wraps the session of a single transaction. It never commits.
"""

from datetime import datetime
from typing import Iterable, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from app.models.seat import Seat, SeatStatus

# Columns that must be written alongside each target status
_REQUIRED_VALUES = {
    SeatStatus.AVAILABLE: (),
    SeatStatus.BLOCKED: ("hold_owner", "hold_expiry"),
    SeatStatus.BOOKED: ("booking_id",),
}


class SeatLedger:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_seats(self, show_id: int) -> list[Seat]:
        """All seats of a show ordered by row, then column."""
        result = await self.session.execute(
            select(Seat)
            .where(Seat.show_id == show_id)
            .order_by(Seat.seat_row, Seat.seat_column)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_seats_by_labels(self, show_id: int, labels: Iterable[str]) -> list[Seat]:
        """Seats matching `labels`. Unknown labels are simply absent from the result."""
        labels = list(set(labels))
        if not labels:
            return []
        result = await self.session.execute(
            select(Seat)
            .where(Seat.show_id == show_id, Seat.seat_label.in_(labels))
            .order_by(Seat.seat_row, Seat.seat_column)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def transition_seats(
        self,
        show_id: int,
        labels: Iterable[str],
        expected: Iterable[SeatStatus],
        new_status: SeatStatus,
        *,
        condition: Optional[ColumnElement] = None,
        **values,
    ) -> int:
        """
        Compare-and-swap on a set of seats. Returns the number of rows moved.

        Only rows whose current status is in `expected` (and that satisfy the
        optional extra `condition`) are changed. A result smaller than the
        number of labels means some seat was not in an expected state and the
        caller must treat the whole operation as failed.
        """
        labels = list(set(labels))
        if not labels:
            return 0
        criteria = [
            Seat.show_id == show_id,
            Seat.seat_label.in_(labels),
            Seat.status.in_([SeatStatus(s).value for s in expected]),
        ]
        if condition is not None:
            criteria.append(condition)
        return await self._apply(criteria, new_status, values)

    async def release_booking(self, booking_id: int) -> int:
        """booked -> available for every seat owned by `booking_id`."""
        return await self._apply(
            [Seat.booking_id == booking_id, Seat.status == SeatStatus.BOOKED.value],
            SeatStatus.AVAILABLE,
            {},
        )

    async def release_expired_holds(self, now: datetime, show_id: Optional[int] = None) -> int:
        """blocked -> available for every hold that expired before `now`."""
        criteria = [Seat.status == SeatStatus.BLOCKED.value, Seat.hold_expiry < now]
        if show_id is not None:
            criteria.append(Seat.show_id == show_id)
        return await self._apply(criteria, SeatStatus.AVAILABLE, {})

    async def labels_not_booked_by(
        self, show_id: int, labels: Sequence[str], booking_id: int
    ) -> list[str]:
        """Which of `labels` this transaction failed to capture for `booking_id`."""
        result = await self.session.execute(
            select(Seat.seat_label).where(
                Seat.show_id == show_id,
                Seat.seat_label.in_(list(labels)),
                (Seat.booking_id.is_(None)) | (Seat.booking_id != booking_id),
            )
        )
        return sorted(result.scalars().all())

    async def _apply(self, criteria: list, new_status: SeatStatus, values: dict) -> int:
        new_status = SeatStatus(new_status)
        missing = [key for key in _REQUIRED_VALUES[new_status] if values.get(key) is None]
        if missing:
            raise ValueError(f"Transition to {new_status.value} requires {', '.join(missing)}")

        row = {
            "status": new_status.value,
            "booking_id": values.get("booking_id") if new_status == SeatStatus.BOOKED else None,
            "hold_owner": values.get("hold_owner") if new_status == SeatStatus.BLOCKED else None,
            "hold_expiry": values.get("hold_expiry") if new_status == SeatStatus.BLOCKED else None,
        }
        result = await self.session.execute(
            update(Seat)
            .where(*criteria)
            .values(**row)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
