"""
Reservation error taxonomy.

These are raised by the reservation core and carry no HTTP knowledge beyond
a suggested status code; the API layer turns them into responses in
app/api/exception_handlers.py.
"""

from typing import Iterable, Optional


class ReservationError(Exception):
    status_code: int = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class BookingValidationError(ReservationError):
    """Malformed request: unknown seat label, missing show, bad amount. Not retryable."""

    status_code = 422


class SeatConflictError(ReservationError):
    """One or more seats were unavailable when the transaction ran."""

    status_code = 409

    def __init__(self, message: str, seat_labels: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.seat_labels = sorted(set(seat_labels or ()))


class NotFoundError(ReservationError):
    status_code = 404


class AlreadyCancelledError(ReservationError):
    status_code = 409


class PermissionDeniedError(ReservationError):
    status_code = 403


class StorageError(ReservationError):
    """Transient connection or transaction failure. The whole operation may be retried."""

    status_code = 503
