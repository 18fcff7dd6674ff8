from app.models.user import User
from app.models.show import Show
from app.models.booking import Booking, BookingStatus
from app.models.seat import Seat, SeatStatus

__all__ = ["User", "Show", "Booking", "BookingStatus", "Seat", "SeatStatus"]
