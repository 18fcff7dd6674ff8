from app.schemas.user import UserCreate, UserResponse, UserLogin, Token
from app.schemas.show import ShowCreate, ShowResponse, ShowListResponse
from app.schemas.seat import SeatResponse, AdminSeatResponse, SeatHoldResponse, SeatReleaseResponse
from app.schemas.booking import BookingCreate, BookingResponse, BookingCancelResponse

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "Token",
    "ShowCreate", "ShowResponse", "ShowListResponse",
    "SeatResponse", "AdminSeatResponse", "SeatHoldResponse", "SeatReleaseResponse",
    "BookingCreate", "BookingResponse", "BookingCancelResponse",
]
