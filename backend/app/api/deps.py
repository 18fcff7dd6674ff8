"""
FastAPI dependencies that assemble the reservation services.

Services are cheap to construct; each request builds its own around the
process-wide Database taken from app.state.
"""

from fastapi import Depends

from app.core.config import Settings, get_settings
from app.core.exceptions import PermissionDeniedError
from app.core.security import get_current_user_id
from app.db.session import Database, get_database
from app.services.auth_service import is_admin
from app.services.booking_service import ReservationCoordinator
from app.services.cancellation_service import CancellationService
from app.services.hold_manager import HoldManager, hold_ttl


def get_hold_manager(
    database: Database = Depends(get_database),
    settings: Settings = Depends(get_settings),
) -> HoldManager:
    return HoldManager(database, ttl=hold_ttl(settings))


def get_coordinator(
    database: Database = Depends(get_database),
    settings: Settings = Depends(get_settings),
) -> ReservationCoordinator:
    return ReservationCoordinator(
        database,
        enforce_hold_ownership=settings.ENFORCE_HOLD_OWNERSHIP,
        max_seats=settings.MAX_SEATS_PER_BOOKING,
    )


def get_cancellation_service(database: Database = Depends(get_database)) -> CancellationService:
    return CancellationService(database)


async def require_admin(
    user_id: int = Depends(get_current_user_id),
    database: Database = Depends(get_database),
) -> int:
    # Own short transaction: the route may open its own right after
    async with database.transaction() as session:
        admin = await is_admin(session, user_id)
    if not admin:
        raise PermissionDeniedError("Administrator access required")
    return user_id
