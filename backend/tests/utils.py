"""
Shared helpers for tests: an injectable clock, user creation and ledger reads.
"""

from datetime import datetime, timedelta, timezone

from app.core.security import create_access_token, hash_password
from app.db.session import Database
from app.models.seat import Seat
from app.models.user import User
from app.services.seat_ledger import SeatLedger

TEST_PASSWORD = "testpassword123"
# Hashing is slow; every fixture user shares one hash
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = None):
        self.now = now or datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now += timedelta(**delta)


async def create_user(database: Database, username: str, is_admin: bool = False) -> User:
    async with database.transaction() as session:
        user = User(
            email=f"{username}@example.com",
            username=username,
            hashed_password=TEST_PASSWORD_HASH,
            is_admin=is_admin,
        )
        session.add(user)
        await session.flush()
        await session.refresh(user)
    return user


async def fetch_seats(database: Database, show_id: int, labels=None) -> dict[str, Seat]:
    """Current ledger rows keyed by label."""
    async with database.transaction() as session:
        ledger = SeatLedger(session)
        if labels is None:
            seats = await ledger.list_seats(show_id)
        else:
            seats = await ledger.get_seats_by_labels(show_id, labels)
    return {seat.seat_label: seat for seat in seats}


def auth_headers_for(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(data={'sub': str(user.id)})}"}
