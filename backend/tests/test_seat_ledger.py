"""
Tests for the seat ledger's conditional, set-based transitions.
"""

from datetime import datetime, timedelta, timezone

import pytest

from app.models.seat import SeatStatus
from app.services.seat_ledger import SeatLedger
from app.services.seat_map import initialize_seat_map, seat_grid


def test_seat_grid_labels():
    grid = seat_grid("ABCDEFGHIJ", 10)
    assert len(grid) == 100
    assert grid[0] == {"seat_label": "A1", "seat_row": 0, "seat_column": 1}
    assert grid[-1] == {"seat_label": "J10", "seat_row": 9, "seat_column": 10}


@pytest.mark.asyncio
async def test_list_seats_ordered_by_row_then_column(database, test_show):
    async with database.transaction() as session:
        seats = await SeatLedger(session).list_seats(test_show.id)

    assert len(seats) == 100
    assert [s.seat_label for s in seats[:11]] == [
        "A1", "A2", "A3", "A4", "A5", "A6", "A7", "A8", "A9", "A10", "B1",
    ]
    assert all(s.status == SeatStatus.AVAILABLE.value for s in seats)


@pytest.mark.asyncio
async def test_seat_map_initializer_is_idempotent(database, test_show):
    async with database.transaction() as session:
        created = await initialize_seat_map(session, test_show.id, "ABCDEFGHIJ", 10)
    assert created == 0


@pytest.mark.asyncio
async def test_get_seats_by_labels_skips_unknown(database, test_show):
    async with database.transaction() as session:
        seats = await SeatLedger(session).get_seats_by_labels(test_show.id, ["A1", "Z99", "B2"])

    assert sorted(s.seat_label for s in seats) == ["A1", "B2"]


@pytest.mark.asyncio
async def test_transition_only_moves_expected_states(database, test_show, test_user):
    expiry = datetime.now(timezone.utc) + timedelta(minutes=5)
    async with database.transaction() as session:
        ledger = SeatLedger(session)
        held = await ledger.transition_seats(
            test_show.id, ["A1"], {SeatStatus.AVAILABLE}, SeatStatus.BLOCKED,
            hold_owner=test_user.id, hold_expiry=expiry,
        )
        # A1 is no longer available, so only A2 and A3 move
        moved = await ledger.transition_seats(
            test_show.id, ["A1", "A2", "A3"], {SeatStatus.AVAILABLE}, SeatStatus.BLOCKED,
            hold_owner=test_user.id, hold_expiry=expiry,
        )

    assert held == 1
    assert moved == 2


@pytest.mark.asyncio
async def test_transition_requires_companion_values(database, test_show):
    async with database.transaction() as session:
        with pytest.raises(ValueError):
            await SeatLedger(session).transition_seats(
                test_show.id, ["A1"], {SeatStatus.AVAILABLE}, SeatStatus.BOOKED,
            )


@pytest.mark.asyncio
async def test_release_expired_holds_only_touches_lapsed(database, test_show, test_user):
    now = datetime.now(timezone.utc)
    async with database.transaction() as session:
        ledger = SeatLedger(session)
        await ledger.transition_seats(
            test_show.id, ["A1"], {SeatStatus.AVAILABLE}, SeatStatus.BLOCKED,
            hold_owner=test_user.id, hold_expiry=now - timedelta(seconds=1),
        )
        await ledger.transition_seats(
            test_show.id, ["A2"], {SeatStatus.AVAILABLE}, SeatStatus.BLOCKED,
            hold_owner=test_user.id, hold_expiry=now + timedelta(minutes=5),
        )
        released = await ledger.release_expired_holds(now)
        seats = {s.seat_label: s for s in await ledger.get_seats_by_labels(test_show.id, ["A1", "A2"])}

    assert released == 1
    assert seats["A1"].status == SeatStatus.AVAILABLE.value
    assert seats["A1"].hold_owner is None
    assert seats["A1"].hold_expiry is None
    assert seats["A2"].status == SeatStatus.BLOCKED.value
