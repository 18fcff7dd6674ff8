"""
Seat map initializer: one available seat per grid cell for a new show.
"""

from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.models.seat import Seat, SeatStatus

logger = get_logger(__name__)


def seat_grid(rows: str, columns: int) -> list[dict]:
    """Labels A1..J10 for rows='ABCDEFGHIJ', columns=10; seat_row is 0-based."""
    return [
        {"seat_label": f"{row}{column}", "seat_row": row_index, "seat_column": column}
        for row_index, row in enumerate(rows)
        for column in range(1, columns + 1)
    ]


async def initialize_seat_map(
    session: AsyncSession,
    show_id: int,
    rows: str,
    columns: int,
) -> int:
    """Insert missing seats for `show_id`. Returns the number created; re-running is a no-op."""
    existing = set(
        (
            await session.execute(select(Seat.seat_label).where(Seat.show_id == show_id))
        ).scalars().all()
    )
    to_create = [
        {**cell, "show_id": show_id, "status": SeatStatus.AVAILABLE.value}
        for cell in seat_grid(rows, columns)
        if cell["seat_label"] not in existing
    ]
    if to_create:
        await session.execute(insert(Seat), to_create)

    logger.info("seat_map_initialized", show_id=show_id, created=len(to_create))
    return len(to_create)
