"""
Show catalog: the thin collaborator the reservation core reads prices from.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.logging import get_logger
from app.models.show import Show
from app.schemas.show import ShowCreate
from app.services.seat_map import initialize_seat_map

logger = get_logger(__name__)


async def create_show(db: AsyncSession, show_data: ShowCreate) -> Show:
    """Create a show and its full seat map in the same transaction."""
    if show_data.start_time <= datetime.now(timezone.utc):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Show start time must be in the future",
        )

    settings = get_settings()
    show = Show(
        movie_title=show_data.movie_title,
        screen_name=show_data.screen_name,
        start_time=show_data.start_time,
        price=show_data.price,
    )
    db.add(show)
    await db.flush()
    await initialize_seat_map(db, show.id, settings.SEAT_ROWS, settings.SEAT_COLUMNS)
    await db.refresh(show)

    logger.info("show_created", show_id=show.id, movie=show.movie_title, start=str(show.start_time))
    return show


async def get_show(db: AsyncSession, show_id: int) -> Show:
    result = await db.execute(select(Show).where(Show.id == show_id))
    show = result.scalar_one_or_none()

    if not show:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Show {show_id} not found",
        )
    return show


async def get_show_price(db: AsyncSession, show_id: int) -> Optional[Decimal]:
    """Ticket price for a show, or None when the show does not exist."""
    result = await db.execute(select(Show.price).where(Show.id == show_id))
    price = result.scalar_one_or_none()
    return Decimal(price) if price is not None else None


async def list_shows(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    upcoming_only: bool = True,
) -> tuple[list[Show], int]:
    """Paginated shows ordered by start time (ix_shows_start_time)."""
    query = select(Show)

    if upcoming_only:
        query = query.where(Show.start_time >= datetime.now(timezone.utc))

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    result = await db.execute(
        query
        .order_by(Show.start_time.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), total
