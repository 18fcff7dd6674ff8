"""
Show catalog endpoints with Redis caching on the listing.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_admin
from app.core.logging import get_logger
from app.db.session import Database, get_database, get_db
from app.schemas.show import ShowCreate, ShowListResponse, ShowResponse
from app.services.cache_service import ShowListCache, get_show_cache
from app.services.show_service import create_show, get_show, list_shows

logger = get_logger(__name__)
router = APIRouter(prefix="/shows", tags=["Shows"])


@router.post("/", response_model=ShowResponse, status_code=status.HTTP_201_CREATED)
async def create_show_endpoint(
    show_data: ShowCreate,
    admin_id: int = Depends(require_admin),
    database: Database = Depends(get_database),
    cache: ShowListCache = Depends(get_show_cache),
):
    """Create a show and its 10x10 seat map. Admin only."""
    async with database.transaction() as session:
        show = await create_show(session, show_data)
    # Committed: cached listings are stale from here on
    await cache.invalidate()
    return show


@router.get("/", response_model=ShowListResponse)
async def list_shows_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    upcoming_only: bool = Query(True),
    db: AsyncSession = Depends(get_db),
    cache: ShowListCache = Depends(get_show_cache),
):
    """
    List shows with pagination.
    Cached in Redis; the cache is cleared whenever a show is created.
    """
    cached = await cache.get(page, page_size, upcoming_only)
    if cached:
        logger.info("shows_list_cache_hit", page=page)
        cached["cached"] = True
        return ShowListResponse(**cached)

    shows, total = await list_shows(db, page, page_size, upcoming_only)
    response_data = {
        "shows": [ShowResponse.model_validate(s).model_dump(mode="json") for s in shows],
        "total": total,
        "page": page,
        "page_size": page_size,
        "cached": False,
    }
    await cache.set(page, page_size, upcoming_only, response_data)
    return ShowListResponse(**response_data)


@router.get("/{show_id}", response_model=ShowResponse)
async def get_show_endpoint(show_id: int, db: AsyncSession = Depends(get_db)):
    return await get_show(db, show_id)
