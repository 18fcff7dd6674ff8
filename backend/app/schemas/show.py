"""
Pydantic schemas for the show catalog.
"""

from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field


class ShowCreate(BaseModel):
    movie_title: str = Field(..., min_length=1, max_length=200)
    screen_name: str = Field(..., min_length=1, max_length=50)
    start_time: datetime
    price: Decimal = Field(..., ge=0, max_digits=8, decimal_places=2)


class ShowResponse(BaseModel):
    id: int
    movie_title: str
    screen_name: str
    start_time: datetime
    price: Decimal
    created_at: datetime

    model_config = {"from_attributes": True}


class ShowListResponse(BaseModel):
    shows: list[ShowResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False
