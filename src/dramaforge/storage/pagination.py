"""Page slicing for list operations."""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class PageInfo(BaseModel):
    """Pagination metadata returned with every page."""

    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    total: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=0)


class Page(BaseModel, Generic[T]):
    """One page of items plus pagination metadata."""

    items: list[T]
    pagination: PageInfo


def paginate(items: Sequence[Any], page: int = 1, page_size: int = 20) -> Page[Any]:
    """Slice ``items`` into a 1-based page.

    Out-of-range pages return an empty item list with correct totals.
    """
    page = max(page, 1)
    page_size = max(page_size, 1)
    total = len(items)
    start = (page - 1) * page_size
    return Page[Any](
        items=list(items[start : start + page_size]),
        pagination=PageInfo(
            page=page,
            page_size=page_size,
            total=total,
            total_pages=math.ceil(total / page_size),
        ),
    )
