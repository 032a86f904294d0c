"""
Pagination helpers shared by all list endpoints.
"""

import math
from typing import Any

from sqlalchemy.orm import Query

from careconnect.schemas.common import Pagination


def build_pagination(total: int, page: int, limit: int) -> Pagination:
    return Pagination(
        total=total,
        page=page,
        limit=limit,
        pages=math.ceil(total / limit),
    )


def paginate(query: Query, page: int = 1, limit: int = 10) -> tuple[list[Any], Pagination]:
    """
    Apply offset/limit to an ordered query and count the unpaginated total.

    Args:
        query: Ordered SQLAlchemy query
        page: Page number (1-indexed)
        limit: Items per page

    Returns:
        The page of items and its pagination metadata. A page past the end
        yields an empty list with the correct total.
    """
    page = max(1, page)
    limit = max(1, limit)

    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()

    return items, build_pagination(total, page, limit)
