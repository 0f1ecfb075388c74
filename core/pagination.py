"""
core/pagination.py -- Page/limit arithmetic shared by list endpoints.

Pages are 1-based. limit is clamped by the request models to 1..MAX_PAGE_SIZE
before it reaches these helpers.
"""

from __future__ import annotations

import math

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def offset_for(page: int, limit: int) -> int:
    """Rows to skip for a 1-based page."""
    return (max(page, 1) - 1) * limit


def total_pages(total: int, limit: int) -> int:
    if limit <= 0:
        return 0
    return math.ceil(total / limit)


def page_meta(total: int, page: int, limit: int) -> dict:
    """Build the pagination block of the paginated envelope."""
    pages = total_pages(total, limit)
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": pages,
        "hasNextPage": page < pages,
        "hasPreviousPage": page > 1,
    }
